# apps/board/ordering.py

"""
Algoritmo de posições das tarefas

Funções puras, sem Django: o mesmo código é usado pelo ledger do
servidor (apps.board.ledger) e pelo projetor otimista do cliente
(client.projector), para que a previsão local e o resultado
persistido sejam sempre iguais.

Regras:
- dentro de uma lista as posições são 0..n-1, sem buracos
- a lista inteira é reindexada a cada mudança
- no reordenamento dentro da mesma lista o índice de destino
  refere-se ao array já sem a tarefa movida
"""

from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple


def clamp_index(index: Optional[int], length: int) -> int:
    """Limita o índice a [0, length]; None significa o final da lista"""
    if index is None:
        return length
    return max(0, min(int(index), length))


def move_in_sequence(
    source: Sequence[Hashable],
    item: Hashable,
    index: Optional[int],
    destination: Optional[Sequence[Hashable]] = None,
) -> Tuple[List[Hashable], List[Hashable]]:
    """
    Move item de source para destination na posição index

    Sem destination o movimento é dentro da própria lista e as duas
    sequências retornadas são a mesma lista. As entradas não são alteradas.

    Returns:
        Tuple[nova_origem, novo_destino]
    """
    restante = [x for x in source if x != item]

    if destination is None:
        alvo = list(restante)
    else:
        alvo = [x for x in destination if x != item]

    posicao = clamp_index(index, len(alvo))
    alvo.insert(posicao, item)

    if destination is None:
        return alvo, alvo
    return restante, alvo


def reindex(ordered_ids: Iterable[Hashable]) -> Dict[Hashable, int]:
    """Posição i para o id no índice i"""
    return {task_id: posicao for posicao, task_id in enumerate(ordered_ids)}


def diff_positions(
    before: Mapping[Hashable, Tuple[Hashable, int]],
    arrangement: Mapping[Hashable, Sequence[Hashable]],
) -> List[Tuple[Hashable, Hashable, int]]:
    """
    Triplas (task_id, list_id, position) que mudaram

    before mapeia task_id -> (list_id, position) do estado anterior;
    arrangement mapeia list_id -> ids na ordem final. Tarefas cuja
    lista e posição continuam iguais ficam de fora.
    """
    alteradas = []
    for list_id, ids in arrangement.items():
        for task_id, posicao in reindex(ids).items():
            if before.get(task_id) != (list_id, posicao):
                alteradas.append((task_id, list_id, posicao))
    return alteradas


def is_dense(positions: Iterable[int]) -> bool:
    """True se as posições, ordenadas, são exatamente 0..n-1"""
    ordenadas = sorted(positions)
    return ordenadas == list(range(len(ordenadas)))
