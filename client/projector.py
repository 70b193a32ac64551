# client/projector.py

"""
Projetor otimista do board

Ao soltar uma tarefa o novo arranjo é calculado e exibido na hora,
com o mesmo algoritmo do servidor (apps.board.ordering). Em seguida
uma requisição de movimento é enviada por tarefa alterada: primeiro a
da tarefa arrastada, depois as demais em paralelo.

    IDLE -> DRAGGING -> RECONCILING -> IDLE
    IDLE -> DRAGGING -> IDLE (soltou fora de uma lista ou na origem)

Cada soltura termina CONFIRMED (todas as respostas iguais à previsão, o estado
local é mantido) ou REVERTED (alguma falhou ou divergiu: a previsão é descartada
e as tarefas do board são buscadas de novo, única forma de recuperação).

Enquanto o usuário arrasta, os eventos em tempo real ficam num buffer
para não sobrescrever o arranjo local; ao final eles são aplicados,
exceto os ecos das próprias tarefas movidas.
"""

import asyncio
import copy
import enum
import logging
from typing import Callable, Dict, List, Optional, Tuple

from apps.board.ordering import diff_positions, move_in_sequence

from .api import ApiError

logger = logging.getLogger(__name__)

# Variantes equivalentes de atualização de tarefa
TASK_UPDATE_EVENTS = frozenset({'taskUpdated', 'task_updated', 'task_moved'})

AVISO_FILTRO_ATIVO = 'Clear the search filter before reordering tasks.'

# Quantidade de registros do histórico mantidos em memória
LIMITE_HISTORICO = 20


class DragState(enum.Enum):
    IDLE = 'idle'
    DRAGGING = 'dragging'
    RECONCILING = 'reconciling'


class DropOutcome(enum.Enum):
    PREDICTED = 'predicted'
    CONFIRMED = 'confirmed'
    REVERTED = 'reverted'


class OptimisticBoardProjector:
    """
    Estado local de um board: listas (ordem dos ids) e tarefas por id

    Args:
        api: BoardApiClient (ou objeto com fetch_board / move_task)
        board_id: board exibido
        on_change: chamado após cada mudança no estado local (render)
        on_notice: mensagens para o usuário (ex: filtro ativo)
    """

    def __init__(self, api, board_id: int, on_change: Optional[Callable] = None,
                 on_notice: Optional[Callable[[str], None]] = None):
        self.api = api
        self.board_id = board_id
        self.lists: Dict[int, List[int]] = {}
        self.list_titles: Dict[int, str] = {}
        self.tasks: Dict[int, Dict] = {}
        self.activity: List[Dict] = []
        self.state = DragState.IDLE
        self.outcome: Optional[DropOutcome] = None
        self.filter_text = ''

        self._on_change = on_change
        self._on_notice = on_notice
        self._arrastando: Optional[int] = None
        self._buffer: List[Tuple[str, object]] = []

    @property
    def suppressed(self) -> bool:
        """Eventos remotos são guardados em vez de aplicados"""
        return self.state is not DragState.IDLE

    # === CARGA ===

    async def load(self):
        """Busca o board completo e substitui o estado local"""
        self.load_snapshot(await self.api.fetch_board(self.board_id))

    def load_snapshot(self, board: Dict):
        self.lists = {}
        self.list_titles = {}
        self.tasks = {}
        for lista in board.get('lists', []):
            tarefas = sorted(lista.get('tasks', []), key=lambda t: (t['position'], t['id']))
            self.lists[lista['id']] = [t['id'] for t in tarefas]
            self.list_titles[lista['id']] = lista['title']
            for t in tarefas:
                self.tasks[t['id']] = dict(t)
        self._render()

    async def refetch(self):
        """Recuperação após falha: o estado do servidor substitui o local"""
        await self.load()

    def set_filter(self, texto: str):
        self.filter_text = (texto or '').strip()

    def visible_tasks(self, list_id: int) -> List[Dict]:
        """Tarefas da lista que passam pelo filtro de busca"""
        tarefas = [self.tasks[i] for i in self.lists.get(list_id, [])]
        if not self.filter_text:
            return tarefas
        busca = self.filter_text.lower()
        return [
            t for t in tarefas
            if busca in t['title'].lower() or busca in (t.get('description') or '').lower()
        ]

    # === ARRASTAR E SOLTAR ===

    def begin_drag(self, task_id: int) -> bool:
        if self.state is not DragState.IDLE or task_id not in self.tasks:
            return False
        self.state = DragState.DRAGGING
        self._arrastando = task_id
        return True

    def cancel_drag(self):
        if self.state is DragState.DRAGGING:
            self._encerrar()

    async def drop(self, list_id: Optional[int], index: Optional[int]) -> Optional[DropOutcome]:
        """
        Solta a tarefa arrastada em list_id/index

        Returns:
            None quando não houve movimento; senão CONFIRMED ou REVERTED
        """
        if self.state is not DragState.DRAGGING:
            return None

        if self.filter_text:
            self._avisar(AVISO_FILTRO_ATIVO)
            self._encerrar()
            return None

        if list_id is None or list_id not in self.lists:
            self._encerrar()
            return None

        task_id = self._arrastando
        origem_id = self.tasks[task_id]['listId']

        antes = {
            tid: (lid, posicao)
            for lid, ids in self.lists.items()
            for posicao, tid in enumerate(ids)
        }
        if origem_id == list_id:
            nova_origem, _ = move_in_sequence(self.lists[origem_id], task_id, index)
            arranjo = {origem_id: nova_origem}
        else:
            nova_origem, novo_destino = move_in_sequence(
                self.lists[origem_id], task_id, index, self.lists[list_id]
            )
            arranjo = {origem_id: nova_origem, list_id: novo_destino}

        alteracoes = diff_positions(antes, arranjo)
        if not alteracoes:
            self._encerrar()
            return None

        anterior = self._snapshot()
        self._aplicar_arranjo(arranjo)
        self.state = DragState.RECONCILING
        self.outcome = DropOutcome.PREDICTED
        self._render()

        # A tarefa arrastada vai primeiro: o servidor aplica o mesmo algoritmo
        # e as demais triplas chegam como no-ops, em qualquer ordem de chegada.
        principal = [a for a in alteracoes if a[0] == task_id]
        demais = [a for a in alteracoes if a[0] != task_id]

        falhas = await self._enviar_movimentos(principal)
        if not falhas:
            falhas = await self._enviar_movimentos(demais)

        if falhas:
            logger.warning(f"⚠️ {len(falhas)} movimento(s) falharam ou divergiram, buscando o board")
            self.outcome = DropOutcome.REVERTED
            self._buffer.clear()
            await self._recuperar(anterior)
            self._encerrar()
            return self.outcome

        self.outcome = DropOutcome.CONFIRMED
        self._encerrar(ignorar={tid for tid, _, _ in alteracoes})
        return self.outcome

    # === TEMPO REAL ===

    def apply_remote(self, event: str, payload):
        """Handler do ConnectionManager para o board"""
        if self.suppressed:
            self._buffer.append((event, payload))
            return
        self._aplicar_evento(event, payload)
        self._render()

    # =================== MÉTODOS PRIVADOS ===================

    async def _enviar_movimentos(self, triplas) -> List:
        """
        Envia as triplas em paralelo e confere cada resposta com a previsão

        Returns:
            Falhas: exceções e respostas cuja lista/posição difere da prevista
        """
        resultados = await asyncio.gather(
            *(self.api.move_task(tid, lid, posicao) for tid, lid, posicao in triplas),
            return_exceptions=True
        )
        falhas = []
        for (tid, lid, posicao), resposta in zip(triplas, resultados):
            if isinstance(resposta, BaseException):
                falhas.append(resposta)
            elif (resposta.get('listId'), resposta.get('position')) != (lid, posicao):
                logger.warning(
                    f"⚠️ Tarefa {tid}: previsto ({lid}, {posicao}), servidor "
                    f"({resposta.get('listId')}, {resposta.get('position')})"
                )
                falhas.append(resposta)
        return falhas

    def _aplicar_evento(self, event, payload):
        if event == 'taskCreated' or event in TASK_UPDATE_EVENTS:
            self._upsert_tarefa(payload)
        elif event == 'taskDeleted':
            self._remover_tarefa(payload['id'])
        elif event in ('listCreated', 'listUpdated'):
            self.lists.setdefault(payload['id'], [])
            self.list_titles[payload['id']] = payload['title']
        elif event == 'listDeleted':
            for tid in self.lists.pop(payload['id'], []):
                self.tasks.pop(tid, None)
            self.list_titles.pop(payload['id'], None)
        elif event == 'activityLog':
            self.activity = ([payload] + self.activity)[:LIMITE_HISTORICO]
        else:
            logger.debug(f"Evento ignorado: {event}")

    def _upsert_tarefa(self, tarefa: Dict):
        task_id = tarefa['id']
        self._remover_tarefa(task_id)
        self.tasks[task_id] = dict(tarefa)
        ids = self.lists.setdefault(tarefa['listId'], [])
        ids.append(task_id)
        ids.sort(key=lambda i: (self.tasks[i]['position'], i))

    def _remover_tarefa(self, task_id):
        tarefa = self.tasks.pop(task_id, None)
        if tarefa is None:
            return
        ids = self.lists.get(tarefa['listId'])
        if ids and task_id in ids:
            ids.remove(task_id)

    def _aplicar_arranjo(self, arranjo: Dict[int, List[int]]):
        for list_id, ids in arranjo.items():
            self.lists[list_id] = list(ids)
            for posicao, tid in enumerate(ids):
                self.tasks[tid]['listId'] = list_id
                self.tasks[tid]['position'] = posicao

    async def _recuperar(self, anterior):
        try:
            await self.refetch()
        except ApiError as e:
            # sem resposta do servidor, volta ao último estado confirmado
            logger.error(f"❌ Falha ao buscar o board {self.board_id}: {e.message}")
            self.lists, self.list_titles, self.tasks = anterior
            self._render()

    def _encerrar(self, ignorar=frozenset()):
        """Volta para IDLE e aplica os eventos guardados durante o arraste"""
        self.state = DragState.IDLE
        self._arrastando = None

        pendentes, self._buffer = self._buffer, []
        aplicou = False
        for event, payload in pendentes:
            if isinstance(payload, dict) and payload.get('id') in ignorar and (
                    event == 'taskCreated' or event in TASK_UPDATE_EVENTS):
                continue
            self._aplicar_evento(event, payload)
            aplicou = True
        if aplicou:
            self._render()

    def _snapshot(self):
        return (
            {lid: list(ids) for lid, ids in self.lists.items()},
            dict(self.list_titles),
            copy.deepcopy(self.tasks),
        )

    def _render(self):
        if self._on_change is not None:
            self._on_change(self)

    def _avisar(self, mensagem: str):
        logger.info(f"ℹ️ {mensagem}")
        if self._on_notice is not None:
            self._on_notice(mensagem)
