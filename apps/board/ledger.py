# apps/board/ledger.py

"""
Position Ledger - aplica o algoritmo de apps.board.ordering no banco

Todas as funções que escrevem devem ser chamadas dentro de
transaction.atomic(): as linhas das listas envolvidas são travadas
com select_for_update antes de qualquer leitura das tarefas.
"""

import logging

from apps.core.models import Task, TaskList

from . import ordering

logger = logging.getLogger(__name__)


class PositionLedger:
    """Leitura, travamento e reindexação das posições de uma ou duas listas"""

    def travar_listas(self, *list_ids):
        """
        Trava as listas em ordem crescente de id

        A ordem fixa evita deadlock entre dois movimentos cruzados (A->B e B->A).
        """
        ids = sorted({list_id for list_id in list_ids if list_id is not None})
        listas = TaskList.objects.select_for_update().filter(pk__in=ids).order_by('pk')
        return {lista.pk: lista for lista in listas}

    def ordem_atual(self, list_id, travar=True):
        """Tarefas da lista na ordem persistida (position, id)"""
        queryset = Task.objects.filter(task_list_id=list_id).order_by('position', 'id')
        if travar:
            queryset = queryset.select_for_update()
        return list(queryset)

    def planejar_movimento(self, task, origem, indice, destino_id=None, destino=()):
        """
        Calcula o arranjo final das listas afetadas

        Args:
            task: tarefa movida
            origem: tarefas da lista atual, na ordem atual
            indice: índice de destino, None para o final
            destino_id: lista de destino (None ou a própria lista = reordenar)
            destino: tarefas da lista de destino, na ordem atual

        Returns:
            Dict[list_id, List[Task]] com a ordem final de cada lista
        """
        por_id = {t.pk: t for t in origem}
        por_id.update({t.pk: t for t in destino})
        por_id[task.pk] = task

        ids_origem = [t.pk for t in origem]
        if destino_id is None or destino_id == task.task_list_id:
            nova_origem, _ = ordering.move_in_sequence(ids_origem, task.pk, indice)
            return {task.task_list_id: [por_id[i] for i in nova_origem]}

        nova_origem, novo_destino = ordering.move_in_sequence(
            ids_origem, task.pk, indice, [t.pk for t in destino]
        )
        return {
            task.task_list_id: [por_id[i] for i in nova_origem],
            destino_id: [por_id[i] for i in novo_destino],
        }

    def mudancas(self, arranjo):
        """Triplas (task_id, list_id, position) que diferem do estado carregado"""
        antes = {}
        for tarefas in arranjo.values():
            for t in tarefas:
                antes[t.pk] = (t.task_list_id, t.position)
        return ordering.diff_positions(
            antes,
            {list_id: [t.pk for t in tarefas] for list_id, tarefas in arranjo.items()},
        )

    def aplicar(self, arranjo, listas=None):
        """
        Persiste o arranjo, gravando apenas tarefas que mudaram

        Args:
            arranjo: Dict[list_id, List[Task]]
            listas: Dict[list_id, TaskList] já travadas (para trocar a FK sem nova consulta)

        Returns:
            List[Task] alteradas, na ordem em que foram gravadas
        """
        listas = listas or {}
        por_id = {t.pk: t for tarefas in arranjo.values() for t in tarefas}
        alteradas = []

        for task_id, list_id, posicao in self.mudancas(arranjo):
            task = por_id[task_id]
            campos = ['position', 'updated_at']
            if task.task_list_id != list_id:
                if list_id in listas:
                    task.task_list = listas[list_id]
                else:
                    task.task_list_id = list_id
                campos += ['task_list', 'board']
            task.position = posicao
            task.save(update_fields=campos)
            alteradas.append(task)

        return alteradas

    def compactar(self, list_id):
        """Reindexa a lista na ordem atual (usado após remoções)"""
        tarefas = self.ordem_atual(list_id)
        return self.aplicar({list_id: tarefas})

    def verificar(self, list_id):
        """True se a lista respeita a sequência densa 0..n-1"""
        posicoes = Task.objects.filter(task_list_id=list_id).values_list('position', flat=True)
        return ordering.is_dense(posicoes)


# Instância global
position_ledger = PositionLedger()
