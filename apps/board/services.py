# apps/board/services.py

"""
Serviço de Tarefas - coordenador único das escritas em Task

Toda criação, edição, movimentação e remoção de tarefa passa por aqui:
- as listas envolvidas são travadas e reindexadas numa única transação
- exatamente um registro de auditoria por operação
- os eventos do board são publicados somente após o commit
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from django.db import transaction

from apps.activity.services import log_activity, log_board_activity
from apps.core.exceptions import InvalidTarget, NotFound, PersistenceFailure, ValidationFailed
from apps.core.models import ActivityLog, Task, Usuario
from apps.core.permissions import FluxoPermissions
from apps.core.utils import exigir_id, ler_prazo

from .broadcast import TASK_CREATED, TASK_DELETED, TASK_MOVED, TASK_UPDATED, publicar_apos_commit
from .ledger import position_ledger
from .serializers import serializar_tarefa

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssigneeFound:
    user: Usuario


@dataclass(frozen=True)
class AssigneeNotFound:
    username: str


class _ListaTrocada(Exception):
    """A tarefa está em outra lista; a transação é desfeita e refeita"""

    def __init__(self, list_id):
        super().__init__(list_id)
        self.list_id = list_id


def buscar_responsavel(username: str) -> Union[AssigneeFound, AssigneeNotFound]:
    """Resolve o responsável pelo username único"""
    usuario = Usuario.objects.filter(username=username, is_active=True).first()
    if usuario is None:
        return AssigneeNotFound(username)
    return AssigneeFound(usuario)


class TaskService:
    """
    Coordenador de movimentação e edição de tarefas

    O banco é a única fonte de verdade: nada sobre o board é mantido
    em memória entre requisições. Dois movimentos concorrentes na mesma
    lista são serializados pelos locks e o último a gravar vence.
    """

    _TAMANHO_MAXIMO_TITULO = 200
    _PRIORIDADES = {valor for valor, _ in Task.PRIORIDADE_CHOICES}
    # novas tentativas quando a tarefa troca de lista entre a leitura e o lock
    _TENTATIVAS_LOCK = 3

    def __init__(self, ledger=None):
        self._ledger = ledger or position_ledger

    def obter_tarefa(self, user, task_id) -> Task:
        """Tarefa acessível ao usuário (dono ou colaborador do board)"""
        task = Task.objects.select_related('board', 'task_list').filter(pk=task_id).first()
        if task is None:
            raise NotFound('Task not found.')
        if not FluxoPermissions.tem_acesso_board(user, task.board):
            raise NotFound('Board not found.')
        return task

    def criar_tarefa(self, user, dados: Dict) -> Dict:
        """
        Cria tarefa no final da lista

        Com position, a tarefa é inserida nesse índice e a lista é reindexada.
        """
        if not dados.get('title') or not dados.get('listId') or not dados.get('boardId'):
            raise ValidationFailed('Title, listId and boardId are required.')

        titulo = self._ler_titulo(dados['title'])
        list_id = exigir_id(dados['listId'], 'listId')
        board = FluxoPermissions.obter_board_acessivel(user, exigir_id(dados['boardId'], 'boardId'))
        campos = self._ler_campos(dados)
        posicao = self._ler_posicao(dados.get('position'))

        with transaction.atomic():
            listas = self._ledger.travar_listas(list_id)
            lista = listas.get(list_id)
            if lista is None or lista.board_id != board.id:
                raise NotFound('List not found.')

            atuais = self._ledger.ordem_atual(list_id)
            task = Task.objects.create(
                title=titulo,
                task_list=lista,
                board=board,
                position=len(atuais),
                **campos
            )

            deslocadas = []
            if posicao is not None:
                arranjo = self._ledger.planejar_movimento(task, atuais + [task], posicao)
                deslocadas = [t for t in self._ledger.aplicar(arranjo, listas) if t.pk != task.pk]

            log_activity(
                user, board.id, ActivityLog.TASK_CREATED,
                f'Task created: {titulo}', list_id=list_id, task_id=task.id
            )

            payload = serializar_tarefa(task)
            publicar_apos_commit(board.id, TASK_CREATED, payload)
            self._publicar_deslocadas(board.id, deslocadas)
            log_board_activity(board.id, user, f'created task "{titulo}"')

        logger.info(f"📝 Tarefa {task.id} criada na lista {list_id} (posição {task.position})")
        return payload

    def atualizar_tarefa(self, user, task_id, dados: Dict) -> Dict:
        """
        Move e/ou edita a tarefa

        - listId diferente da lista atual: move (sem position, vai para o final)
        - só position: reordena dentro da própria lista
        - mesma lista, mesmo índice e nenhum campo alterado: nada é gravado
        """
        task = self.obter_tarefa(user, task_id)

        campos = self._ler_campos(dados, parcial=True)
        if 'title' in dados:
            campos['title'] = self._ler_titulo(dados['title'])
        destino_id = exigir_id(dados['listId'], 'listId') if dados.get('listId') is not None else None
        posicao = self._ler_posicao(dados.get('position'))
        responsaveis_ids = self._ler_responsaveis(dados.get('assignees'))
        nome_responsavel = dados.get('assigneeName')
        if nome_responsavel is not None and not isinstance(nome_responsavel, str):
            raise ValidationFailed('assigneeName must be a string.')

        origem_id = task.task_list_id
        for _ in range(self._TENTATIVAS_LOCK):
            try:
                task, payload, alteradas = self._atualizar_travado(
                    user, task.pk, origem_id, destino_id, posicao, campos,
                    responsaveis_ids, nome_responsavel
                )
                break
            except _ListaTrocada as e:
                # movida por outra requisição entre a leitura e o lock
                logger.info(f"🔁 Tarefa {task_id} mudou para a lista {e.list_id}, travando de novo")
                origem_id = e.list_id
        else:
            raise PersistenceFailure('Task is being moved concurrently. Please retry.')

        if alteradas:
            logger.info(
                f"🔀 Tarefa {task.id} movida para lista {task.task_list_id} posição {task.position} "
                f"({len(alteradas)} tarefa(s) regravada(s))"
            )
        return payload

    def _atualizar_travado(self, user, task_id, origem_id, destino_id, posicao, campos,
                           responsaveis_ids, nome_responsavel):
        """
        Uma tentativa de atualizar_tarefa com as listas travadas

        Todas as listas são travadas numa única chamada (ordem crescente de id).
        Se a tarefa já não está em origem_id, a transação é desfeita com
        _ListaTrocada para que a próxima tentativa trave o conjunto correto.
        """
        with transaction.atomic():
            listas = self._ledger.travar_listas(origem_id, destino_id)
            task = (
                Task.objects.select_for_update(of=('self',))
                .select_related('board')
                .filter(pk=task_id)
                .first()
            )
            if task is None:
                raise NotFound('Task not found.')
            if task.task_list_id != origem_id:
                raise _ListaTrocada(task.task_list_id)

            mudou_lista = destino_id is not None and destino_id != origem_id
            if mudou_lista:
                destino = listas.get(destino_id)
                if destino is None:
                    raise NotFound('List not found.')
                if destino.board_id != task.board_id:
                    raise InvalidTarget()

            alteradas = []
            if mudou_lista or posicao is not None:
                arranjo = self._ledger.planejar_movimento(
                    task,
                    self._ledger.ordem_atual(origem_id),
                    posicao,
                    destino_id if mudou_lista else None,
                    self._ledger.ordem_atual(destino_id) if mudou_lista else (),
                )
                alteradas = self._ledger.aplicar(arranjo, listas)

            campos_alterados = [c for c, v in campos.items() if getattr(task, c) != v]
            for campo in campos_alterados:
                setattr(task, campo, campos[campo])

            alterou_responsaveis = self._aplicar_responsaveis(task, responsaveis_ids, nome_responsavel)

            if not alteradas and not campos_alterados and not alterou_responsaveis:
                logger.debug(f"Tarefa {task.id} sem alterações")
                return task, serializar_tarefa(task), []

            if campos_alterados or alterou_responsaveis:
                task.save(update_fields=campos_alterados + ['updated_at'])

            if mudou_lista:
                log_activity(
                    user, task.board_id, ActivityLog.TASK_MOVED,
                    f'Task moved from list {origem_id} to {task.task_list_id}',
                    list_id=task.task_list_id, task_id=task.id
                )
            else:
                log_activity(
                    user, task.board_id, ActivityLog.TASK_UPDATED,
                    f'Task updated: {task.title}',
                    list_id=task.task_list_id, task_id=task.id
                )

            payload = serializar_tarefa(task)
            publicar_apos_commit(task.board_id, TASK_MOVED if mudou_lista else TASK_UPDATED, payload)
            self._publicar_deslocadas(task.board_id, [t for t in alteradas if t.pk != task.pk])

            log_board_activity(task.board_id, user, self._descrever_alteracao(
                task, mudou_lista, bool(alteradas), campos_alterados, nome_responsavel
            ))

        return task, payload, alteradas

    def remover_tarefa(self, user, task_id) -> int:
        """Remove a tarefa e compacta a lista de origem na mesma transação"""
        task = self.obter_tarefa(user, task_id)

        list_id = task.task_list_id
        for _ in range(self._TENTATIVAS_LOCK):
            try:
                self._remover_travado(user, task.pk, list_id)
                break
            except _ListaTrocada as e:
                list_id = e.list_id
        else:
            raise PersistenceFailure('Task is being moved concurrently. Please retry.')

        logger.info(f"🗑️ Tarefa {task.pk} removida da lista {list_id}")
        return task.pk

    # =================== MÉTODOS PRIVADOS (ENCAPSULADOS) ===================

    def _remover_travado(self, user, task_id, list_id):
        with transaction.atomic():
            self._ledger.travar_listas(list_id)
            task = Task.objects.select_for_update().filter(pk=task_id).first()
            if task is None:
                raise NotFound('Task not found.')
            if task.task_list_id != list_id:
                raise _ListaTrocada(task.task_list_id)

            board_id, titulo = task.board_id, task.title
            task.delete()
            deslocadas = self._ledger.compactar(list_id)

            log_activity(
                user, board_id, ActivityLog.TASK_DELETED,
                f'Task deleted: {titulo}', list_id=list_id, task_id=task_id
            )

            publicar_apos_commit(board_id, TASK_DELETED, {'id': task_id})
            self._publicar_deslocadas(board_id, deslocadas)
            log_board_activity(board_id, user, f'deleted task "{titulo}"')

    def _publicar_deslocadas(self, board_id, tarefas: List[Task]):
        for t in tarefas:
            publicar_apos_commit(board_id, TASK_UPDATED, serializar_tarefa(t))

    def _aplicar_responsaveis(self, task, responsaveis_ids, nome_responsavel) -> bool:
        """
        Substitui (assignees) e/ou acrescenta por nome (assigneeName)

        O usuário atribuído por nome vira colaborador do board, na mesma transação.
        """
        alterou = False

        if responsaveis_ids is not None:
            usuarios = list(Usuario.objects.filter(pk__in=responsaveis_ids))
            if len(usuarios) != len(responsaveis_ids):
                raise NotFound('User not found.')
            atuais = set(task.assignees.values_list('id', flat=True))
            if atuais != set(responsaveis_ids):
                task.assignees.set(usuarios)
                alterou = True

        if nome_responsavel:
            resultado = buscar_responsavel(nome_responsavel)
            if isinstance(resultado, AssigneeNotFound):
                raise NotFound(f'User "{resultado.username}" not found.')

            usuario = resultado.user
            if not task.assignees.filter(pk=usuario.pk).exists():
                task.assignees.add(usuario)
                alterou = True
            if usuario.pk != task.board.owner_id:
                task.board.collaborators.add(usuario)

        return alterou

    def _descrever_alteracao(self, task, mudou_lista, reordenou, campos_alterados, nome_responsavel) -> str:
        """Texto do histórico legível do board"""
        if mudou_lista:
            return f'moved task "{task.title}"'
        if 'priority' in campos_alterados:
            return f'changed priority of "{task.title}" to {task.priority}'
        if nome_responsavel:
            return f'assigned "{task.title}" to {nome_responsavel}'
        if campos_alterados:
            return f'updated task "{task.title}"'
        if reordenou:
            return f'reordered task "{task.title}"'
        return f'updated assignees of "{task.title}"'

    def _ler_titulo(self, valor) -> str:
        if not isinstance(valor, str) or not valor.strip():
            raise ValidationFailed('Title is required.')
        titulo = valor.strip()
        if len(titulo) > self._TAMANHO_MAXIMO_TITULO:
            raise ValidationFailed(f'Title must have at most {self._TAMANHO_MAXIMO_TITULO} characters.')
        return titulo

    def _ler_posicao(self, valor) -> Optional[int]:
        """Índice de destino; None = final da lista. Negativos viram 0 no ledger"""
        if valor is None:
            return None
        if isinstance(valor, bool) or not isinstance(valor, (int, float, str)):
            raise ValidationFailed('position must be an integer.')
        # 1.7, inf e nan não são índices
        if isinstance(valor, float) and not valor.is_integer():
            raise ValidationFailed('position must be an integer.')
        try:
            return int(valor)
        except (ValueError, OverflowError):
            raise ValidationFailed('position must be an integer.')

    def _ler_responsaveis(self, valor) -> Optional[List[int]]:
        """Aceita [id, ...] ou [{id: ...}, ...]"""
        if valor is None:
            return None
        if not isinstance(valor, list):
            raise ValidationFailed('assignees must be a list of user ids.')
        ids = []
        for item in valor:
            if isinstance(item, dict):
                item = item.get('id')
            ids.append(exigir_id(item, 'assignees'))
        return list(dict.fromkeys(ids))

    def _ler_campos(self, dados: Dict, parcial: bool = False) -> Dict:
        """
        description / priority / deadline

        Na criação ausentes recebem o padrão; na edição (parcial) só
        entram os campos presentes no corpo.
        """
        campos = {}

        if 'description' in dados or not parcial:
            descricao = dados.get('description') or ''
            if not isinstance(descricao, str):
                raise ValidationFailed('description must be a string.')
            campos['description'] = descricao

        if 'priority' in dados or not parcial:
            prioridade = dados.get('priority') or Task.PRIORIDADE_BAIXA
            if prioridade not in self._PRIORIDADES:
                raise ValidationFailed('priority must be one of Low, Medium, High.')
            campos['priority'] = prioridade

        if 'deadline' in dados or not parcial:
            campos['deadline'] = ler_prazo(dados.get('deadline'))

        return campos


# Instância global do serviço (Singleton pattern)
task_service = TaskService()
