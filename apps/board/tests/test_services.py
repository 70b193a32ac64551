# apps/board/tests/test_services.py

from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from apps.board.broadcast import publicar, publicar_apos_commit
from apps.board.ledger import PositionLedger, position_ledger
from apps.board.services import AssigneeFound, AssigneeNotFound, buscar_responsavel, task_service
from apps.core.exceptions import InvalidTarget, NotFound, ValidationFailed
from apps.core.models import ActivityLog, BoardActivity, Task

from .base import FluxoTestMixin


class TaskServiceTestCase(FluxoTestMixin, TestCase):
    """Board com duas listas: A = [a, T, b] e B = [c, d]"""

    def setUp(self):
        self.dono = self.criar_usuario('dono')
        self.colaborador = self.criar_usuario('colab')
        self.board = self.criar_board(self.dono, collaborators=[self.colaborador])
        self.lista_a = self.criar_lista(self.board, 'A')
        self.lista_b = self.criar_lista(self.board, 'B')
        self.a, self.t, self.b = self.criar_tarefas(self.lista_a, 'a', 'T', 'b')
        self.c, self.d = self.criar_tarefas(self.lista_b, 'c', 'd')

        patcher = mock.patch('apps.board.broadcast.publicar')
        self.publicar = patcher.start()
        self.addCleanup(patcher.stop)

    def atualizar(self, usuario, tarefa, **dados):
        with self.captureOnCommitCallbacks(execute=True):
            return task_service.atualizar_tarefa(usuario, tarefa.id, dados)

    def eventos(self):
        """[(evento, id)] publicados, na ordem"""
        return [
            (c.args[1], c.args[2].get('id'))
            for c in self.publicar.call_args_list
        ]


class MoveTaskTests(TaskServiceTestCase):

    def test_mover_para_outra_lista(self):
        resultado = self.atualizar(self.colaborador, self.t, listId=self.lista_b.id, position=0)

        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('b', 1)])
        self.assertEqual(self.ordem(self.lista_b), [('T', 0), ('c', 1), ('d', 2)])
        self.assertEqual(resultado['listId'], self.lista_b.id)
        self.assertEqual(resultado['position'], 0)
        self.assertEqual(resultado['boardId'], self.board.id)

    def test_mover_registra_uma_auditoria_e_publica(self):
        self.atualizar(self.dono, self.t, listId=self.lista_b.id, position=0)

        registros = ActivityLog.objects.all()
        self.assertEqual(len(registros), 1)
        self.assertEqual(registros[0].action, ActivityLog.TASK_MOVED)
        self.assertEqual(registros[0].task_ref, self.t.id)

        eventos = self.eventos()
        self.assertEqual(eventos[0], ('task_moved', self.t.id))
        self.assertCountEqual(
            eventos[1:4],
            [('taskUpdated', self.b.id), ('taskUpdated', self.c.id), ('taskUpdated', self.d.id)],
        )
        self.assertEqual(eventos[4][0], 'activityLog')
        self.assertEqual(
            BoardActivity.objects.get().action, 'moved task "T"'
        )

    def test_reordenar_na_mesma_lista(self):
        self.atualizar(self.dono, self.a, position=2)

        self.assertEqual(self.ordem(self.lista_a), [('T', 0), ('b', 1), ('a', 2)])
        self.assertEqual(ActivityLog.objects.get().action, ActivityLog.TASK_UPDATED)
        self.assertEqual(self.eventos()[0], ('taskUpdated', self.a.id))

    def test_mesma_lista_e_mesmo_indice_nao_grava_nada(self):
        antes = Task.objects.get(pk=self.t.pk).updated_at

        resultado = self.atualizar(self.dono, self.t, listId=self.lista_a.id, position=1)

        self.assertEqual(resultado['position'], 1)
        self.assertEqual(Task.objects.get(pk=self.t.pk).updated_at, antes)
        self.assertFalse(ActivityLog.objects.exists())
        self.assertFalse(BoardActivity.objects.exists())
        self.publicar.assert_not_called()

    def test_outra_lista_sem_posicao_vai_para_o_final(self):
        self.atualizar(self.dono, self.a, listId=self.lista_b.id)

        self.assertEqual(self.ordem(self.lista_b), [('c', 0), ('d', 1), ('a', 2)])
        self.assertEqual(self.ordem(self.lista_a), [('T', 0), ('b', 1)])

    def test_mover_para_lista_vazia(self):
        vazia = self.criar_lista(self.board, 'Vazia')

        self.atualizar(self.dono, self.b, listId=vazia.id, position=4)

        self.assertEqual(self.ordem(vazia), [('b', 0)])
        self.assertListaDensa(self.lista_a)

    def test_lista_de_outro_board(self):
        outro = self.criar_board(self.dono, title='Outro')
        lista_outro = self.criar_lista(outro)

        with self.assertRaises(InvalidTarget):
            self.atualizar(self.dono, self.t, listId=lista_outro.id, position=0)

        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('T', 1), ('b', 2)])
        self.assertEqual(Task.objects.get(pk=self.t.pk).board_id, self.board.id)

    def test_lista_inexistente(self):
        with self.assertRaises(NotFound):
            self.atualizar(self.dono, self.t, listId=999999)

    def test_usuario_sem_acesso(self):
        estranho = self.criar_usuario('estranho')

        with self.assertRaises(NotFound):
            self.atualizar(estranho, self.t, position=0)

        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('T', 1), ('b', 2)])

    def test_tarefa_inexistente(self):
        with self.assertRaises(NotFound):
            task_service.atualizar_tarefa(self.dono, 999999, {'position': 0})

    def test_movimentos_sucessivos_o_ultimo_vence(self):
        self.atualizar(self.dono, self.t, listId=self.lista_b.id, position=0)
        self.atualizar(self.colaborador, self.t, listId=self.lista_a.id, position=2)

        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('b', 1), ('T', 2)])
        self.assertEqual(self.ordem(self.lista_b), [('c', 0), ('d', 1)])

    def test_falha_de_persistencia_desfaz_tudo(self):
        aplicar_real = PositionLedger.aplicar

        def aplicar_e_falhar(arranjo, listas=None):
            aplicar_real(position_ledger, arranjo, listas)
            raise DatabaseError('disco cheio')

        with mock.patch.object(position_ledger, 'aplicar', side_effect=aplicar_e_falhar):
            with self.assertRaises(DatabaseError):
                self.atualizar(self.dono, self.t, listId=self.lista_b.id, position=0)

        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('T', 1), ('b', 2)])
        self.assertEqual(self.ordem(self.lista_b), [('c', 0), ('d', 1)])
        self.assertFalse(ActivityLog.objects.exists())
        self.publicar.assert_not_called()

    def test_falha_na_auditoria_nao_aborta_o_movimento(self):
        with mock.patch(
            'apps.activity.services.ActivityLog.objects.create',
            side_effect=DatabaseError('tabela travada')
        ):
            with self.assertLogs('apps.activity.services', level='ERROR'):
                self.atualizar(self.dono, self.t, listId=self.lista_b.id, position=0)

        self.assertEqual(self.ordem(self.lista_b), [('T', 0), ('c', 1), ('d', 2)])
        self.assertEqual(self.eventos()[0], ('task_moved', self.t.id))


class FieldEditTests(TaskServiceTestCase):

    def test_editar_campos(self):
        resultado = self.atualizar(
            self.dono, self.t,
            title='Nova', description='desc', priority='High', deadline='2030-01-15'
        )

        self.t.refresh_from_db()
        self.assertEqual(self.t.title, 'Nova')
        self.assertEqual(self.t.priority, 'High')
        self.assertEqual(self.t.deadline.date().isoformat(), '2030-01-15')
        self.assertEqual(resultado['position'], 1)
        self.assertEqual(ActivityLog.objects.get().action, ActivityLog.TASK_UPDATED)
        self.assertEqual(BoardActivity.objects.get().action, 'changed priority of "Nova" to High')

    def test_campos_invalidos(self):
        for dados in ({'priority': 'Urgente'}, {'deadline': 'amanhã'}, {'title': ''}, {'position': 'x'}):
            with self.subTest(dados=dados):
                with self.assertRaises(ValidationFailed):
                    task_service.atualizar_tarefa(self.dono, self.t.id, dados)

    def test_atribuir_por_nome_e_idempotente(self):
        ana = self.criar_usuario('ana')

        self.atualizar(self.dono, self.t, assigneeName='ana')
        resultado = self.atualizar(self.dono, self.t, assigneeName='ana')

        self.assertEqual(list(self.t.assignees.all()), [ana])
        self.assertEqual(
            resultado['assignees'],
            [{'id': ana.id, 'username': 'ana', 'email': 'ana@fluxo.test'}],
        )
        self.assertTrue(self.board.collaborators.filter(pk=ana.pk).exists())
        self.assertEqual(ActivityLog.objects.count(), 1)

    def test_atribuir_usuario_inexistente(self):
        with self.assertRaises(NotFound) as ctx:
            self.atualizar(self.dono, self.t, assigneeName='fantasma', title='Nao salvar')

        self.assertEqual(ctx.exception.message, 'User "fantasma" not found.')
        self.t.refresh_from_db()
        self.assertEqual(self.t.title, 'T')

    def test_substituir_responsaveis(self):
        ana = self.criar_usuario('ana')
        self.t.assignees.add(self.colaborador)

        self.atualizar(self.dono, self.t, assignees=[ana.id])

        self.assertEqual(list(self.t.assignees.all()), [ana])

    def test_buscar_responsavel(self):
        self.assertEqual(buscar_responsavel('colab'), AssigneeFound(self.colaborador))
        self.assertEqual(buscar_responsavel('ninguem'), AssigneeNotFound('ninguem'))


class CreateAndDeleteTests(TaskServiceTestCase):

    def criar(self, **dados):
        corpo = {'title': 'Nova', 'listId': self.lista_a.id, 'boardId': self.board.id}
        corpo.update(dados)
        with self.captureOnCommitCallbacks(execute=True):
            return task_service.criar_tarefa(self.colaborador, corpo)

    def test_criar_no_final(self):
        resultado = self.criar()

        self.assertEqual(resultado['position'], 3)
        self.assertEqual(resultado['priority'], 'Low')
        self.assertEqual(self.eventos()[0], ('taskCreated', resultado['id']))
        self.assertEqual(ActivityLog.objects.get().action, ActivityLog.TASK_CREATED)

    def test_criar_com_posicao_insere_e_reindexa(self):
        resultado = self.criar(position=0)

        self.assertEqual(resultado['position'], 0)
        self.assertEqual(
            self.ordem(self.lista_a),
            [('Nova', 0), ('a', 1), ('T', 2), ('b', 3)],
        )
        self.assertIn(('taskUpdated', self.b.id), self.eventos())

    def test_criar_exige_campos(self):
        with self.assertRaises(ValidationFailed):
            task_service.criar_tarefa(self.dono, {'title': 'Sem lista'})

    def test_criar_em_lista_de_outro_board(self):
        outro = self.criar_board(self.dono, title='Outro')
        lista_outro = self.criar_lista(outro)

        with self.assertRaises(NotFound):
            self.criar(listId=lista_outro.id)

    def test_remover_compacta_a_lista(self):
        with self.captureOnCommitCallbacks(execute=True):
            removida = task_service.remover_tarefa(self.dono, self.t.id)

        self.assertEqual(removida, self.t.id)
        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('b', 1)])

        registro = ActivityLog.objects.get()
        self.assertEqual(registro.action, ActivityLog.TASK_DELETED)
        self.assertEqual(registro.task_ref, self.t.id)

        eventos = self.eventos()
        self.assertEqual(eventos[0], ('taskDeleted', self.t.id))
        self.assertIn(('taskUpdated', self.b.id), eventos)

    def test_remover_sem_acesso(self):
        with self.assertRaises(NotFound):
            task_service.remover_tarefa(self.criar_usuario('estranho'), self.t.id)

        self.assertTrue(Task.objects.filter(pk=self.t.pk).exists())


class BroadcastTests(TestCase):

    def test_publicar_envia_para_o_grupo_do_board(self):
        layer = mock.Mock()
        layer.group_send = mock.AsyncMock()

        with mock.patch('apps.board.broadcast.get_channel_layer', return_value=layer):
            self.assertTrue(publicar(7, 'taskUpdated', {'id': 1}))

        layer.group_send.assert_awaited_once_with('board_7', {
            'type': 'board.event',
            'event': 'taskUpdated',
            'boardId': 7,
            'payload': {'id': 1},
        })

    def test_falha_ao_publicar_so_e_registrada(self):
        layer = mock.Mock()
        layer.group_send = mock.AsyncMock(side_effect=ConnectionError('redis fora'))

        with mock.patch('apps.board.broadcast.get_channel_layer', return_value=layer):
            with self.assertLogs('apps.board.broadcast', level='WARNING'):
                self.assertFalse(publicar(7, 'taskUpdated', {'id': 1}))

    def test_publicacao_so_apos_commit(self):
        with mock.patch('apps.board.broadcast.publicar') as publicar_mock:
            with self.captureOnCommitCallbacks(execute=False) as callbacks:
                publicar_apos_commit(3, 'taskDeleted', {'id': 9})
                publicar_mock.assert_not_called()

            self.assertEqual(len(callbacks), 1)
            callbacks[0]()
            publicar_mock.assert_called_once_with(3, 'taskDeleted', {'id': 9})


class ParallelMoveRequestsTests(TaskServiceTestCase):
    """Triplas (id, lista, posição) enviadas pelo cliente após soltar T em B no índice 0"""

    def test_demais_triplas_nao_alteram_nada_depois_da_arrastada(self):
        self.atualizar(self.dono, self.t, listId=self.lista_b.id, position=0)

        # chegada em ordem adversa: d, c, b
        for tarefa, lista, posicao in [(self.d, self.lista_b, 2), (self.c, self.lista_b, 1),
                                       (self.b, self.lista_a, 1)]:
            resultado = self.atualizar(self.colaborador, tarefa, listId=lista.id, position=posicao)
            self.assertEqual((resultado['listId'], resultado['position']), (lista.id, posicao))

        self.assertEqual(self.ordem(self.lista_b), [('T', 0), ('c', 1), ('d', 2)])
        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('b', 1)])
        self.assertEqual(ActivityLog.objects.count(), 1)


class ConcurrentListChangeTests(TaskServiceTestCase):

    def setUp(self):
        super().setUp()
        # leitura feita antes de outra requisição mover T para B
        self.t_antiga = task_service.obter_tarefa(self.dono, self.t.id)
        self.atualizar(self.dono, self.t, listId=self.lista_b.id, position=0)
        ActivityLog.objects.all().delete()

    def test_refaz_a_transacao_travando_a_lista_atual(self):
        with mock.patch.object(task_service, 'obter_tarefa', return_value=self.t_antiga), \
                mock.patch.object(position_ledger, 'travar_listas',
                                  wraps=position_ledger.travar_listas) as travar:
            self.atualizar(self.dono, self.t, position=2)

        self.assertEqual(
            [c.args for c in travar.call_args_list],
            [(self.lista_a.id, None), (self.lista_b.id, None)],
        )
        self.assertEqual(self.ordem(self.lista_b), [('c', 0), ('d', 1), ('T', 2)])
        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('b', 1)])
        self.assertEqual(ActivityLog.objects.count(), 1)

    def test_remover_trava_a_lista_atual(self):
        with mock.patch.object(task_service, 'obter_tarefa', return_value=self.t_antiga):
            with self.captureOnCommitCallbacks(execute=True):
                task_service.remover_tarefa(self.dono, self.t.id)

        self.assertEqual(self.ordem(self.lista_b), [('c', 0), ('d', 1)])
        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('b', 1)])


class PositionParsingTests(TaskServiceTestCase):

    def test_posicao_fracionaria_rejeitada(self):
        with self.assertRaises(ValidationFailed):
            self.atualizar(self.dono, self.t, position=1.7)

    def test_posicao_infinita_rejeitada(self):
        for valor in (float('inf'), float('nan')):
            with self.assertRaises(ValidationFailed):
                self.atualizar(self.dono, self.t, position=valor)

    def test_float_inteiro_aceito(self):
        self.atualizar(self.dono, self.t, position=2.0)
        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('b', 1), ('T', 2)])
