# apps/activity/tests.py

from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse

from apps.activity.services import log_activity, log_board_activity
from apps.board.tests.base import FluxoTestMixin
from apps.core.models import ActivityLog, BoardActivity


class ActivityServicesTests(FluxoTestMixin, TestCase):

    def setUp(self):
        self.dono = self.criar_usuario('dono')
        self.board = self.criar_board(self.dono)

    def test_log_activity(self):
        registro = log_activity(
            self.dono, self.board.id, ActivityLog.TASK_CREATED, 'Task created: X', list_id=3, task_id=7
        )

        self.assertEqual(registro.task_ref, 7)
        self.assertEqual(registro.list_ref, 3)

    def test_log_activity_falha_silenciosa(self):
        with mock.patch.object(ActivityLog.objects, 'create', side_effect=DatabaseError('falhou')):
            with self.assertLogs('apps.activity.services', level='ERROR'):
                registro = log_activity(self.dono, self.board.id, ActivityLog.TASK_UPDATED)

        self.assertIsNone(registro)
        # a transação externa continua utilizável
        self.assertEqual(ActivityLog.objects.count(), 0)

    def test_log_board_activity_publica_apos_commit(self):
        with mock.patch('apps.board.broadcast.publicar') as publicar:
            with self.captureOnCommitCallbacks(execute=True):
                atividade = log_board_activity(self.board.id, self.dono, 'created task "X"')
                publicar.assert_not_called()

        self.assertEqual(atividade.username, 'dono')
        evento = publicar.call_args.args
        self.assertEqual(evento[:2], (self.board.id, 'activityLog'))
        self.assertEqual(evento[2]['action'], 'created task "X"')

    def test_log_board_activity_sem_publicar_quando_falha(self):
        with mock.patch('apps.board.broadcast.publicar') as publicar:
            with mock.patch.object(BoardActivity.objects, 'create', side_effect=DatabaseError('falhou')):
                with self.assertLogs('apps.activity.services', level='ERROR'):
                    with self.captureOnCommitCallbacks(execute=True):
                        self.assertIsNone(log_board_activity(self.board.id, self.dono, 'x'))

        publicar.assert_not_called()


class ActivityViewsTests(FluxoTestMixin, TestCase):

    def setUp(self):
        self.dono = self.criar_usuario('dono')
        self.colaborador = self.criar_usuario('colab')
        self.board = self.criar_board(self.dono, collaborators=[self.colaborador])

    def test_auditoria_apenas_do_proprio_usuario(self):
        for i in range(3):
            log_activity(self.dono, self.board.id, ActivityLog.TASK_UPDATED, f'dono {i}')
        log_activity(self.colaborador, self.board.id, ActivityLog.TASK_UPDATED, 'colab')

        url = reverse('activity:auditoria') + f'?boardId={self.board.id}&limit=2'
        corpo = self.json_request('get', url, self.dono).json()

        self.assertEqual(corpo['total'], 3)
        self.assertEqual(corpo['totalPages'], 2)
        self.assertEqual([r['details'] for r in corpo['data']], ['dono 2', 'dono 1'])

    def test_auditoria_exige_board(self):
        resposta = self.json_request('get', reverse('activity:auditoria'), self.dono)

        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json(), {'message': 'boardId query is required.'})

    @override_settings(FLUXO_ACTIVITY_FEED_LIMIT=2)
    def test_historico_ultimos_registros(self):
        for acao in ('primeira', 'segunda', 'terceira'):
            log_board_activity(self.board.id, self.dono, acao)

        resposta = self.json_request(
            'get', reverse('activity:historico', args=[self.board.id]), self.colaborador
        )

        self.assertEqual(resposta.status_code, 200)
        self.assertEqual([a['action'] for a in resposta.json()], ['terceira', 'segunda'])

    def test_historico_sem_acesso(self):
        estranho = self.criar_usuario('estranho')

        resposta = self.json_request('get', reverse('activity:historico', args=[self.board.id]), estranho)

        self.assertEqual(resposta.status_code, 404)
