# apps/board/tests/test_views.py

from unittest import mock

from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse

from apps.core.models import Board, Task, TaskList

from .base import FluxoTestMixin


class ApiTestCase(FluxoTestMixin, TestCase):

    def setUp(self):
        self.dono = self.criar_usuario('dono')
        self.colaborador = self.criar_usuario('colab')
        self.estranho = self.criar_usuario('estranho')
        self.board = self.criar_board(self.dono, collaborators=[self.colaborador])
        self.lista_a = self.criar_lista(self.board, 'A')
        self.lista_b = self.criar_lista(self.board, 'B')
        self.a, self.t, self.b = self.criar_tarefas(self.lista_a, 'a', 'T', 'b')
        self.c, = self.criar_tarefas(self.lista_b, 'c')

        patcher = mock.patch('apps.board.broadcast.publicar')
        self.publicar = patcher.start()
        self.addCleanup(patcher.stop)


class BoardViewsTests(ApiTestCase):

    def test_exige_token(self):
        resposta = self.client.get(reverse('board:boards'))

        self.assertEqual(resposta.status_code, 401)
        self.assertEqual(resposta.json(), {'message': 'Access denied. No token provided.'})

    def test_criar_board(self):
        resposta = self.json_request('post', reverse('board:boards'), self.estranho, {'title': ' Novo '})

        self.assertEqual(resposta.status_code, 201)
        self.assertEqual(resposta.json()['title'], 'Novo')
        self.assertEqual(Board.objects.get(pk=resposta.json()['id']).owner, self.estranho)

    def test_criar_board_sem_titulo(self):
        resposta = self.json_request('post', reverse('board:boards'), self.dono, {})

        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json(), {'message': 'Title is required.'})

    def test_listar_boards_do_dono_e_compartilhados(self):
        self.criar_board(self.estranho, title='Privado')

        resposta = self.json_request('get', reverse('board:boards'), self.colaborador)

        self.assertEqual([b['title'] for b in resposta.json()], ['Sprint'])

    def test_detalhe_com_listas_e_tarefas_ordenadas(self):
        Task.objects.filter(pk=self.a.pk).update(position=2)
        Task.objects.filter(pk=self.b.pk).update(position=0)

        resposta = self.json_request(
            'get', reverse('board:board_detalhe', args=[self.board.id]), self.colaborador
        )

        self.assertEqual(resposta.status_code, 200)
        listas = resposta.json()['lists']
        self.assertEqual([lista['title'] for lista in listas], ['A', 'B'])
        self.assertEqual([t['title'] for t in listas[0]['tasks']], ['b', 'T', 'a'])

    def test_detalhe_sem_acesso(self):
        resposta = self.json_request(
            'get', reverse('board:board_detalhe', args=[self.board.id]), self.estranho
        )

        self.assertEqual(resposta.status_code, 404)
        self.assertEqual(resposta.json(), {'message': 'Board not found.'})

    def test_apenas_o_dono_altera_e_remove(self):
        url = reverse('board:board_detalhe', args=[self.board.id])

        resposta = self.json_request('put', url, self.colaborador, {'title': 'X'})
        self.assertEqual(resposta.status_code, 404)

        resposta = self.json_request('put', url, self.dono, {'title': 'Renomeado'})
        self.assertEqual(resposta.json()['title'], 'Renomeado')

        resposta = self.json_request('delete', url, self.colaborador)
        self.assertEqual(resposta.status_code, 404)

        resposta = self.json_request('delete', url, self.dono)
        self.assertEqual(resposta.status_code, 200)
        self.assertFalse(TaskList.objects.filter(board_id=self.board.id).exists())
        self.assertFalse(Task.objects.filter(board_id=self.board.id).exists())


class ListViewsTests(ApiTestCase):

    def test_criar_lista_no_final(self):
        with self.captureOnCommitCallbacks(execute=True):
            resposta = self.json_request(
                'post', reverse('board:listas'), self.dono,
                {'title': 'Done', 'boardId': self.board.id}
            )

        self.assertEqual(resposta.status_code, 201)
        self.assertEqual(resposta.json()['position'], 2)
        self.publicar.assert_called_once_with(self.board.id, 'listCreated', resposta.json())

    def test_colaborador_nao_cria_lista(self):
        resposta = self.json_request(
            'post', reverse('board:listas'), self.colaborador,
            {'title': 'Done', 'boardId': self.board.id}
        )

        self.assertEqual(resposta.status_code, 404)

    def test_listar_listas(self):
        resposta = self.json_request(
            'get', reverse('board:listas') + f'?boardId={self.board.id}', self.colaborador
        )

        self.assertEqual([lista['title'] for lista in resposta.json()], ['A', 'B'])

        resposta = self.json_request('get', reverse('board:listas'), self.colaborador)
        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json(), {'message': 'boardId query is required.'})

    def test_renomear_e_remover_lista(self):
        url = reverse('board:lista_detalhe', args=[self.lista_b.id])

        self.assertEqual(self.json_request('get', url, self.colaborador).json()['title'], 'B')
        self.assertEqual(self.json_request('put', url, self.colaborador, {'title': 'X'}).status_code, 404)

        with self.captureOnCommitCallbacks(execute=True):
            resposta = self.json_request('put', url, self.dono, {'title': 'Doing'})
        self.assertEqual(resposta.json()['title'], 'Doing')

        with self.captureOnCommitCallbacks(execute=True):
            resposta = self.json_request('delete', url, self.dono)
        self.assertEqual(resposta.status_code, 200)
        self.assertFalse(Task.objects.filter(pk=self.c.pk).exists())

        eventos = [c.args[1] for c in self.publicar.call_args_list]
        self.assertEqual(eventos, ['listUpdated', 'listDeleted'])
        self.assertEqual(self.publicar.call_args.args[2], {'id': self.lista_b.id})


class TaskViewsTests(ApiTestCase):

    def test_criar_tarefa(self):
        resposta = self.json_request('post', reverse('board:tarefas'), self.colaborador, {
            'title': 'Nova', 'listId': self.lista_b.id, 'boardId': self.board.id, 'priority': 'Medium',
        })

        self.assertEqual(resposta.status_code, 201)
        corpo = resposta.json()
        self.assertEqual(corpo['position'], 1)
        self.assertEqual(corpo['priority'], 'Medium')
        self.assertEqual(corpo['assignees'], [])

    def test_criar_tarefa_sem_campos(self):
        resposta = self.json_request('post', reverse('board:tarefas'), self.dono, {'title': 'Nova'})

        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json(), {'message': 'Title, listId and boardId are required.'})

    def test_listar_paginado(self):
        url = reverse('board:tarefas') + f'?boardId={self.board.id}&limit=2&page=2'

        corpo = self.json_request('get', url, self.colaborador).json()

        self.assertEqual(corpo['page'], 2)
        self.assertEqual(corpo['limit'], 2)
        self.assertEqual(corpo['total'], 4)
        self.assertEqual(corpo['totalPages'], 2)
        self.assertEqual([t['title'] for t in corpo['data']], ['b', 'c'])

    def test_pagina_alem_da_ultima(self):
        url = reverse('board:tarefas') + f'?listId={self.lista_a.id}&page=9'

        corpo = self.json_request('get', url, self.dono).json()

        self.assertEqual(corpo['data'], [])
        self.assertEqual(corpo['total'], 3)
        self.assertEqual(corpo['totalPages'], 1)

    @override_settings(FLUXO_TASK_PAGE_MAX=2)
    def test_limite_maximo(self):
        url = reverse('board:tarefas') + f'?boardId={self.board.id}&limit=1000'

        corpo = self.json_request('get', url, self.dono).json()

        self.assertEqual(corpo['limit'], 2)

    def test_busca_textual(self):
        Task.objects.filter(pk=self.b.pk).update(description='corrigir login')

        url = reverse('board:tarefas') + f'?boardId={self.board.id}&q=LOGIN'
        corpo = self.json_request('get', url, self.dono).json()

        self.assertEqual([t['id'] for t in corpo['data']], [self.b.id])

    def test_listar_exige_filtro_e_acesso(self):
        resposta = self.json_request('get', reverse('board:tarefas'), self.dono)
        self.assertEqual(resposta.status_code, 400)

        url = reverse('board:tarefas') + f'?listId={self.lista_a.id}'
        self.assertEqual(self.json_request('get', url, self.estranho).status_code, 404)

    def test_mover_tarefa(self):
        with self.captureOnCommitCallbacks(execute=True):
            resposta = self.json_request(
                'put', reverse('board:tarefa_detalhe', args=[self.t.id]), self.colaborador,
                {'listId': self.lista_b.id, 'position': 0}
            )

        self.assertEqual(resposta.status_code, 200)
        self.assertEqual(resposta.json()['listId'], self.lista_b.id)
        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('b', 1)])
        self.assertEqual(self.ordem(self.lista_b), [('T', 0), ('c', 1)])

    def test_mover_para_outro_board(self):
        outro = self.criar_board(self.dono, title='Outro')
        lista_outro = self.criar_lista(outro)

        resposta = self.json_request(
            'put', reverse('board:tarefa_detalhe', args=[self.t.id]), self.dono,
            {'listId': lista_outro.id}
        )

        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json(), {'message': 'Target list not found or not in same board.'})

    def test_posicao_fora_do_alcance_de_int(self):
        resposta = self.client.put(
            reverse('board:tarefa_detalhe', args=[self.t.id]),
            data='{"position": 1e309}',
            content_type='application/json',
            **self.auth(self.dono)
        )

        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json(), {'message': 'position must be an integer.'})
        self.assertEqual(self.ordem(self.lista_a), [('a', 0), ('T', 1), ('b', 2)])

    def test_tarefa_inexistente(self):
        resposta = self.json_request(
            'put', reverse('board:tarefa_detalhe', args=[999999]), self.dono, {'position': 0}
        )

        self.assertEqual(resposta.status_code, 404)
        self.assertEqual(resposta.json(), {'message': 'Task not found.'})

    def test_atribuir_por_nome(self):
        ana = self.criar_usuario('ana')

        resposta = self.json_request(
            'put', reverse('board:tarefa_detalhe', args=[self.t.id]), self.dono,
            {'assigneeName': 'ana'}
        )

        self.assertEqual(resposta.json()['assignees'], [ana.resumo()])

        resposta = self.json_request('get', reverse('board:boards'), ana)
        self.assertEqual([b['id'] for b in resposta.json()], [self.board.id])

    def test_corpo_malformado(self):
        resposta = self.client.put(
            reverse('board:tarefa_detalhe', args=[self.t.id]),
            data='[1, 2]', content_type='application/json', **self.auth(self.dono)
        )

        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json(), {'message': 'JSON body must be an object.'})

    def test_falha_de_persistencia_vira_503(self):
        with mock.patch(
            'apps.board.views.task_service.atualizar_tarefa',
            side_effect=DatabaseError('conexão perdida')
        ):
            resposta = self.json_request(
                'put', reverse('board:tarefa_detalhe', args=[self.t.id]), self.dono, {'position': 0}
            )

        self.assertEqual(resposta.status_code, 503)
        self.assertEqual(resposta.json(), {'message': 'Storage unavailable. Please reload the board.'})

    def test_obter_e_remover_tarefa(self):
        url = reverse('board:tarefa_detalhe', args=[self.a.id])

        self.assertEqual(self.json_request('get', url, self.colaborador).json()['title'], 'a')
        self.assertEqual(self.json_request('get', url, self.estranho).status_code, 404)

        resposta = self.json_request('delete', url, self.colaborador)

        self.assertEqual(resposta.status_code, 200)
        self.assertEqual(self.ordem(self.lista_a), [('T', 0), ('b', 1)])

    def test_metodo_nao_permitido(self):
        resposta = self.json_request('patch', reverse('board:tarefa_detalhe', args=[self.a.id]), self.dono, {})

        self.assertEqual(resposta.status_code, 405)
