# apps/core/tests.py

import json
from io import StringIO

from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import reverse

from apps.board.tests.base import FluxoTestMixin
from apps.core.auth_service import auth_service
from apps.core.exceptions import CredentialExpired, Unauthorized
from apps.core.models import Board, Task


class AuthenticationServiceTests(FluxoTestMixin, TestCase):

    def test_criar_usuario_valido(self):
        sucesso, _, usuario = auth_service.criar_usuario({
            'username': 'ana',
            'email': 'ana@fluxo.test',
            'password': 'senha-segura-123',
        })

        self.assertTrue(sucesso)
        self.assertEqual(usuario.username, 'ana')
        self.assertTrue(usuario.check_password('senha-segura-123'))

    def test_criar_usuario_rejeita_dados_invalidos(self):
        casos = [
            {'username': 'ana', 'email': 'ana@fluxo.test'},
            {'username': 'ana', 'email': 'invalido', 'password': 'senha-segura-123'},
            {'username': 'ana', 'email': 'ana@fluxo.test', 'password': 'curta'},
            {'username': 'a b', 'email': 'ana@fluxo.test', 'password': 'senha-segura-123'},
        ]
        for dados in casos:
            with self.subTest(dados=dados):
                sucesso, mensagem, usuario = auth_service.criar_usuario(dados)
                self.assertFalse(sucesso)
                self.assertIsNone(usuario)
                self.assertTrue(mensagem)

    def test_criar_usuario_duplicado(self):
        self.criar_usuario('ana')

        sucesso, mensagem, _ = auth_service.criar_usuario({
            'username': 'ana',
            'email': 'outra@fluxo.test',
            'password': 'senha-segura-123',
        })

        self.assertFalse(sucesso)
        self.assertEqual(mensagem, 'Username or email already registered.')

    def test_login_por_username_ou_email(self):
        usuario = self.criar_usuario('ana')

        for identificador in ('ana', 'ana@fluxo.test'):
            with self.subTest(identificador=identificador):
                sucesso, _, autenticado = auth_service.fazer_login(identificador, 'senha-segura-123')
                self.assertTrue(sucesso)
                self.assertEqual(autenticado, usuario)

        sucesso, mensagem, _ = auth_service.fazer_login('ana', 'errada')
        self.assertFalse(sucesso)
        self.assertEqual(mensagem, 'Invalid credentials.')

    def test_token_resolve_para_o_usuario(self):
        usuario = self.criar_usuario('ana')
        token = auth_service.emitir_token(usuario)

        self.assertEqual(auth_service.resolver_token(token), usuario)
        self.assertEqual(auth_service.resolver_cabecalho(f'Bearer {token}'), usuario)

    def test_token_adulterado(self):
        token = auth_service.emitir_token(self.criar_usuario('ana'))

        with self.assertRaises(Unauthorized) as ctx:
            auth_service.resolver_token(token[:-2] + 'xx')
        self.assertEqual(ctx.exception.message, 'Invalid token.')

    @override_settings(FLUXO_TOKEN_MAX_AGE=-1)
    def test_token_expirado(self):
        token = auth_service.emitir_token(self.criar_usuario('ana'))

        with self.assertRaises(CredentialExpired):
            auth_service.resolver_token(token)

    def test_token_de_usuario_inativo(self):
        usuario = self.criar_usuario('ana')
        token = auth_service.emitir_token(usuario)
        usuario.is_active = False
        usuario.save()

        with self.assertRaises(Unauthorized):
            auth_service.resolver_token(token)

    def test_cabecalho_sem_bearer(self):
        with self.assertRaises(Unauthorized) as ctx:
            auth_service.resolver_cabecalho('Basic abc')
        self.assertEqual(ctx.exception.message, 'Access denied. No token provided.')


class AuthViewsTests(FluxoTestMixin, TestCase):

    def test_registro_devolve_token(self):
        resposta = self.json_request('post', reverse('core:register'), dados={
            'username': 'ana',
            'email': 'ana@fluxo.test',
            'password': 'senha-segura-123',
        })

        self.assertEqual(resposta.status_code, 201)
        corpo = resposta.json()
        self.assertEqual(corpo['user']['username'], 'ana')
        self.assertEqual(auth_service.resolver_token(corpo['token']).username, 'ana')

    def test_registro_invalido(self):
        resposta = self.json_request('post', reverse('core:register'), dados={'username': 'ana'})

        self.assertEqual(resposta.status_code, 400)
        self.assertIn('message', resposta.json())

    def test_login(self):
        self.criar_usuario('ana')

        resposta = self.json_request('post', reverse('core:login'), dados={
            'username': 'ana', 'password': 'senha-segura-123'
        })
        self.assertEqual(resposta.status_code, 200)
        self.assertIn('token', resposta.json())

        resposta = self.json_request('post', reverse('core:login'), dados={
            'username': 'ana', 'password': 'errada'
        })
        self.assertEqual(resposta.status_code, 401)
        self.assertEqual(resposta.json(), {'message': 'Invalid credentials.'})

    def test_json_malformado(self):
        resposta = self.client.post(
            reverse('core:login'), data='{nope', content_type='application/json'
        )

        self.assertEqual(resposta.status_code, 400)
        self.assertEqual(resposta.json(), {'message': 'Malformed JSON body.'})

    def test_me(self):
        usuario = self.criar_usuario('ana')

        resposta = self.json_request('get', reverse('core:me'), usuario)

        self.assertEqual(resposta.status_code, 200)
        self.assertEqual(resposta.json(), usuario.resumo())

    def test_me_sem_token(self):
        resposta = self.client.get(reverse('core:me'))

        self.assertEqual(resposta.status_code, 401)
        self.assertEqual(resposta.json(), {'message': 'Access denied. No token provided.'})

    def test_me_token_invalido(self):
        resposta = self.client.get(reverse('core:me'), HTTP_AUTHORIZATION='Bearer lixo')

        self.assertEqual(resposta.status_code, 401)
        self.assertEqual(resposta.json(), {'message': 'Invalid token.'})

    def test_me_token_expirado(self):
        extra = self.auth(self.criar_usuario('ana'))

        with override_settings(FLUXO_TOKEN_MAX_AGE=-1):
            resposta = self.client.get(reverse('core:me'), **extra)

        self.assertEqual(resposta.status_code, 401)
        self.assertEqual(resposta.json(), {'message': 'Token expired.'})

    def test_health_check(self):
        resposta = self.client.get('/health/')

        self.assertEqual(resposta.status_code, 200)
        self.assertEqual(json.loads(resposta.content)['status'], 'healthy')


class ModelsTests(FluxoTestMixin, TestCase):

    def setUp(self):
        self.dono = self.criar_usuario('dono')
        self.colaborador = self.criar_usuario('colab')
        self.estranho = self.criar_usuario('estranho')
        self.board = self.criar_board(self.dono, collaborators=[self.colaborador])

    def test_acesso_ao_board(self):
        self.assertTrue(self.board.tem_acesso(self.dono))
        self.assertTrue(self.board.tem_acesso(self.colaborador))
        self.assertFalse(self.board.tem_acesso(self.estranho))

    def test_boards_acessiveis_sem_duplicatas(self):
        outro = self.criar_board(self.colaborador, title='Outro', collaborators=[self.dono])

        acessiveis = list(Board.objects.acessiveis_por(self.dono))

        self.assertCountEqual(acessiveis, [self.board, outro])

    def test_board_da_tarefa_segue_a_lista(self):
        outro_board = self.criar_board(self.dono, title='Outro')
        lista = self.criar_lista(self.board)
        lista_outro = self.criar_lista(outro_board)

        tarefa = Task.objects.create(title='T', task_list=lista, board=outro_board)
        self.assertEqual(tarefa.board, self.board)

        tarefa.task_list = lista_outro
        tarefa.save()
        tarefa.refresh_from_db()
        self.assertEqual(tarefa.board_id, outro_board.id)


class CheckPositionsCommandTests(FluxoTestMixin, TestCase):

    def setUp(self):
        self.dono = self.criar_usuario('dono')
        self.board = self.criar_board(self.dono)
        self.lista = self.criar_lista(self.board)
        self.tarefas = self.criar_tarefas(self.lista, 'A', 'B', 'C')

    def test_sem_inconsistencias(self):
        saida = StringIO()
        call_command('check_positions', stdout=saida)

        self.assertIn('nenhuma inconsistência', saida.getvalue())

    def test_reporta_e_repara_buracos(self):
        Task.objects.filter(pk=self.tarefas[1].pk).update(position=5)

        saida = StringIO()
        call_command('check_positions', '--board', str(self.board.id), stdout=saida)
        self.assertIn('Use --repair', saida.getvalue())
        self.assertEqual(self.ordem(self.lista), [('A', 0), ('C', 2), ('B', 5)])

        call_command('check_positions', '--repair', stdout=StringIO())
        self.assertEqual(self.ordem(self.lista), [('A', 0), ('C', 1), ('B', 2)])
