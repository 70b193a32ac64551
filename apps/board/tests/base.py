# apps/board/tests/base.py

import json

from apps.core.auth_service import auth_service
from apps.core.models import Board, Task, TaskList, Usuario


class FluxoTestMixin:
    """Fábricas de dados compartilhadas pelos testes"""

    def criar_usuario(self, username, password='senha-segura-123'):
        return Usuario.objects.create_user(
            username=username,
            email=f'{username}@fluxo.test',
            password=password,
        )

    def criar_board(self, owner, title='Sprint', collaborators=()):
        board = Board.objects.create(title=title, owner=owner)
        if collaborators:
            board.collaborators.add(*collaborators)
        return board

    def criar_lista(self, board, title='To Do'):
        return TaskList.objects.create(title=title, board=board, position=board.lists.count())

    def criar_tarefas(self, lista, *titulos):
        """Cria as tarefas em sequência densa 0..n-1"""
        inicio = lista.tasks.count()
        return [
            Task.objects.create(title=titulo, task_list=lista, board=lista.board, position=inicio + i)
            for i, titulo in enumerate(titulos)
        ]

    def ordem(self, lista):
        """[(title, position)] da lista como está no banco"""
        return list(lista.tasks.order_by('position', 'id').values_list('title', 'position'))

    def assertListaDensa(self, lista):
        posicoes = list(lista.tasks.order_by('position').values_list('position', flat=True))
        self.assertEqual(posicoes, list(range(len(posicoes))))

    def auth(self, usuario):
        return {'HTTP_AUTHORIZATION': f'Bearer {auth_service.emitir_token(usuario)}'}

    def json_request(self, metodo, url, usuario=None, dados=None):
        """Requisição JSON pelo test client (com Bearer token se houver usuário)"""
        extra = self.auth(usuario) if usuario else {}
        kwargs = {}
        if dados is not None:
            kwargs = {'data': json.dumps(dados), 'content_type': 'application/json'}
        return getattr(self.client, metodo)(url, **kwargs, **extra)
