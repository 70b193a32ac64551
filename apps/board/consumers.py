# apps/board/consumers.py

import json
import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer
from django.conf import settings
from django.utils import timezone

from apps.core.models import Board
from apps.core.permissions import FluxoPermissions

from .broadcast import nome_grupo

logger = logging.getLogger(__name__)


class BoardConsumer(AsyncWebsocketConsumer):
    """
    Consumer WebSocket do fan-out dos boards

    Uma conexão por cliente; o cliente entra e sai dos boards com
    mensagens join_board / leave_board. O acesso é verificado a cada
    entrada. Eventos publicados no grupo board_<id> chegam como
    {type, boardId, payload}.
    """

    async def connect(self):
        """
        Aceita apenas usuários autenticados (token na query string)
        """
        self.user = self.scope['user']
        self.boards = set()

        if not self.user.is_authenticated:
            logger.warning("❌ Conexão WebSocket rejeitada - usuário não autenticado")
            await self.close()
            return

        await self.accept()
        logger.info(f"✅ WebSocket conectado - {self.user.username}")

    async def disconnect(self, close_code):
        """
        Sai de todos os grupos em que entrou
        """
        for board_id in list(getattr(self, 'boards', ())):
            await self.channel_layer.group_discard(nome_grupo(board_id), self.channel_name)
        self.boards = set()

        if self.user.is_authenticated:
            logger.info(f"🔌 WebSocket desconectado - {self.user.username} (código {close_code})")

    async def receive(self, text_data=None, bytes_data=None):
        """
        Recebe mensagens do cliente WebSocket
        Processa diferentes tipos de eventos
        """
        try:
            data = json.loads(text_data or '')
        except json.JSONDecodeError:
            logger.error(f"❌ JSON inválido recebido via WebSocket de {self.user.username}")
            await self.enviar_erro('Invalid JSON.')
            return

        if not isinstance(data, dict):
            await self.enviar_erro('Message must be an object.')
            return

        message_type = data.get('type')

        # Heartbeat/Ping
        if message_type == 'ping':
            await self.send_json({'type': 'pong', 'timestamp': self.get_timestamp()})

        elif message_type in ('join_board', 'joinBoard'):
            await self.entrar_board(data.get('boardId'))

        elif message_type == 'leave_board':
            await self.sair_board(data.get('boardId'))

        else:
            await self.enviar_erro(f'Unknown message type: {message_type}')

    async def entrar_board(self, board_id):
        board_id = self.ler_board_id(board_id)
        if board_id is None:
            await self.enviar_erro('boardId is required.')
            return

        if not await self.check_board_access(board_id):
            logger.warning(f"❌ {self.user.username} sem acesso ao board {board_id}")
            await self.enviar_erro('Board not found.', board_id)
            return

        await self.channel_layer.group_add(nome_grupo(board_id), self.channel_name)
        self.boards.add(board_id)

        await self.send_json({
            'type': 'joined',
            'boardId': board_id,
            'heartbeat': settings.FLUXO_WS_HEARTBEAT_INTERVAL,
        })
        logger.info(f"👥 {self.user.username} entrou no board {board_id}")

    async def sair_board(self, board_id):
        board_id = self.ler_board_id(board_id)
        if board_id is None:
            await self.enviar_erro('boardId is required.')
            return

        await self.channel_layer.group_discard(nome_grupo(board_id), self.channel_name)
        self.boards.discard(board_id)
        await self.send_json({'type': 'left', 'boardId': board_id})

    # === Handlers para eventos do grupo ===

    async def board_event(self, event):
        """
        Repassa o evento publicado no grupo do board
        """
        await self.send_json({
            'type': event['event'],
            'boardId': event['boardId'],
            'payload': event['payload'],
        })

    # === Métodos auxiliares ===

    async def send_json(self, content):
        await self.send(text_data=json.dumps(content))

    async def enviar_erro(self, mensagem, board_id=None):
        resposta = {'type': 'error', 'message': mensagem}
        if board_id is not None:
            resposta['boardId'] = board_id
        await self.send_json(resposta)

    @staticmethod
    def ler_board_id(valor):
        if isinstance(valor, bool):
            return None
        try:
            board_id = int(valor)
        except (TypeError, ValueError):
            return None
        return board_id if board_id > 0 else None

    @database_sync_to_async
    def check_board_access(self, board_id):
        """
        Verifica se usuário tem acesso ao board
        """
        board = Board.objects.filter(pk=board_id).first()
        if board is None:
            return False
        return FluxoPermissions.tem_acesso_board(self.user, board)

    def get_timestamp(self):
        """
        Retorna timestamp atual em formato ISO
        """
        return timezone.now().isoformat()
