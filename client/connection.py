# client/connection.py

"""
Conexão WebSocket única do processo

Abre uma vez (open), é compartilhada por todas as telas e fechada no
encerramento (close). Cada tela se inscreve no board que exibe
(subscribe) e sai ao trocar de tela (unsubscribe), assim nenhum
handler fica pendurado entre transições.
"""

import asyncio
import json
import logging
from collections import defaultdict
from typing import Callable, Dict, List, Optional
from urllib.parse import quote

import websockets
from websockets.exceptions import ConnectionClosed

logger = logging.getLogger(__name__)

# handler(event, payload)
Handler = Callable[[str, object], None]


class ConnectionManager:
    """
    Gerencia a conexão e a inscrição por board (tópico board_<id>)

    on_disconnect é chamado quando o servidor encerra a conexão; quem
    reconecta (open) deve buscar os boards de novo, pois não há backfill.
    """

    def __init__(self, connect=None, on_disconnect: Optional[Callable[[], None]] = None):
        self._connect = connect or websockets.connect
        self._on_disconnect = on_disconnect
        self._ws = None
        self._leitor: Optional[asyncio.Task] = None
        self._handlers: Dict[int, List[Handler]] = defaultdict(list)

    @property
    def is_open(self) -> bool:
        return self._ws is not None

    async def open(self, url: str, token: str):
        """Conecta (idempotente) e reentra nos boards já inscritos"""
        if self.is_open:
            return

        self._ws = await self._connect(f'{url}?token={quote(token)}')
        self._leitor = asyncio.create_task(self._ler(self._ws))
        logger.info(f"✅ WebSocket conectado em {url}")

        for board_id in list(self._handlers):
            await self._enviar({'type': 'join_board', 'boardId': board_id})

    async def close(self):
        """Encerra a conexão; as inscrições continuam registradas para o próximo open"""
        ws, leitor = self._ws, self._leitor
        self._ws = None
        self._leitor = None

        if leitor is not None:
            leitor.cancel()
            try:
                await leitor
            except asyncio.CancelledError:
                pass
        if ws is not None:
            await ws.close()
            logger.info("🔌 WebSocket desconectado")

    async def subscribe(self, board_id: int, handler: Handler):
        primeiro = not self._handlers.get(board_id)
        if handler not in self._handlers[board_id]:
            self._handlers[board_id].append(handler)
        if primeiro and self.is_open:
            await self._enviar({'type': 'join_board', 'boardId': board_id})

    async def unsubscribe(self, board_id: int, handler: Handler):
        handlers = self._handlers.get(board_id)
        if not handlers:
            return
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            del self._handlers[board_id]
            if self.is_open:
                await self._enviar({'type': 'leave_board', 'boardId': board_id})

    async def ping(self):
        await self._enviar({'type': 'ping'})

    def subscribers(self, board_id: int) -> List[Handler]:
        return list(self._handlers.get(board_id, ()))

    # =================== MÉTODOS PRIVADOS ===================

    async def _enviar(self, mensagem: Dict):
        await self._ws.send(json.dumps(mensagem))

    async def _ler(self, ws):
        try:
            async for bruto in ws:
                self._dispatch(bruto)
        except ConnectionClosed as e:
            logger.warning(f"⚠️ Conexão WebSocket encerrada pelo servidor: {e}")
        except Exception:
            logger.exception("❌ Leitura do WebSocket interrompida")
        finally:
            # fechada pelo servidor: libera o próximo open()
            if self._ws is ws:
                self._ws = None
                self._leitor = None
                logger.info("🔌 WebSocket desconectado pelo servidor")
                self._avisar_desconexao()

    def _avisar_desconexao(self):
        if self._on_disconnect is None:
            return
        try:
            self._on_disconnect()
        except Exception:
            logger.exception("❌ Callback de desconexão falhou")

    def _dispatch(self, bruto):
        """Entrega {type, boardId, payload} aos handlers do board"""
        try:
            mensagem = json.loads(bruto)
        except json.JSONDecodeError:
            logger.error("❌ JSON inválido recebido via WebSocket")
            return

        tipo = mensagem.get('type')
        if tipo in ('pong', 'joined', 'left'):
            logger.debug(f"WebSocket: {tipo} {mensagem.get('boardId', '')}")
            return
        if tipo == 'error':
            logger.warning(f"⚠️ Erro do servidor WebSocket: {mensagem.get('message')}")
            return

        for handler in self.subscribers(mensagem.get('boardId')):
            try:
                handler(tipo, mensagem.get('payload'))
            except Exception:
                logger.exception(f"❌ Handler falhou ao processar {tipo}")


_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """Instância do processo (criada no primeiro uso)"""
    global _manager
    if _manager is None:
        _manager = ConnectionManager()
    return _manager
