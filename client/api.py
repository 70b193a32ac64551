# client/api.py

import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from .config import ClientConfig

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Resposta de erro da API ({"message": ...}) ou falha de rede/timeout"""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ApiUnauthorized(ApiError):
    """401: credencial ausente, inválida ou expirada"""


class BoardApiClient:
    """
    Cliente HTTP da API do Fluxo Board

    Um 401 limpa o token guardado e chama on_unauthorized (que deve
    levar o usuário a autenticar de novo).
    """

    def __init__(self, config: Optional[ClientConfig] = None, token: Optional[str] = None,
                 on_unauthorized: Optional[Callable] = None, transport=None):
        self.config = config or ClientConfig()
        self.token = token
        self._on_unauthorized = on_unauthorized
        self._client = httpx.AsyncClient(
            base_url=self.config.api_url + '/',
            timeout=self.config.request_timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    # === AUTENTICAÇÃO ===

    async def login(self, username: str, password: str) -> Dict:
        dados = await self._request('POST', 'auth/login/', json={
            'username': username,
            'password': password,
        })
        self.token = dados['token']
        return dados['user']

    async def register(self, username: str, email: str, password: str) -> Dict:
        dados = await self._request('POST', 'auth/register/', json={
            'username': username,
            'email': email,
            'password': password,
        })
        self.token = dados['token']
        return dados['user']

    # === LEITURA ===

    async def fetch_board(self, board_id: int) -> Dict:
        """Board com listas e tarefas de cada lista"""
        return await self._request('GET', f'boards/{board_id}/')

    async def fetch_lists(self, board_id: int) -> List[Dict]:
        return await self._request('GET', 'lists/', params={'boardId': board_id})

    async def fetch_tasks(self, board_id: Optional[int] = None, list_id: Optional[int] = None,
                          q: Optional[str] = None, page: int = 1, limit: int = 100) -> Dict:
        """Uma página de tarefas: {data, page, limit, total, totalPages}"""
        params: Dict[str, Any] = {'page': page, 'limit': limit}
        if board_id is not None:
            params['boardId'] = board_id
        if list_id is not None:
            params['listId'] = list_id
        if q:
            params['q'] = q
        return await self._request('GET', 'tasks/', params=params)

    async def fetch_all_tasks(self, board_id: int, limit: int = 500) -> List[Dict]:
        """Todas as tarefas do board, percorrendo as páginas"""
        tarefas = []
        page = 1
        while True:
            resultado = await self.fetch_tasks(board_id=board_id, page=page, limit=limit)
            tarefas.extend(resultado['data'])
            if page >= resultado['totalPages']:
                return tarefas
            page += 1

    # === ESCRITA ===

    async def create_task(self, board_id: int, list_id: int, title: str, **campos) -> Dict:
        corpo = {'title': title, 'listId': list_id, 'boardId': board_id, **campos}
        return await self._request('POST', 'tasks/', json=corpo)

    async def move_task(self, task_id: int, list_id: int, position: int) -> Dict:
        """Move a tarefa para list_id no índice position (resposta autoritativa)"""
        return await self._request('PUT', f'tasks/{task_id}/', json={
            'listId': list_id,
            'position': position,
        })

    async def update_task(self, task_id: int, **campos) -> Dict:
        return await self._request('PUT', f'tasks/{task_id}/', json=campos)

    async def assign_task(self, task_id: int, username: str) -> Dict:
        return await self._request('PUT', f'tasks/{task_id}/', json={'assigneeName': username})

    async def delete_task(self, task_id: int) -> Dict:
        return await self._request('DELETE', f'tasks/{task_id}/')

    # =================== MÉTODOS PRIVADOS ===================

    async def _request(self, method: str, path: str, **kwargs):
        headers = {}
        if self.token:
            headers['Authorization'] = f'Bearer {self.token}'

        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(f"⏱️ Timeout em {method} {path}")
            raise ApiError(0, 'Request timed out.') from e
        except httpx.HTTPError as e:
            logger.warning(f"❌ Falha de rede em {method} {path}: {e}")
            raise ApiError(0, str(e)) from e

        if response.status_code == 401:
            await self._credencial_invalida()
            raise ApiUnauthorized(401, self._mensagem(response))

        if response.status_code >= 400:
            raise ApiError(response.status_code, self._mensagem(response))

        return response.json()

    async def _credencial_invalida(self):
        self.token = None
        if self._on_unauthorized is None:
            return
        resultado = self._on_unauthorized()
        if inspect.isawaitable(resultado):
            await resultado

    @staticmethod
    def _mensagem(response) -> str:
        try:
            corpo = response.json()
        except ValueError:
            return response.text or response.reason_phrase
        if isinstance(corpo, dict) and corpo.get('message'):
            return corpo['message']
        return response.reason_phrase
