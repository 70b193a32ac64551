# apps/core/middleware.py

import logging
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from channels.middleware import BaseMiddleware
from django.contrib.auth.models import AnonymousUser

from .auth_service import auth_service
from .exceptions import Unauthorized

logger = logging.getLogger(__name__)


class BearerTokenMiddleware:
    """
    Autentica requisições HTTP da API pelo cabeçalho Authorization

    Sem cabeçalho, o request.user da sessão (admin) é mantido.
    Com cabeçalho inválido, o erro fica em request.auth_error para o
    decorator api_view responder 401 com a mensagem correta.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.auth_error = None
        authorization = request.headers.get('Authorization', '')

        if authorization:
            try:
                request.user = auth_service.resolver_cabecalho(authorization)
            except Unauthorized as e:
                request.user = AnonymousUser()
                request.auth_error = e

        return self.get_response(request)


class BearerTokenAuthMiddleware(BaseMiddleware):
    """
    Equivalente do BearerTokenMiddleware para WebSockets

    Navegadores não enviam cabeçalhos customizados no handshake,
    então o token vem na query string: ws/boards/?token=<bearer>
    """

    async def __call__(self, scope, receive, send):
        scope = dict(scope)
        query = parse_qs(scope.get('query_string', b'').decode())
        token = (query.get('token') or [''])[0]
        scope['user'] = await self.resolver_usuario(token)
        return await super().__call__(scope, receive, send)

    @database_sync_to_async
    def resolver_usuario(self, token):
        if not token:
            return AnonymousUser()
        try:
            return auth_service.resolver_token(token)
        except Unauthorized as e:
            logger.info(f"❌ Token de WebSocket recusado: {e.message}")
            return AnonymousUser()
