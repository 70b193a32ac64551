# apps/board/routing.py

from django.urls import re_path
from . import consumers

# Rotas WebSocket para a aplicação board
websocket_urlpatterns = [
    # Conexão única por cliente; boards escolhidos com join_board/leave_board
    re_path(r'ws/boards/$', consumers.BoardConsumer.as_asgi()),
]
