# client/__init__.py

"""
Cliente assíncrono do Fluxo Board

- api: chamadas HTTP (httpx) com Bearer token
- connection: conexão WebSocket única do processo, com inscrição por board
- projector: reordenação otimista com reconciliação pelo servidor
"""
