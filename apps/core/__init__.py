# apps/core/__init__.py

"""
Core - Aplicação principal do Fluxo Board

Contém:
- Models (Usuario, Board, TaskList, Task e registros de atividade)
- Serviço de autenticação por Bearer token
- Sistema de permissões e taxonomia de erros da API
- Comando check_positions para verificar a densidade das posições
"""
