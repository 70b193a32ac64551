# apps/board/__init__.py

"""
Board - Aplicação Kanban do Fluxo Board

Funcionalidades:
- API JSON de boards, listas e tarefas
- Reordenação de tarefas com posições densas (ordering + ledger)
- Coordenador de movimentação (services.TaskService)
- WebSockets para atualizações em tempo real
"""
