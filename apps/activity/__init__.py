# apps/activity/__init__.py

"""
Activity - Histórico dos boards do Fluxo Board

Funcionalidades:
- Auditoria estruturada das tarefas (TASK_CREATED, TASK_MOVED, ...)
- Histórico legível por board, publicado em tempo real (activityLog)
- Consulta paginada da auditoria e feed das últimas atividades
"""
