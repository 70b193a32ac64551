# apps/__init__.py

"""
Fluxo Board - Aplicações Django

Este pacote contém todas as aplicações do sistema:
- core: Models principais, autenticação e permissões
- board: Reordenação de tarefas, API JSON e WebSockets
- activity: Registro e consulta do histórico dos boards
"""

__version__ = '0.1.0'
__author__ = 'Equipe Fluxo'
