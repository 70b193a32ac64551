# apps/board/urls.py

from django.urls import path
from . import views

app_name = 'board'

urlpatterns = [
    # Boards
    path('boards/', views.boards_view, name='boards'),
    path('boards/<int:board_id>/', views.board_detalhe_view, name='board_detalhe'),

    # Listas
    path('lists/', views.listas_view, name='listas'),
    path('lists/<int:list_id>/', views.lista_detalhe_view, name='lista_detalhe'),

    # Tarefas (movimentação via PUT)
    path('tasks/', views.tarefas_view, name='tarefas'),
    path('tasks/<int:task_id>/', views.tarefa_detalhe_view, name='tarefa_detalhe'),
]
