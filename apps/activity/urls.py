# apps/activity/urls.py

from django.urls import path
from . import views

app_name = 'activity'

urlpatterns = [
    # Auditoria estruturada (paginada)
    path('activity/', views.auditoria_view, name='auditoria'),

    # Histórico legível do board
    path('activities/<int:board_id>/', views.historico_board_view, name='historico'),
]
