# apps/core/urls.py

from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    # === AUTENTICAÇÃO ===
    path('register/', views.registro_view, name='register'),
    path('login/', views.login_view, name='login'),
    path('me/', views.me_view, name='me'),
]
