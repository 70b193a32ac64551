# apps/activity/apps.py

from django.apps import AppConfig


class ActivityConfig(AppConfig):
    """Configuração da app Activity"""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.activity'
    verbose_name = 'Activity - Histórico dos boards'
