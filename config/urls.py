# config/urls.py

from django.contrib import admin
from django.urls import path, include
from django.conf import settings

from apps.core import views as core_views

urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # API JSON
    path('api/auth/', include('apps.core.urls')),
    path('api/', include('apps.board.urls')),
    path('api/', include('apps.activity.urls')),

    # Monitoramento
    path('health/', core_views.health_check, name='health'),
]

if settings.DEBUG:
    # Debug Toolbar se disponível
    try:
        import debug_toolbar

        urlpatterns = [
                          path('__debug__/', include(debug_toolbar.urls)),
                      ] + urlpatterns
    except ImportError:
        pass

# Customizar títulos do admin
admin.site.site_header = 'Fluxo Board Admin'
admin.site.site_title = 'Fluxo Board'
admin.site.index_title = 'Administração do Sistema'
