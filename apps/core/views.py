# apps/core/views.py

import logging

from django.core.cache import cache
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_POST

from .auth_service import auth_service
from .exceptions import Unauthorized, ValidationFailed
from .models import Usuario
from .permissions import api_view, ler_json

logger = logging.getLogger(__name__)


# === AUTENTICAÇÃO ===

@require_POST
@api_view(autenticado=False)
def registro_view(request):
    """Cria usuário e devolve o Bearer token"""
    dados = ler_json(request)

    sucesso, mensagem, usuario = auth_service.criar_usuario(dados)
    if not sucesso:
        raise ValidationFailed(mensagem)

    return JsonResponse({
        'token': auth_service.emitir_token(usuario),
        'user': usuario.resumo(),
    }, status=201)


@require_POST
@api_view(autenticado=False)
def login_view(request):
    """Troca username/email + senha por um Bearer token"""
    dados = ler_json(request)
    username = dados.get('username') or dados.get('email') or ''
    password = dados.get('password') or ''

    sucesso, mensagem, usuario = auth_service.fazer_login(username, password)
    if not sucesso:
        raise Unauthorized(mensagem)

    return JsonResponse({
        'token': auth_service.emitir_token(usuario),
        'user': usuario.resumo(),
    })


@require_GET
@api_view
def me_view(request):
    """Principal resolvido a partir do token"""
    return JsonResponse(request.user.resumo())


# === MONITORAMENTO ===

@require_GET
def health_check(request):
    """
    Health check para monitoramento
    """
    try:
        # Verificar conexão com banco
        Usuario.objects.exists()

        # Verificar cache (Redis em produção)
        cache.set('health_check', 'ok', 60)
        cache.get('health_check')

        status = {
            'status': 'healthy',
            'database': 'ok',
            'cache': 'ok',
            'timestamp': timezone.now().isoformat(),
            'version': '0.1.0'
        }

        return JsonResponse(status)

    except Exception as e:
        logger.error(f"❌ Health check falhou: {e}")
        status = {
            'status': 'unhealthy',
            'error': str(e),
            'timestamp': timezone.now().isoformat(),
            'version': '0.1.0'
        }

        return JsonResponse(status, status=503)
