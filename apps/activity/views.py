# apps/activity/views.py

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from apps.core.exceptions import ValidationFailed
from apps.core.models import ActivityLog
from apps.core.permissions import FluxoPermissions, api_view
from apps.core.utils import exigir_id, ler_inteiro, paginar

from .services import serializar_atividade, serializar_registro

# Teto do feed de atividades por requisição
LIMITE_MAXIMO_FEED = 50


@require_GET
@api_view
def auditoria_view(request):
    """
    Auditoria estruturada do próprio usuário em um board
    GET /api/activity/?boardId=&page=&limit=
    """
    if not request.GET.get('boardId'):
        raise ValidationFailed('boardId query is required.')
    board_id = exigir_id(request.GET.get('boardId'), 'boardId')

    page = ler_inteiro(request.GET.get('page'), 1, minimo=1)
    limit = ler_inteiro(
        request.GET.get('limit'), settings.FLUXO_TASK_PAGE_LIMIT,
        minimo=1, maximo=settings.FLUXO_TASK_PAGE_MAX
    )

    registros = ActivityLog.objects.filter(board_id=board_id, user=request.user)
    return JsonResponse(paginar(registros, page, limit, serializar_registro))


@require_GET
@api_view
def historico_board_view(request, board_id):
    """
    Últimas atividades legíveis do board (mais recentes primeiro)
    GET /api/activities/<board_id>/
    """
    board = FluxoPermissions.obter_board_acessivel(request.user, board_id)

    limite = ler_inteiro(
        request.GET.get('limit'), settings.FLUXO_ACTIVITY_FEED_LIMIT,
        minimo=1, maximo=LIMITE_MAXIMO_FEED
    )
    atividades = board.activities.order_by('-created_at', '-id')[:limite]

    return JsonResponse([serializar_atividade(a) for a in atividades], safe=False)
