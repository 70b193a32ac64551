# apps/board/views.py

import logging

from django.conf import settings
from django.db import transaction
from django.db.models import Prefetch, Q
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from apps.core.exceptions import NotFound, ValidationFailed
from apps.core.models import Board, Task, TaskList
from apps.core.permissions import FluxoPermissions, api_view, ler_json
from apps.core.utils import exigir_id, ler_inteiro, paginar

from .broadcast import LIST_CREATED, LIST_DELETED, LIST_UPDATED, publicar_apos_commit
from .serializers import serializar_board, serializar_lista, serializar_tarefa
from .services import task_service

logger = logging.getLogger(__name__)


def _ler_titulo(dados, mensagem='Title is required.'):
    titulo = dados.get('title')
    if not isinstance(titulo, str) or not titulo.strip():
        raise ValidationFailed(mensagem)
    return titulo.strip()[:200]


# === BOARDS ===

@require_http_methods(["GET", "POST"])
@api_view
def boards_view(request):
    """
    GET  - boards onde o usuário é dono ou colaborador
    POST - cria board {title}
    """
    if request.method == 'POST':
        dados = ler_json(request)
        board = Board.objects.create(title=_ler_titulo(dados), owner=request.user)
        logger.info(f"📋 Board {board.id} criado por {request.user.username}")
        return JsonResponse(serializar_board(board), status=201)

    boards = (
        Board.objects.acessiveis_por(request.user)
        .prefetch_related('collaborators')
        .order_by('-created_at', '-id')
    )
    return JsonResponse([serializar_board(b) for b in boards], safe=False)


@require_http_methods(["GET", "PUT", "DELETE"])
@api_view
def board_detalhe_view(request, board_id):
    """
    GET    - board com listas e as tarefas de cada lista
    PUT    - altera o título (apenas o dono)
    DELETE - remove em cascata listas, tarefas e histórico (apenas o dono)
    """
    if request.method == 'PUT':
        board = FluxoPermissions.obter_board_do_dono(request.user, board_id)
        dados = ler_json(request)
        board.title = _ler_titulo(dados)
        board.save(update_fields=['title', 'updated_at'])
        return JsonResponse(serializar_board(board))

    if request.method == 'DELETE':
        board = FluxoPermissions.obter_board_do_dono(request.user, board_id)
        board.delete()
        logger.info(f"🗑️ Board {board_id} removido por {request.user.username}")
        return JsonResponse({'message': 'Board deleted.'})

    board = FluxoPermissions.obter_board_acessivel(request.user, board_id)

    # Prefetch para evitar N+1 queries
    tarefas = Task.objects.prefetch_related('assignees').order_by('position', 'id')
    listas = board.lists.prefetch_related(Prefetch('tasks', queryset=tarefas)).order_by('position', 'id')

    return JsonResponse(serializar_board(
        board,
        listas=[serializar_lista(lista, lista.tasks.all()) for lista in listas]
    ))


# === LISTAS ===

@require_http_methods(["GET", "POST"])
@api_view
def listas_view(request):
    """
    GET  - listas do board (?boardId=) ordenadas por posição
    POST - cria lista no final do board {title, boardId} (apenas o dono)
    """
    if request.method == 'POST':
        dados = ler_json(request)
        if not dados.get('title') or not dados.get('boardId'):
            raise ValidationFailed('Title and boardId are required.')
        titulo = _ler_titulo(dados)
        board = FluxoPermissions.obter_board_do_dono(request.user, exigir_id(dados['boardId'], 'boardId'))

        with transaction.atomic():
            # Trava o board para que duas criações simultâneas não repitam a posição
            Board.objects.select_for_update().get(pk=board.pk)
            lista = TaskList.objects.create(
                title=titulo,
                board=board,
                position=board.lists.count()
            )
            payload = serializar_lista(lista)
            publicar_apos_commit(board.id, LIST_CREATED, payload)

        return JsonResponse(payload, status=201)

    if not request.GET.get('boardId'):
        raise ValidationFailed('boardId query is required.')
    board = FluxoPermissions.obter_board_acessivel(
        request.user, exigir_id(request.GET['boardId'], 'boardId')
    )
    listas = board.lists.order_by('position', 'id')
    return JsonResponse([serializar_lista(lista) for lista in listas], safe=False)


@require_http_methods(["GET", "PUT", "DELETE"])
@api_view
def lista_detalhe_view(request, list_id):
    lista = TaskList.objects.select_related('board').filter(pk=list_id).first()
    if lista is None:
        raise NotFound('List not found.')

    if request.method == 'GET':
        if not FluxoPermissions.tem_acesso_board(request.user, lista.board):
            raise NotFound('Board not found.')
        return JsonResponse(serializar_lista(lista))

    if not FluxoPermissions.e_dono_board(request.user, lista.board):
        raise NotFound('Board not found.')

    if request.method == 'PUT':
        dados = ler_json(request)
        with transaction.atomic():
            lista.title = _ler_titulo(dados)
            lista.save(update_fields=['title', 'updated_at'])
            payload = serializar_lista(lista)
            publicar_apos_commit(lista.board_id, LIST_UPDATED, payload)
        return JsonResponse(payload)

    with transaction.atomic():
        board_id, removida_id = lista.board_id, lista.id
        lista.delete()
        publicar_apos_commit(board_id, LIST_DELETED, {'id': removida_id})

    logger.info(f"🗑️ Lista {removida_id} removida do board {board_id}")
    return JsonResponse({'message': 'List deleted.'})


# === TAREFAS ===

@require_http_methods(["GET", "POST"])
@api_view
def tarefas_view(request):
    """
    GET  - tarefas por lista ou board, com busca (q) e paginação
    POST - cria tarefa
    """
    if request.method == 'POST':
        payload = task_service.criar_tarefa(request.user, ler_json(request))
        return JsonResponse(payload, status=201)

    list_id = request.GET.get('listId')
    board_id = request.GET.get('boardId')
    if not list_id and not board_id:
        raise ValidationFailed('listId or boardId query is required.')

    if board_id:
        board = FluxoPermissions.obter_board_acessivel(request.user, exigir_id(board_id, 'boardId'))
        tarefas = Task.objects.filter(board=board).order_by(
            'task_list__position', 'task_list_id', 'position', 'id'
        )
    else:
        lista = TaskList.objects.filter(pk=exigir_id(list_id, 'listId')).first()
        if lista is None:
            raise NotFound('Board not found.')
        FluxoPermissions.obter_board_acessivel(request.user, lista.board_id)
        tarefas = Task.objects.filter(task_list=lista).order_by('position', 'id')

    # Busca textual em título e descrição
    busca = request.GET.get('q', '').strip()
    if busca:
        tarefas = tarefas.filter(Q(title__icontains=busca) | Q(description__icontains=busca))

    page = ler_inteiro(request.GET.get('page'), 1, minimo=1)
    limit = ler_inteiro(
        request.GET.get('limit'), settings.FLUXO_TASK_PAGE_LIMIT,
        minimo=1, maximo=settings.FLUXO_TASK_PAGE_MAX
    )

    return JsonResponse(paginar(
        tarefas.prefetch_related('assignees'), page, limit, serializar_tarefa
    ))


@require_http_methods(["GET", "PUT", "DELETE"])
@api_view
def tarefa_detalhe_view(request, task_id):
    """
    GET    - tarefa com responsáveis
    PUT    - move/reordena e edita campos (ver TaskService.atualizar_tarefa)
    DELETE - remove e compacta as posições da lista
    """
    if request.method == 'PUT':
        payload = task_service.atualizar_tarefa(request.user, task_id, ler_json(request))
        return JsonResponse(payload)

    if request.method == 'DELETE':
        task_service.remover_tarefa(request.user, task_id)
        return JsonResponse({'message': 'Task deleted.'})

    task = task_service.obter_tarefa(request.user, task_id)
    return JsonResponse(serializar_tarefa(task))
