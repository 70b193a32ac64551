# apps/core/permissions.py

import json
import logging
from functools import wraps

from django.db import DatabaseError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt

from .exceptions import FluxoError, NotFound, PersistenceFailure, Unauthorized, ValidationFailed

logger = logging.getLogger(__name__)


class FluxoPermissions:
    """
    Regras de acesso do Fluxo Board

    Dono e colaboradores leem e escrevem tarefas. Apenas o dono
    altera o próprio board e suas listas.
    """

    @staticmethod
    def tem_acesso_board(user, board):
        """Dono ou colaborador"""
        return board.tem_acesso(user)

    @staticmethod
    def e_dono_board(user, board):
        """Apenas o dono do board"""
        return user.is_authenticated and board.owner_id == user.id

    @staticmethod
    def obter_board_acessivel(user, board_id):
        """
        Busca o board se o usuário tiver acesso

        Board inexistente e board sem acesso são indistinguíveis (NotFound).
        """
        from .models import Board

        board = Board.objects.acessiveis_por(user).filter(pk=board_id).first()
        if board is None:
            raise NotFound('Board not found.')
        return board

    @staticmethod
    def obter_board_do_dono(user, board_id):
        from .models import Board

        board = Board.objects.filter(pk=board_id, owner=user).first()
        if board is None:
            raise NotFound('Board not found.')
        return board


# Decoradores para views

def api_view(view_func=None, *, autenticado=True):
    """
    Decorador das views JSON da API

    - exige Bearer token válido (401 caso contrário)
    - converte FluxoError na resposta {"message": ...} com o status do erro
    - DatabaseError vira PersistenceFailure (503)
    """

    def decorator(func):
        @csrf_exempt
        @wraps(func)
        def wrapped_view(request, *args, **kwargs):
            try:
                if autenticado:
                    auth_error = getattr(request, 'auth_error', None)
                    if auth_error is not None:
                        raise auth_error
                    if not request.user.is_authenticated:
                        raise Unauthorized()
                return func(request, *args, **kwargs)
            except FluxoError as e:
                return JsonResponse(e.as_dict(), status=e.status_code)
            except DatabaseError as e:
                logger.error(f"❌ Falha de persistência em {func.__name__}: {e}")
                erro = PersistenceFailure()
                return JsonResponse(erro.as_dict(), status=erro.status_code)

        return wrapped_view

    if view_func is not None:
        return decorator(view_func)
    return decorator


def ler_json(request):
    """Lê o corpo JSON da requisição (objeto vazio se não houver corpo)"""
    if not request.body:
        return {}
    try:
        dados = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationFailed('Malformed JSON body.')
    if not isinstance(dados, dict):
        raise ValidationFailed('JSON body must be an object.')
    return dados
