# apps/activity/services.py

"""
Registro de atividades

Os dois registros são best-effort: rodam num savepoint próprio dentro
da transação da operação principal e uma falha de gravação é apenas
logada. A operação que pediu o registro nunca é abortada por eles.
"""

import logging

from django.db import DatabaseError, transaction

from apps.board.broadcast import ACTIVITY_LOG, publicar_apos_commit
from apps.core.models import ActivityLog, BoardActivity

logger = logging.getLogger(__name__)


def serializar_registro(registro):
    """ActivityLog -> JSON"""
    return {
        'id': registro.id,
        'userId': registro.user_id,
        'boardId': registro.board_id,
        'listId': registro.list_ref,
        'taskId': registro.task_ref,
        'action': registro.action,
        'details': registro.details,
        'createdAt': registro.created_at.isoformat(),
    }


def serializar_atividade(atividade):
    """BoardActivity -> JSON (payload do evento activityLog)"""
    return {
        'id': atividade.id,
        'boardId': atividade.board_id,
        'userId': atividade.user_id,
        'username': atividade.username,
        'action': atividade.action,
        'createdAt': atividade.created_at.isoformat(),
    }


def log_activity(user, board_id, action, details='', list_id=None, task_id=None):
    """
    Grava o registro estruturado de auditoria

    Returns:
        ActivityLog criado, ou None se a gravação falhou
    """
    try:
        with transaction.atomic():
            return ActivityLog.objects.create(
                user=user,
                board_id=board_id,
                list_ref=list_id,
                task_ref=task_id,
                action=action,
                details=details,
            )
    except DatabaseError:
        logger.exception(f"❌ Falha ao gravar auditoria {action} no board {board_id}")
        return None


def log_board_activity(board_id, user, action):
    """
    Grava o histórico legível e agenda o evento activityLog

    O evento só é publicado depois do commit da operação principal.
    """
    username = getattr(user, 'username', None) or 'Someone'

    try:
        with transaction.atomic():
            atividade = BoardActivity.objects.create(
                board_id=board_id,
                user=user if getattr(user, 'pk', None) else None,
                username=username,
                action=action,
            )
    except DatabaseError:
        logger.exception(f"❌ Falha ao gravar histórico do board {board_id}")
        return None

    publicar_apos_commit(board_id, ACTIVITY_LOG, serializar_atividade(atividade))
    return atividade
