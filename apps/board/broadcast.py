# apps/board/broadcast.py

"""
Fan-out em tempo real por board

Cada board tem um grupo no channel layer (board_<id>). As publicações
são best-effort: uma falha é registrada no log e nunca interrompe a
operação que a originou. Quem perde uma mensagem se corrige no próximo
fetch completo.
"""

import logging
from functools import partial

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction

logger = logging.getLogger(__name__)

# Eventos publicados no grupo do board
TASK_CREATED = 'taskCreated'
TASK_UPDATED = 'taskUpdated'
TASK_MOVED = 'task_moved'
TASK_DELETED = 'taskDeleted'
ACTIVITY_LOG = 'activityLog'
LIST_CREATED = 'listCreated'
LIST_UPDATED = 'listUpdated'
LIST_DELETED = 'listDeleted'

# Variantes de atualização de tarefa, equivalentes para os consumidores
TASK_UPDATE_EVENTS = frozenset({TASK_UPDATED, 'task_updated', TASK_MOVED})


def nome_grupo(board_id):
    return f'board_{board_id}'


def publicar(board_id, evento, payload):
    """Envia {type, boardId, payload} para todos os inscritos do board"""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        logger.warning(f"⚠️ Channel layer não configurado, evento {evento} descartado")
        return False

    try:
        async_to_sync(channel_layer.group_send)(
            nome_grupo(board_id),
            {
                'type': 'board.event',
                'event': evento,
                'boardId': board_id,
                'payload': payload,
            }
        )
    except Exception as e:
        logger.warning(f"⚠️ Falha ao publicar {evento} no board {board_id}: {e}")
        return False

    logger.debug(f"📡 {evento} publicado no board {board_id}")
    return True


def publicar_apos_commit(board_id, evento, payload):
    """Agenda a publicação para depois do commit da transação atual"""
    transaction.on_commit(partial(publicar, board_id, evento, payload))
