# apps/core/signals.py

import logging

from django.db.models.signals import pre_save
from django.dispatch import receiver

from .models import Task

logger = logging.getLogger(__name__)


# Handlers para manter integridade referencial

@receiver(pre_save, sender=Task)
def sincronizar_board_da_tarefa(sender, instance, **kwargs):
    """
    Garante que o board desnormalizado da tarefa seja o board da lista

    Vale para criação, edição e movimentação entre listas.
    """
    if not instance.task_list_id:
        return

    board_id = instance.task_list.board_id
    if instance.board_id != board_id:
        if instance.board_id is not None:
            logger.warning(
                f"⚠️ Tarefa {instance.pk} com board {instance.board_id} divergente da lista "
                f"{instance.task_list_id}, corrigindo para {board_id}"
            )
        instance.board_id = board_id
