# apps/core/models.py

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import Q


class Usuario(AbstractUser):
    """
    Modelo de usuário customizado

    O username é único e é a chave usada na atribuição de tarefas por nome.
    """

    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'usuario'

    def resumo(self):
        """Representação reduzida usada nas tarefas (assignees)"""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
        }

    def __str__(self):
        return self.username


class BoardQuerySet(models.QuerySet):

    def acessiveis_por(self, usuario):
        """Boards onde o usuário é dono ou colaborador"""
        return self.filter(
            Q(owner=usuario) | Q(collaborators=usuario)
        ).distinct()


class Board(models.Model):
    """Quadro Kanban colaborativo"""

    title = models.CharField(max_length=200)
    owner = models.ForeignKey(
        Usuario,
        on_delete=models.CASCADE,
        related_name='boards'
    )
    collaborators = models.ManyToManyField(
        Usuario,
        related_name='shared_boards',
        blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BoardQuerySet.as_manager()

    class Meta:
        db_table = 'board'
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    def tem_acesso(self, usuario):
        """Dono ou colaborador podem ler e escrever no board"""
        if not usuario or not usuario.is_authenticated:
            return False
        if self.owner_id == usuario.id:
            return True
        return self.collaborators.filter(id=usuario.id).exists()


class TaskList(models.Model):
    """
    Lista (coluna) do board

    Listas são apenas acrescentadas: a posição é o total de listas
    existentes no board no momento da criação.
    """

    title = models.CharField(max_length=200)
    board = models.ForeignKey(
        Board,
        on_delete=models.CASCADE,
        related_name='lists'
    )
    position = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'task_list'
        ordering = ['position', 'id']

    def __str__(self):
        return f"{self.title} - {self.board.title}"


class Task(models.Model):
    """
    Tarefa do board

    Dentro de uma lista as posições formam a sequência densa 0..n-1.
    O board é desnormalizado e sempre igual ao board da lista (ver signals).
    """

    PRIORIDADE_BAIXA = 'Low'
    PRIORIDADE_MEDIA = 'Medium'
    PRIORIDADE_ALTA = 'High'

    PRIORIDADE_CHOICES = [
        (PRIORIDADE_BAIXA, 'Low'),
        (PRIORIDADE_MEDIA, 'Medium'),
        (PRIORIDADE_ALTA, 'High'),
    ]

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    task_list = models.ForeignKey(
        TaskList,
        on_delete=models.CASCADE,
        related_name='tasks'
    )
    board = models.ForeignKey(
        Board,
        on_delete=models.CASCADE,
        related_name='tasks'
    )
    priority = models.CharField(
        max_length=10,
        choices=PRIORIDADE_CHOICES,
        default=PRIORIDADE_BAIXA
    )
    deadline = models.DateTimeField(null=True, blank=True)
    position = models.IntegerField(default=0)
    assignees = models.ManyToManyField(
        Usuario,
        related_name='assigned_tasks',
        blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'task'
        ordering = ['position', 'id']
        indexes = [
            models.Index(fields=['task_list', 'position'], name='task_list_position_idx'),
            models.Index(fields=['board', 'position'], name='task_board_position_idx'),
        ]

    def __str__(self):
        return self.title


class ActivityLog(models.Model):
    """
    Registro estruturado de auditoria das tarefas

    Task e lista são guardadas como ids simples: o registro de
    TASK_DELETED sobrevive à tarefa apagada.
    """

    TASK_CREATED = 'TASK_CREATED'
    TASK_MOVED = 'TASK_MOVED'
    TASK_UPDATED = 'TASK_UPDATED'
    TASK_DELETED = 'TASK_DELETED'

    ACTION_CHOICES = [
        (TASK_CREATED, 'Task created'),
        (TASK_MOVED, 'Task moved'),
        (TASK_UPDATED, 'Task updated'),
        (TASK_DELETED, 'Task deleted'),
    ]

    user = models.ForeignKey(
        Usuario,
        on_delete=models.CASCADE,
        related_name='activity_logs'
    )
    board = models.ForeignKey(
        Board,
        on_delete=models.CASCADE,
        related_name='activity_logs'
    )
    list_ref = models.BigIntegerField(null=True, blank=True)
    task_ref = models.BigIntegerField(null=True, blank=True)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    details = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'activity_log'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.action} - {self.details}"


class BoardActivity(models.Model):
    """Histórico legível do board (ex: moved task "Bug Fix")"""

    board = models.ForeignKey(
        Board,
        on_delete=models.CASCADE,
        related_name='activities'
    )
    user = models.ForeignKey(
        Usuario,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='board_activities'
    )
    username = models.CharField(max_length=150)
    action = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'board_activity'
        ordering = ['-created_at', '-id']

    def __str__(self):
        return f"{self.username} {self.action}"
