# apps/core/admin.py

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.html import format_html

from .models import ActivityLog, Board, BoardActivity, Task, TaskList, Usuario


@admin.register(Usuario)
class UsuarioAdmin(BaseUserAdmin):
    """Admin customizado para o modelo Usuario"""

    list_display = [
        'username', 'email', 'boards_count',
        'is_active', 'date_joined'
    ]
    list_filter = ['is_staff', 'is_active', 'date_joined']
    search_fields = ['username', 'first_name', 'last_name', 'email']
    ordering = ['-date_joined']

    def boards_count(self, obj):
        """Boards próprios + compartilhados"""
        return obj.boards.count() + obj.shared_boards.count()

    boards_count.short_description = 'Boards'


class TaskListInline(admin.TabularInline):
    """Inline para listas do board"""
    model = TaskList
    extra = 0
    fields = ['title', 'position']
    ordering = ['position']


@admin.register(Board)
class BoardAdmin(admin.ModelAdmin):
    """Admin para boards Kanban"""

    list_display = [
        'title', 'owner', 'lists_count', 'tasks_count',
        'collaborators_count', 'created_at'
    ]
    list_filter = ['created_at', 'owner']
    search_fields = ['title', 'owner__username']
    filter_horizontal = ['collaborators']
    readonly_fields = ['created_at', 'updated_at']

    inlines = [TaskListInline]

    def lists_count(self, obj):
        """Conta listas do board"""
        return obj.lists.count()

    lists_count.short_description = 'Listas'

    def tasks_count(self, obj):
        return obj.tasks.count()

    tasks_count.short_description = 'Tarefas'

    def collaborators_count(self, obj):
        return obj.collaborators.count()

    collaborators_count.short_description = 'Colaboradores'


class TaskInline(admin.TabularInline):
    """Inline para tarefas em listas"""
    model = Task
    extra = 0
    fields = ['title', 'priority', 'position', 'deadline']
    ordering = ['position']


@admin.register(TaskList)
class TaskListAdmin(admin.ModelAdmin):
    """Admin para listas do Kanban"""

    list_display = ['title', 'board', 'position', 'tasks_count', 'densidade']
    list_filter = ['board']
    search_fields = ['title', 'board__title']
    ordering = ['board', 'position']

    inlines = [TaskInline]

    def tasks_count(self, obj):
        """Conta tarefas na lista"""
        return obj.tasks.count()

    tasks_count.short_description = 'Tarefas'

    def densidade(self, obj):
        """Indica se as posições formam 0..n-1"""
        posicoes = list(obj.tasks.order_by('position').values_list('position', flat=True))
        if posicoes == list(range(len(posicoes))):
            return format_html('<span style="color: green;">✓ OK</span>')
        return format_html(
            '<span style="color: red; font-weight: bold;">⚠️ {}</span>',
            posicoes
        )

    densidade.short_description = 'Posições'


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    """Admin para tarefas"""

    list_display = [
        'id', 'title', 'prioridade_badge', 'task_list',
        'board', 'position', 'deadline'
    ]
    list_filter = ['priority', 'board', 'created_at']
    search_fields = ['title', 'description']
    date_hierarchy = 'created_at'
    filter_horizontal = ['assignees']
    # board é derivado da lista (signals)
    readonly_fields = ['board', 'created_at', 'updated_at']

    fieldsets = (
        ('Informações Básicas', {
            'fields': (
                'title', 'description', 'priority', 'deadline', 'assignees'
            )
        }),
        ('Posição', {
            'fields': ('task_list', 'board', 'position')
        }),
        ('Datas', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def prioridade_badge(self, obj):
        """Badge para prioridade"""
        icons = {
            Task.PRIORIDADE_BAIXA: '🟢',
            Task.PRIORIDADE_MEDIA: '🟡',
            Task.PRIORIDADE_ALTA: '🔴',
        }
        return f"{icons.get(obj.priority, '')} {obj.get_priority_display()}"

    prioridade_badge.short_description = 'Prioridade'


@admin.register(ActivityLog)
class ActivityLogAdmin(admin.ModelAdmin):
    """Auditoria estruturada (somente leitura)"""

    list_display = ['action', 'user', 'board', 'task_ref', 'list_ref', 'created_at']
    list_filter = ['action', 'board']
    search_fields = ['details', 'user__username']
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(BoardActivity)
class BoardActivityAdmin(admin.ModelAdmin):
    list_display = ['username', 'action', 'board', 'created_at']
    list_filter = ['board']
    search_fields = ['username', 'action']

    def has_add_permission(self, request):
        """Apenas leitura no admin"""
        return False
