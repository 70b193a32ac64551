# apps/board/serializers.py

"""
Representações JSON (camelCase) usadas pela API e pelo WebSocket

O payload de uma tarefa é o mesmo na resposta HTTP e na mensagem
publicada no grupo do board.
"""


def _iso(valor):
    return valor.isoformat() if valor else None


def serializar_tarefa(task):
    return {
        'id': task.id,
        'title': task.title,
        'description': task.description,
        'listId': task.task_list_id,
        'boardId': task.board_id,
        'priority': task.priority,
        'deadline': _iso(task.deadline),
        'position': task.position,
        'assignees': [u.resumo() for u in task.assignees.all()],
        'createdAt': _iso(task.created_at),
        'updatedAt': _iso(task.updated_at),
    }


def serializar_lista(lista, tarefas=None):
    """Lista; com tarefas quando fornecidas (detalhe do board)"""
    dados = {
        'id': lista.id,
        'title': lista.title,
        'boardId': lista.board_id,
        'position': lista.position,
        'createdAt': _iso(lista.created_at),
        'updatedAt': _iso(lista.updated_at),
    }
    if tarefas is not None:
        dados['tasks'] = [serializar_tarefa(t) for t in tarefas]
    return dados


def serializar_board(board, listas=None):
    dados = {
        'id': board.id,
        'title': board.title,
        'ownerId': board.owner_id,
        'collaborators': [u.resumo() for u in board.collaborators.all()],
        'createdAt': _iso(board.created_at),
        'updatedAt': _iso(board.updated_at),
    }
    if listas is not None:
        dados['lists'] = listas
    return dados
