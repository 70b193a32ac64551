# apps/core/exceptions.py

"""
Taxonomia de erros da API do Fluxo Board

Cada erro carrega o status HTTP e a mensagem exibida ao usuário.
As views convertem essas exceções em respostas JSON no decorator api_view.
"""


class FluxoError(Exception):
    """Erro base da aplicação"""

    status_code = 500
    default_message = 'Server error.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def as_dict(self):
        return {'message': self.message}


class Unauthorized(FluxoError):
    """Credencial ausente ou inválida"""

    status_code = 401
    default_message = 'Access denied. No token provided.'


class CredentialExpired(Unauthorized):
    """Credencial válida, mas expirada"""

    default_message = 'Token expired.'


class NotFound(FluxoError):
    """Tarefa, lista, board ou usuário inexistente ou inacessível"""

    status_code = 404
    default_message = 'Not found.'


class InvalidTarget(FluxoError):
    """Lista de destino pertence a outro board"""

    status_code = 400
    default_message = 'Target list not found or not in same board.'


class ValidationFailed(FluxoError):
    """Payload malformado ou com campos obrigatórios ausentes"""

    status_code = 400
    default_message = 'Invalid request.'


class PersistenceFailure(FluxoError):
    """Banco indisponível ou escrita rejeitada, a operação inteira foi desfeita"""

    status_code = 503
    default_message = 'Storage unavailable. Please reload the board.'
