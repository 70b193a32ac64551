# apps/core/auth_service.py

"""
Serviço de Autenticação - resolve e emite as credenciais Bearer da API

O restante do sistema trata este serviço como uma caixa-preta:
dado um token, devolve o usuário (principal) ou levanta
Unauthorized / CredentialExpired.
"""

import logging
from typing import Dict, Optional, Tuple

from django.conf import settings
from django.contrib.auth import authenticate
from django.core import signing
from django.db import models

from .exceptions import CredentialExpired, Unauthorized
from .models import Usuario

logger = logging.getLogger(__name__)


class AuthenticationService:
    """
    Serviço encapsulado para gerenciar autenticação por token

    Tokens são valores assinados e com timestamp (django.core.signing),
    portanto não precisam de tabela própria.
    """

    def __init__(self):
        # Atributos privados - encapsulados
        self._salt = 'apps.core.auth_service.bearer'
        self._tamanho_minimo_senha = 8

    @property
    def _max_age(self) -> int:
        return settings.FLUXO_TOKEN_MAX_AGE

    def criar_usuario(self, dados: Dict) -> Tuple[bool, str, Optional[Usuario]]:
        """
        Cria novo usuário com validações encapsuladas

        Returns:
            Tuple[sucesso, mensagem, usuario_criado]
        """
        validacao_ok, erro_validacao = self._validar_dados_usuario(dados)
        if not validacao_ok:
            return False, erro_validacao, None

        if self._usuario_existe(dados['username'], dados['email']):
            return False, "Username or email already registered.", None

        usuario = Usuario.objects.create_user(
            username=dados['username'].strip(),
            email=dados['email'].strip(),
            password=dados['password'],
        )
        logger.info(f"👤 Usuário criado: {usuario.username}")
        return True, "User created.", usuario

    def fazer_login(self, username: str, password: str) -> Tuple[bool, str, Optional[Usuario]]:
        """
        Autentica por username ou email

        Returns:
            Tuple[sucesso, mensagem, usuario]
        """
        usuario = self._autenticar_usuario(username, password)
        if not usuario:
            logger.info(f"⚠️ Tentativa de login falhada para: {username}")
            return False, "Invalid credentials.", None
        return True, f"Welcome, {usuario.username}!", usuario

    def emitir_token(self, usuario: Usuario) -> str:
        """Gera o Bearer token assinado do usuário"""
        return signing.dumps({'uid': usuario.pk}, salt=self._salt, compress=True)

    def resolver_token(self, token: str) -> Usuario:
        """
        Resolve o token para o usuário dono da credencial

        Raises:
            CredentialExpired: assinatura válida, mas fora da validade
            Unauthorized: token ausente, adulterado ou de usuário inativo
        """
        if not token:
            raise Unauthorized()

        try:
            dados = signing.loads(token, salt=self._salt, max_age=self._max_age)
        except signing.SignatureExpired:
            raise CredentialExpired()
        except signing.BadSignature:
            raise Unauthorized('Invalid token.')

        usuario = Usuario.objects.filter(pk=dados.get('uid'), is_active=True).first()
        if usuario is None:
            raise Unauthorized('User not found.')
        return usuario

    def resolver_cabecalho(self, authorization: str) -> Usuario:
        """Resolve o cabeçalho Authorization no formato 'Bearer <token>'"""
        if not authorization or not authorization.startswith('Bearer '):
            raise Unauthorized()
        return self.resolver_token(authorization[len('Bearer '):].strip())

    # =================== MÉTODOS PRIVADOS (ENCAPSULADOS) ===================

    def _validar_dados_usuario(self, dados: Dict) -> Tuple[bool, str]:
        """Valida dados de entrada para criação de usuário"""
        for campo in ['username', 'email', 'password']:
            valor = dados.get(campo)
            if not isinstance(valor, str) or not valor.strip():
                return False, f"Field {campo} is required."

        email = dados['email']
        if '@' not in email or '.' not in email.split('@')[-1]:
            return False, "Invalid email."

        if len(dados['password']) < self._tamanho_minimo_senha:
            return False, f"Password must have at least {self._tamanho_minimo_senha} characters."

        username = dados['username']
        if ' ' in username.strip() or len(username.strip()) < 3:
            return False, "Username must have at least 3 characters and no spaces."

        return True, ""

    def _usuario_existe(self, username: str, email: str) -> bool:
        return Usuario.objects.filter(
            models.Q(username=username) | models.Q(email=email)
        ).exists()

    def _autenticar_usuario(self, username: str, password: str) -> Optional[Usuario]:
        """Autentica usuário (username ou email)"""
        usuario = authenticate(username=username, password=password)

        if not usuario:
            user_obj = Usuario.objects.filter(email=username, is_active=True).first()
            if user_obj:
                usuario = authenticate(username=user_obj.username, password=password)

        return usuario


# Instância global do serviço (Singleton pattern)
auth_service = AuthenticationService()
