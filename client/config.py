# client/config.py

from dataclasses import dataclass

import environ


@dataclass(frozen=True)
class ClientConfig:
    """Endereços do servidor e timeout das requisições"""

    api_url: str = 'http://localhost:8000/api'
    ws_url: str = 'ws://localhost:8000/ws/boards/'
    request_timeout: float = 10.0

    @classmethod
    def from_env(cls, env_file=None):
        """
        Lê FLUXO_API_URL, FLUXO_WS_URL e FLUXO_REQUEST_TIMEOUT
        (opcionalmente de um arquivo .env)
        """
        env = environ.Env(
            FLUXO_API_URL=(str, cls.api_url),
            FLUXO_WS_URL=(str, cls.ws_url),
            FLUXO_REQUEST_TIMEOUT=(float, cls.request_timeout),
        )
        if env_file:
            environ.Env.read_env(env_file)

        return cls(
            api_url=env('FLUXO_API_URL').rstrip('/'),
            ws_url=env('FLUXO_WS_URL'),
            request_timeout=env('FLUXO_REQUEST_TIMEOUT'),
        )
