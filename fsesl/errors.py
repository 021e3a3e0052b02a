"""
Erros do cliente ESL.

Hierarquia:
- ESLError: raiz
  - ESLEncodingError: argumento inválido para o protocolo (ex: contém "\\n")
  - ESLTransportError: falha de conexão/envio/resposta
    - ESLConnectionError, ESLAuthError, ESLTimeoutError, ESLCommandError
  - ESLRegistryError: registro de handler após build()

Nenhum destes erros é re-tentado automaticamente pelo cliente.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .event import Reply


class ESLError(Exception):
    """Erro genérico do ESL."""
    pass


class ESLEncodingError(ESLError, ValueError):
    """Argumento de comando não pode ser enviado no protocolo."""
    pass


class ESLTransportError(ESLError):
    """Erro de transporte (conexão, escrita, timeout ou resposta -ERR)."""
    pass


class ESLConnectionError(ESLTransportError):
    """Erro de conexão ESL."""
    pass


class ESLAuthError(ESLConnectionError):
    """FreeSWITCH recusou a senha do ESL."""
    pass


class ESLTimeoutError(ESLTransportError):
    """Resposta não chegou dentro do timeout."""
    pass


class ESLCommandError(ESLTransportError):
    """FreeSWITCH respondeu -ERR ao comando."""

    def __init__(self, message: str, reply: Optional["Reply"] = None):
        super().__init__(message)
        self.reply = reply


class ESLRegistryError(ESLError):
    """Registro de handlers já foi finalizado."""
    pass
