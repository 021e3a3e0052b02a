"""
ESL Transport - Contrato entre o núcleo de comandos/eventos e a conexão.

O núcleo (command_interface, event_listener) não conhece sockets: envia
linhas de comando por este contrato e recebe eventos por EventListener.
A implementação concreta (Inbound, asyncio) está em client.py.
"""

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

from .event import ESLEvent, Reply


class ESLTransport(ABC):
    """Interface abstrata de envio de comandos ESL."""

    @abstractmethod
    async def send_async(self, addr: str, command: str, arg: str = "") -> str:
        """
        Envia comando em background (bgapi).

        Args:
            addr: Conexão a usar ("host:port")
            command: Linha de comando (ex: "uuid_answer <uuid>")
            arg: Argumento final opcional, anexado se não vazio

        Returns:
            Job-UUID; o resultado chega depois como evento BACKGROUND_JOB

        Raises:
            ESLConnectionError: conexão não estabelecida ou falha de escrita
            ESLCommandError: FreeSWITCH recusou o comando
        """
        pass

    @abstractmethod
    async def send_sync(self, addr: str, command: str, arg: str = "") -> Reply:
        """
        Executa comando API e aguarda a resposta.

        Args:
            addr: Conexão a usar ("host:port")
            command: Linha de comando (ex: "uuid_getvar <uuid> <var>")
            arg: Argumento final opcional, anexado se não vazio

        Returns:
            Reply completo (nunca parcial)

        Raises:
            ESLConnectionError: conexão perdida
            ESLTimeoutError: resposta não chegou no timeout configurado
            ESLCommandError: resposta -ERR
        """
        pass


@runtime_checkable
class EventListener(Protocol):
    """Destino dos eventos recebidos pela conexão."""

    async def deliver_event(self, addr: str, event: ESLEvent) -> None:
        ...
