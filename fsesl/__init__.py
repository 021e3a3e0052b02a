# fsesl - FreeSWITCH Event Socket (ESL) control client
#
# Components:
# - command.py: Montagem das linhas de comando (uuid_* etc.)
# - command_interface.py: Operações de controle de chamada (answer, bridge, hold...)
# - event_listener.py: Registro e despacho de eventos por nome
# - transport.py: Contrato de envio (bgapi/api) e entrega de eventos
# - client.py: Transporte ESL Inbound (asyncio)
# - job_tracker.py: Espera de resultados BACKGROUND_JOB por Job-UUID
#
# Referências:
# - https://freeswitch.org/confluence/display/FREESWITCH/mod_event_socket

from .command import Command, render, render_vars, render_channel_vars
from .command_interface import ESLCommandInterface
from .errors import (
    ESLError,
    ESLEncodingError,
    ESLTransportError,
    ESLConnectionError,
    ESLAuthError,
    ESLTimeoutError,
    ESLCommandError,
    ESLRegistryError,
)
from .event import BACKGROUND_JOB, ESLEvent, Reply
from .event_listener import (
    DEFAULT_EVENT_HANDLER,
    DefaultEventHandler,
    EventDispatcher,
    EventHandler,
    EventHandlerRegistry,
    FunctionEventHandler,
    RegistryState,
)
from .transport import ESLTransport, EventListener
from .client import AsyncESLClient, ESLConnection
from .job_tracker import BackgroundJobTracker
from .settings import ESLSettings, get_esl_settings

__version__ = "1.0.0"

__all__ = [
    # Encoder
    "Command",
    "render",
    "render_vars",
    "render_channel_vars",
    # Operations
    "ESLCommandInterface",
    # Errors
    "ESLError",
    "ESLEncodingError",
    "ESLTransportError",
    "ESLConnectionError",
    "ESLAuthError",
    "ESLTimeoutError",
    "ESLCommandError",
    "ESLRegistryError",
    # Data model
    "BACKGROUND_JOB",
    "ESLEvent",
    "Reply",
    # Dispatch
    "DEFAULT_EVENT_HANDLER",
    "DefaultEventHandler",
    "EventDispatcher",
    "EventHandler",
    "EventHandlerRegistry",
    "FunctionEventHandler",
    "RegistryState",
    # Transport
    "ESLTransport",
    "EventListener",
    "AsyncESLClient",
    "ESLConnection",
    "BackgroundJobTracker",
    # Settings
    "ESLSettings",
    "get_esl_settings",
]
