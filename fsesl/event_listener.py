"""
Event Listener - Registro e despacho de eventos ESL por nome.

Fluxo:
1. Na inicialização, pares (event_name, handler) são registrados no
   EventHandlerRegistry (diretamente ou via decorator @registry.on(...))
2. build() transforma o registro em um EventDispatcher imutável
3. O transporte entrega cada evento ao dispatcher, que chama todos os
   handlers daquele nome, na ordem de registro; sem handlers, chama o
   handler default

Registrar com a chave "default" SUBSTITUI o handler default.

THREAD SAFETY:
- Depois do build() a tabela é somente leitura (MappingProxyType + tuplas),
  então o despacho não precisa de lock
- Registro após build() gera ESLRegistryError
"""

import enum
import inspect
import logging
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Tuple, Union

from .errors import ESLRegistryError
from .event import ESLEvent

logger = logging.getLogger(__name__)

DEFAULT_EVENT_HANDLER = "default"


class EventHandler(ABC):
    """
    Handler de evento ESL.

    handle() pode ser síncrono ou retornar um awaitable (coroutine, Future).
    O despacho espera o retorno antes de seguir para o próximo handler ou
    evento: trabalho longo deve ser delegado (ex: asyncio.create_task) para
    não travar a conexão.
    """

    @abstractmethod
    def handle(self, addr: str, event: ESLEvent) -> Any:
        pass


class FunctionEventHandler(EventHandler):
    """Adapta uma função (sync ou async) para EventHandler."""

    def __init__(self, func: Callable[[str, ESLEvent], Any]):
        self.func = func

    def handle(self, addr: str, event: ESLEvent) -> Any:
        return self.func(addr, event)

    def __repr__(self) -> str:
        name = getattr(self.func, "__qualname__", repr(self.func))
        return f"FunctionEventHandler({name})"


class DefaultEventHandler(EventHandler):
    """Handler default: apenas registra o evento em debug."""

    def handle(self, addr: str, event: ESLEvent) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                f"Unhandled ESL event {event.name} from {addr}",
                extra={"addr": addr, "event_name": event.name, "uuid": event.uuid},
            )


HandlerLike = Union[EventHandler, Callable[[str, ESLEvent], Any]]


def _as_handler(handler: HandlerLike) -> EventHandler:
    if isinstance(handler, EventHandler):
        return handler
    if callable(handler):
        return FunctionEventHandler(handler)
    raise TypeError(f"Handler inválido: {handler!r}")


class RegistryState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class EventDispatcher:
    """
    Despachante imutável de eventos.

    Criado por EventHandlerRegistry.build(); implementa EventListener.
    """

    def __init__(
        self,
        table: Mapping[str, Tuple[EventHandler, ...]],
        default_handler: EventHandler,
    ):
        self._table = MappingProxyType({k: tuple(v) for k, v in table.items()})
        self._default_handler = default_handler

    @property
    def default_handler(self) -> EventHandler:
        return self._default_handler

    @property
    def event_names(self) -> Tuple[str, ...]:
        return tuple(self._table.keys())

    def handlers_for(self, event_name: str) -> Tuple[EventHandler, ...]:
        return self._table.get(event_name, ())

    async def deliver_event(self, addr: str, event: ESLEvent) -> None:
        """Entrada única do transporte."""
        if event.is_background_job:
            await self.background_job_result_received(addr, event)
        else:
            await self.event_received(addr, event)

    async def event_received(self, addr: str, event: ESLEvent) -> None:
        """Evento iniciado pelo servidor."""
        await self.handle_event(addr, event)

    async def background_job_result_received(self, addr: str, event: ESLEvent) -> None:
        """Resultado de bgapi; o Job-UUID está no header de mesmo nome."""
        await self.handle_event(addr, event)

    async def handle_event(self, addr: str, event: ESLEvent) -> None:
        handlers = self._table.get(event.name)
        if handlers:
            for handler in handlers:
                await self._invoke(handler, addr, event)
            return
        await self._invoke(self._default_handler, addr, event)

    async def _invoke(self, handler: EventHandler, addr: str, event: ESLEvent) -> None:
        # Falha de um handler não interrompe os demais nem o loop de eventos
        try:
            result = handler.handle(addr, event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                f"Event handler error: {e}",
                exc_info=True,
                extra={"addr": addr, "event_name": event.name, "handler": repr(handler)},
            )


class EventHandlerRegistry:
    """
    Registro de handlers (fase de inicialização).

    Uso:
        registry = EventHandlerRegistry()

        @registry.on("CHANNEL_ANSWER")
        async def on_answer(addr, event):
            ...

        registry.register("default", MyDefaultHandler())
        dispatcher = registry.build()
    """

    def __init__(self):
        self._pairs: List[Tuple[str, EventHandler]] = []
        self._state = RegistryState.UNINITIALIZED
        self._dispatcher = None

    @property
    def state(self) -> RegistryState:
        return self._state

    @property
    def dispatcher(self) -> EventDispatcher:
        if self._dispatcher is None:
            raise ESLRegistryError("Registry ainda não foi construído (build)")
        return self._dispatcher

    def register(self, event_name: str, handler: HandlerLike) -> None:
        """
        Registra handler para um nome de evento.

        Args:
            event_name: Nome do evento (ex: "CHANNEL_HANGUP") ou "default"
            handler: EventHandler ou função (addr, event)
        """
        if self._state is RegistryState.READY:
            raise ESLRegistryError(f"Registry já construído, não aceita {event_name!r}")

        if not event_name or not event_name.strip():
            logger.warning(f"Ignoring handler with blank event name: {handler!r}")
            return

        self._pairs.append((event_name.strip(), _as_handler(handler)))

    def register_all(self, pairs: Iterable[Tuple[str, HandlerLike]]) -> None:
        for event_name, handler in pairs:
            self.register(event_name, handler)

    def on(self, event_name: str) -> Callable:
        """Decorator para registrar função como handler."""
        def decorator(func):
            self.register(event_name, func)
            return func
        return decorator

    def build(self) -> EventDispatcher:
        """
        Constrói o EventDispatcher (UNINITIALIZED → READY, uma única vez).
        """
        if self._state is RegistryState.READY:
            raise ESLRegistryError("Registry já construído")

        logger.info("ESL event listener init ...")

        table: Dict[str, List[EventHandler]] = {}
        default_handler: EventHandler = DefaultEventHandler()

        for event_name, handler in self._pairs:
            logger.info(
                f"Adding event handler {handler!r} for {event_name}",
                extra={"event_name": event_name},
            )
            if event_name == DEFAULT_EVENT_HANDLER:
                default_handler = handler
            else:
                table.setdefault(event_name, []).append(handler)

        self._dispatcher = EventDispatcher(
            {name: tuple(handlers) for name, handlers in table.items()},
            default_handler,
        )
        self._state = RegistryState.READY
        self._pairs = []
        return self._dispatcher
