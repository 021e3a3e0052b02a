"""
AsyncESLClient - Cliente ESL Inbound (asyncio) para FreeSWITCH.

Implementa ESLTransport sobre uma ou mais conexões mod_event_socket,
identificadas por addr ("host:port").

Funcionalidades:
- Conexão + autenticação (auth/request → auth <senha>)
- Uma task de leitura por conexão: respostas de comando são correlacionadas
  em ordem FIFO; eventos text/event-plain são entregues ao EventListener
- api (síncrono, com timeout) e bgapi (retorna Job-UUID)
- Subscrição de eventos

NÃO faz reconexão automática: conexão perdida falha os comandos pendentes
com ESLConnectionError e fica fechada até novo connect().

IMPORTANTE: os eventos são entregues dentro da task de leitura. Um handler
que aguarda api() na mesma conexão trava a conexão (a resposta só é lida
depois que o handler retorna). Delegue com asyncio.create_task().

Uso:
    dispatcher = registry.build()
    client = AsyncESLClient(listener=dispatcher)
    await client.start()

    reply = await client.send_sync(client.default_addr, "status")
    job_uuid = await client.send_async(client.default_addr, "uuid_answer <uuid>")

    await client.stop()
"""

import asyncio
import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Set, Tuple

from .command import render
from .errors import (
    ESLAuthError,
    ESLCommandError,
    ESLConnectionError,
    ESLError,
    ESLTimeoutError,
)
from .event import ESLEvent, Reply, parse_headers
from .settings import ESLSettings, get_esl_settings
from .transport import ESLTransport, EventListener

logger = logging.getLogger(__name__)

REPLY_CONTENT_TYPES = ("command/reply", "api/response")
EXIT_TIMEOUT = 1.0


async def read_frame(reader: asyncio.StreamReader) -> Tuple[Dict[str, str], str]:
    """
    Lê um frame ESL (headers + body se houver).

    Raises:
        ESLConnectionError: se a conexão fechou no meio do frame
    """
    lines: List[str] = []
    while True:
        line = await reader.readline()
        if not line:
            raise ESLConnectionError("Connection closed by FreeSWITCH")

        line_str = line.decode(errors="replace").rstrip("\r\n")
        if not line_str:
            if lines:
                # Linha vazia = fim dos headers
                break
            continue
        lines.append(line_str)

    headers = parse_headers("\n".join(lines))

    body = ""
    try:
        content_length = int(headers.get("Content-Length", "0") or 0)
    except ValueError:
        raise ESLError(f"Invalid Content-Length: {headers.get('Content-Length')!r}")

    if content_length > 0:
        try:
            body_bytes = await reader.readexactly(content_length)
        except asyncio.IncompleteReadError as e:
            raise ESLConnectionError("Connection closed while reading body") from e
        body = body_bytes.decode(errors="replace")

    return headers, body


class ESLConnection:
    """
    Uma conexão ESL Inbound.

    THREAD SAFETY:
    - _command_lock serializa comandos: no máximo um comando pendente por
      conexão, então a próxima resposta sempre pertence a ele
    - Só a task de leitura lê do socket
    """

    def __init__(
        self,
        addr: str,
        host: str,
        port: int,
        password: str,
        listener: Optional[EventListener] = None,
        connect_timeout: float = 5.0,
        api_timeout: float = 5.0,
    ):
        self.addr = addr
        self.host = host
        self.port = port
        self.password = password
        self.listener = listener
        self.connect_timeout = connect_timeout
        self.api_timeout = api_timeout

        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._connected = False
        self._reader_task: Optional[asyncio.Task] = None

        self._pending: Deque[asyncio.Future] = deque()
        self._command_lock = asyncio.Lock()
        self._subscribed_events: Set[str] = set()

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def subscribed_events(self) -> Set[str]:
        return set(self._subscribed_events)

    async def connect(self) -> None:
        """
        Conecta e autentica.

        Raises:
            ESLConnectionError: falha de rede, timeout ou rejeição por ACL
            ESLAuthError: senha recusada
        """
        if self._connected:
            return

        # Restos de uma conexão perdida
        await self._close_transport()
        self._reader_task = None

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.connect_timeout
            )
        except asyncio.TimeoutError:
            raise ESLConnectionError(
                f"ESL connection timeout ({self.connect_timeout}s) to {self.addr}"
            ) from None
        except OSError as e:
            raise ESLConnectionError(f"ESL connection error to {self.addr}: {e}") from e

        try:
            await asyncio.wait_for(self._authenticate(), timeout=self.connect_timeout)
        except asyncio.TimeoutError:
            await self._close_transport()
            raise ESLConnectionError(f"ESL handshake timeout with {self.addr}") from None
        except ESLError:
            await self._close_transport()
            raise

        self._connected = True
        # Subscrições não sobrevivem a uma nova conexão
        self._subscribed_events.clear()
        self._reader_task = asyncio.create_task(self._reader_loop())
        logger.info(f"Connected to FreeSWITCH ESL at {self.addr}")

    async def _authenticate(self) -> None:
        headers, _ = await read_frame(self._reader)
        content_type = headers.get("Content-Type", "")

        if content_type == "text/rude-rejection":
            raise ESLConnectionError(f"ESL connection rejected by {self.addr} (ACL)")
        if content_type != "auth/request":
            raise ESLConnectionError(f"Unexpected ESL banner from {self.addr}: {content_type!r}")

        await self._write(f"auth {self.password}")
        headers, body = await read_frame(self._reader)
        reply = Reply.from_frame(headers, body)
        if not reply.ok:
            logger.error(f"ESL authentication failed: {reply.status}")
            raise ESLAuthError(f"ESL authentication failed for {self.addr}: {reply.status}")

    async def close(self) -> None:
        """Envia exit e fecha a conexão."""
        if self._connected:
            try:
                await self.send_command("exit", timeout=EXIT_TIMEOUT)
            except ESLError as e:
                logger.debug(f"ESL exit on {self.addr} failed: {e}")

        self._mark_closed("client close")

        if self._reader_task:
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
            self._reader_task = None

        await self._close_transport()
        logger.info(f"Disconnected from ESL {self.addr}")

    async def _close_transport(self) -> None:
        if self._writer:
            writer = self._writer
            self._writer = None
            self._reader = None
            try:
                writer.close()
                await writer.wait_closed()
            except (OSError, ConnectionError) as e:
                logger.debug(f"Error closing ESL writer: {e}")

    def _mark_closed(self, reason: str) -> None:
        self._connected = False
        while self._pending:
            future = self._pending.popleft()
            if not future.done():
                future.set_exception(
                    ESLConnectionError(f"ESL connection to {self.addr} closed: {reason}")
                )

    async def _write(self, data: str) -> None:
        if not self._writer:
            raise ESLConnectionError(f"Not connected to {self.addr}")
        try:
            self._writer.write(f"{data}\n\n".encode())
            await self._writer.drain()
        except (OSError, ConnectionError) as e:
            raise ESLConnectionError(f"ESL write to {self.addr} failed: {e}") from e

    async def send_command(self, command: str, timeout: Optional[float] = None) -> Reply:
        """
        Envia comando e aguarda command/reply ou api/response.

        Raises:
            ESLConnectionError: não conectado, escrita falhou ou conexão caiu
            ESLTimeoutError: sem resposta no timeout
        """
        timeout = self.api_timeout if timeout is None else timeout

        async with self._command_lock:
            if not self._connected:
                raise ESLConnectionError(f"Not connected to {self.addr}")

            future = asyncio.get_running_loop().create_future()
            self._pending.append(future)

            try:
                await self._write(command)
            except ESLConnectionError as e:
                self._mark_closed(str(e))
                raise

            # Em timeout o future é cancelado mas continua na fila: a resposta
            # atrasada é descartada sem desalinhar os próximos comandos
            try:
                return await asyncio.wait_for(future, timeout=timeout)
            except asyncio.TimeoutError:
                raise ESLTimeoutError(
                    f"ESL reply timeout ({timeout}s) on {self.addr}: {command.split(' ', 1)[0]}"
                ) from None

    async def api(self, command: str) -> Reply:
        """
        Executa comando API.

        Raises:
            ESLCommandError: resposta -ERR
        """
        reply = await self.send_command(f"api {command}")
        if not reply.ok:
            raise ESLCommandError(f"ESL api failed: {reply.status}", reply)
        return reply

    async def bgapi(self, command: str) -> str:
        """
        Executa comando em background.

        Returns:
            Job-UUID do comando
        """
        reply = await self.send_command(f"bgapi {command}")
        if not reply.ok:
            raise ESLCommandError(f"ESL bgapi failed: {reply.status}", reply)

        job_uuid = reply.headers.get("Job-UUID")
        if not job_uuid and "Job-UUID:" in reply.status:
            job_uuid = reply.status.split("Job-UUID:", 1)[1].strip()
        if not job_uuid:
            raise ESLCommandError(f"ESL bgapi reply without Job-UUID: {reply.status}", reply)
        return job_uuid

    async def subscribe_events(self, events: Iterable[str]) -> None:
        """Subscreve eventos (event plain ...)."""
        new_events = [e for e in events if e not in self._subscribed_events]
        if not new_events:
            return

        reply = await self.send_command(render("event plain", *new_events))
        if not reply.ok:
            raise ESLCommandError(f"ESL event subscription failed: {reply.status}", reply)
        self._subscribed_events.update(new_events)

    async def _reader_loop(self) -> None:
        reason = "reader stopped"
        try:
            while self._connected:
                headers, body = await read_frame(self._reader)
                await self._handle_frame(headers, body)
        except ESLConnectionError as e:
            reason = str(e)
            if self._connected:
                logger.warning(f"ESL connection lost ({self.addr}): {e}")
        except (OSError, ConnectionError) as e:
            reason = str(e)
            logger.warning(f"ESL connection lost ({self.addr}): {e}")
        except ESLError as e:
            reason = str(e)
            logger.error(f"ESL protocol error on {self.addr}: {e}")
        finally:
            self._mark_closed(reason)
            await self._close_transport()

    async def _handle_frame(self, headers: Dict[str, str], body: str) -> None:
        content_type = headers.get("Content-Type", "")

        if content_type in REPLY_CONTENT_TYPES:
            reply = Reply.from_frame(headers, body)
            if not self._pending:
                logger.warning(f"Unexpected {content_type} from {self.addr}: {reply.status}")
                return
            future = self._pending.popleft()
            if not future.done():
                future.set_result(reply)
            return

        if content_type == "text/event-plain":
            event = ESLEvent.from_plain(body)
            await self._deliver(event)
            return

        if content_type == "text/disconnect-notice":
            raise ESLConnectionError("disconnect notice received")

        logger.debug(f"Ignoring ESL frame {content_type!r} from {self.addr}")

    async def _deliver(self, event: ESLEvent) -> None:
        if self.listener is None:
            return
        try:
            await self.listener.deliver_event(self.addr, event)
        except Exception as e:
            logger.error(
                f"Event listener error: {e}",
                exc_info=True,
                extra={"addr": self.addr, "event_name": event.name},
            )


class AsyncESLClient(ESLTransport):
    """
    Transporte ESL Inbound com múltiplos servidores.

    Sem servidores adicionados, start() conecta ao servidor das settings.
    """

    def __init__(
        self,
        listener: Optional[EventListener] = None,
        settings: Optional[ESLSettings] = None,
    ):
        self.settings = settings or get_esl_settings()
        self._listener = listener
        self._connections: Dict[str, ESLConnection] = {}

    @property
    def listener(self) -> Optional[EventListener]:
        return self._listener

    @listener.setter
    def listener(self, listener: Optional[EventListener]) -> None:
        self._listener = listener
        for connection in self._connections.values():
            connection.listener = listener

    @property
    def default_addr(self) -> str:
        return self.settings.esl_addr

    @property
    def addrs(self) -> List[str]:
        return list(self._connections.keys())

    def add_server(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        password: Optional[str] = None,
    ) -> str:
        """
        Adiciona servidor FreeSWITCH.

        Returns:
            addr ("host:port") usado nos comandos
        """
        host = host or self.settings.ESL_HOST
        port = port or self.settings.ESL_PORT
        addr = f"{host}:{port}"

        if addr not in self._connections:
            self._connections[addr] = ESLConnection(
                addr=addr,
                host=host,
                port=port,
                password=password if password is not None else self.settings.ESL_PASSWORD,
                listener=self._listener,
                connect_timeout=self.settings.ESL_CONNECT_TIMEOUT,
                api_timeout=self.settings.ESL_API_TIMEOUT,
            )
        return addr

    def get_connection(self, addr: str) -> ESLConnection:
        connection = self._connections.get(addr)
        if connection is None:
            raise ESLConnectionError(f"Unknown ESL address {addr}")
        return connection

    def is_connected(self, addr: str) -> bool:
        connection = self._connections.get(addr)
        return connection is not None and connection.is_connected

    async def start(self) -> None:
        """Conecta a todos os servidores e subscreve os eventos configurados."""
        if not self._connections:
            self.add_server()

        events = self.settings.esl_event_list
        for addr, connection in self._connections.items():
            await connection.connect()
            if events:
                await connection.subscribe_events(events)
                logger.info(
                    f"Subscribed to {len(events)} ESL events on {addr}",
                    extra={"addr": addr, "events": events},
                )

    async def stop(self) -> None:
        for connection in self._connections.values():
            await connection.close()

    async def __aenter__(self) -> "AsyncESLClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def send_async(self, addr: str, command: str, arg: str = "") -> str:
        return await self.get_connection(addr).bgapi(render(command, arg))

    async def send_sync(self, addr: str, command: str, arg: str = "") -> Reply:
        return await self.get_connection(addr).api(render(command, arg))

    async def subscribe_events(self, addr: str, events: Iterable[str]) -> None:
        await self.get_connection(addr).subscribe_events(events)
