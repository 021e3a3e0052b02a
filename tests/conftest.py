"""
Pytest configuration and fixtures.
"""

import asyncio
from typing import Callable, Dict, List, Optional
from unittest.mock import AsyncMock
from urllib.parse import quote

import pytest

from fsesl.event import ESLEvent, Reply
from fsesl.settings import ESLSettings
from fsesl.transport import ESLTransport


class FakeFreeSWITCH:
    """
    Servidor mod_event_socket mínimo para testes.

    - auth/request → auth <senha>
    - api: responde com api_handler(command) (default "+OK")
    - bgapi: responde Job-UUID sequencial e, se send_job_results, envia
      o BACKGROUND_JOB correspondente
    - event plain: +OK
    - exit: +OK bye + disconnect-notice
    - comandos em silent_commands não recebem resposta
    - comandos em reply_delays respondem após o atraso (segundos)
    """

    def __init__(self, password: str = "ClueCon"):
        self.password = password
        self.port: Optional[int] = None
        self.commands: List[str] = []
        self.api_handler: Callable[[str], str] = lambda command: "+OK"
        self.send_job_results = False
        self.silent_commands: List[str] = []
        self.reply_delays: Dict[str, float] = {}
        self._server: Optional[asyncio.AbstractServer] = None
        self._writers: List[asyncio.StreamWriter] = []
        self._job_counter = 0

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle_client, "127.0.0.1", 0)
        self.port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        for writer in self._writers:
            writer.close()
        self._writers.clear()
        if self._server:
            self._server.close()
            await self._server.wait_closed()

    async def __aenter__(self) -> "FakeFreeSWITCH":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _read_command(self, reader: asyncio.StreamReader) -> Optional[str]:
        lines = []
        while True:
            line = await reader.readline()
            if not line:
                return None
            text = line.decode().rstrip("\n")
            if not text:
                if lines:
                    return "\n".join(lines)
                continue
            lines.append(text)

    async def _handle_client(self, reader, writer) -> None:
        self._writers.append(writer)
        writer.write(b"Content-Type: auth/request\n\n")
        await writer.drain()

        while True:
            command = await self._read_command(reader)
            if command is None:
                break
            self.commands.append(command)
            if any(command.startswith(s) for s in self.silent_commands):
                continue
            delay = next(
                (d for prefix, d in self.reply_delays.items() if command.startswith(prefix)), 0
            )
            if delay:
                await asyncio.sleep(delay)
            if not await self._respond(writer, command):
                break

        writer.close()

    async def _respond(self, writer, command: str) -> bool:
        if command.startswith("auth "):
            if command[5:] == self.password:
                writer.write(b"Content-Type: command/reply\nReply-Text: +OK accepted\n\n")
            else:
                writer.write(b"Content-Type: command/reply\nReply-Text: -ERR invalid\n\n")
        elif command.startswith("api "):
            body = self.api_handler(command[4:]) + "\n"
            data = body.encode()
            writer.write(
                f"Content-Type: api/response\nContent-Length: {len(data)}\n\n".encode() + data
            )
        elif command.startswith("bgapi "):
            self._job_counter += 1
            job_uuid = f"job-{self._job_counter}"
            writer.write(
                f"Content-Type: command/reply\nReply-Text: +OK Job-UUID: {job_uuid}\n"
                f"Job-UUID: {job_uuid}\n\n".encode()
            )
            if self.send_job_results:
                self._write_event(
                    writer,
                    {
                        "Event-Name": "BACKGROUND_JOB",
                        "Job-UUID": job_uuid,
                        "Job-Command": command[6:].split(" ", 1)[0],
                    },
                    body="+OK done\n",
                )
        elif command.startswith("event "):
            writer.write(b"Content-Type: command/reply\nReply-Text: +OK event listener enabled plain\n\n")
        elif command == "exit":
            writer.write(b"Content-Type: command/reply\nReply-Text: +OK bye\n\n")
            writer.write(b"Content-Type: text/disconnect-notice\nContent-Length: 0\n\n")
            await writer.drain()
            return False
        else:
            writer.write(b"Content-Type: command/reply\nReply-Text: -ERR command not found\n\n")

        await writer.drain()
        return True

    def _write_event(self, writer, headers: Dict[str, str], body: Optional[str] = None) -> None:
        inner = "".join(f"{k}: {quote(v)}\n" for k, v in headers.items())
        if body:
            inner += f"Content-Length: {len(body.encode())}\n\n{body}"
        else:
            inner += "\n"
        data = inner.encode()
        writer.write(
            f"Content-Length: {len(data)}\nContent-Type: text/event-plain\n\n".encode() + data
        )

    async def send_event(self, headers: Dict[str, str], body: Optional[str] = None) -> None:
        """Envia evento para todos os clientes conectados."""
        for writer in self._writers:
            self._write_event(writer, headers, body)
            await writer.drain()

    async def disconnect_all(self) -> None:
        for writer in self._writers:
            writer.write(b"Content-Type: text/disconnect-notice\nContent-Length: 0\n\n")
            await writer.drain()
            writer.close()
        self._writers.clear()


class RecordingListener:
    """EventListener que guarda (addr, event) recebidos."""

    def __init__(self, expected: int = 1):
        self.expected = expected
        self.events = []
        self.received = asyncio.Event()

    async def deliver_event(self, addr: str, event: ESLEvent) -> None:
        self.events.append((addr, event))
        if len(self.events) >= self.expected:
            self.received.set()


@pytest.fixture
def fake_freeswitch():
    """Servidor FreeSWITCH fake (usar com async with)."""
    return FakeFreeSWITCH()


@pytest.fixture
def recording_listener():
    """Classe RecordingListener (instanciar dentro do teste async)."""
    return RecordingListener


@pytest.fixture
def esl_settings_factory():
    """Cria ESLSettings apontando para a porta do fake."""
    def factory(port: int, **overrides) -> ESLSettings:
        values = {
            "ESL_HOST": "127.0.0.1",
            "ESL_PORT": port,
            "ESL_PASSWORD": "ClueCon",
            "ESL_CONNECT_TIMEOUT": 2.0,
            "ESL_API_TIMEOUT": 2.0,
            "ESL_EVENTS": "CHANNEL_ANSWER BACKGROUND_JOB",
        }
        values.update(overrides)
        return ESLSettings(**values)
    return factory


@pytest.fixture
def mock_transport():
    """ESLTransport mock: bgapi retorna "job-1", api retorna Reply +OK."""
    transport = AsyncMock(spec=ESLTransport)
    transport.send_async.return_value = "job-1"
    transport.send_sync.return_value = Reply(status="+OK", body_lines=("value",))
    return transport


@pytest.fixture
def sample_addr():
    return "10.0.0.5:8021"


@pytest.fixture
def sample_event():
    """Evento CHANNEL_ANSWER de exemplo."""
    return ESLEvent(
        name="CHANNEL_ANSWER",
        headers={
            "Event-Name": "CHANNEL_ANSWER",
            "Unique-ID": "abc-123",
            "Caller-Caller-ID-Number": "1001",
            "Channel-State": "CS_EXECUTE",
        },
    )


@pytest.fixture
def job_event():
    """Evento BACKGROUND_JOB de exemplo."""
    return ESLEvent(
        name="BACKGROUND_JOB",
        headers={"Event-Name": "BACKGROUND_JOB", "Job-UUID": "job-1"},
        body="+OK\n",
    )
