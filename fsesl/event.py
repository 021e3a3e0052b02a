"""
Modelos de dados do protocolo ESL: eventos e respostas.

Formato de um frame ESL:
    Header: Value\\n
    Header2: Value2\\n
    \\n
    [Body se Content-Length presente]

Eventos chegam como Content-Type: text/event-plain, com os headers do evento
URL-encoded dentro do body.

Ref: https://freeswitch.org/confluence/display/FREESWITCH/mod_event_socket
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional, Tuple
from urllib.parse import unquote

BACKGROUND_JOB = "BACKGROUND_JOB"


def parse_headers(text: str, unquote_values: bool = False) -> dict:
    """
    Parseia linhas "Key: Value" em dict.

    Args:
        text: Bloco de headers (sem a linha vazia final)
        unquote_values: True para headers de evento (URL-encoded)
    """
    headers = {}
    for line in text.split("\n"):
        line = line.rstrip("\r")
        if ":" not in line:
            continue
        key, value = line.split(":", 1)
        key = key.strip()
        value = value.strip()
        if unquote_values:
            key = unquote(key)
            value = unquote(value)
        headers[key] = value
    return headers


def _freeze(headers: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return MappingProxyType(dict(headers or {}))


@dataclass(frozen=True)
class Reply:
    """Resposta de um comando síncrono (api)."""
    status: str
    body_lines: Tuple[str, ...] = ()
    content_type: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "headers", _freeze(self.headers))
        object.__setattr__(self, "body_lines", tuple(self.body_lines))

    @property
    def ok(self) -> bool:
        return self.status.startswith("+OK")

    @property
    def body(self) -> str:
        return "\n".join(self.body_lines)

    @classmethod
    def from_frame(cls, headers: Mapping[str, str], body: str = "") -> "Reply":
        """
        Monta Reply a partir de um frame command/reply ou api/response.

        command/reply carrega o status em Reply-Text; api/response carrega
        o resultado no body (que começa com -ERR em caso de erro).
        """
        content_type = headers.get("Content-Type", "")
        if "Reply-Text" in headers:
            status = headers["Reply-Text"]
        elif body.startswith("-ERR"):
            status = body.strip().splitlines()[0]
        else:
            status = "+OK"

        return cls(
            status=status,
            body_lines=tuple(body.splitlines()),
            content_type=content_type,
            headers=headers,
        )


@dataclass(frozen=True)
class ESLEvent:
    """
    Evento ESL parseado.

    Imutável: os handlers recebem uma visão somente leitura dos headers.
    """
    name: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        object.__setattr__(self, "headers", _freeze(self.headers))

    def get(self, header: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(header, default)

    @property
    def uuid(self) -> Optional[str]:
        """UUID do canal (Unique-ID)."""
        return self.headers.get("Unique-ID")

    @property
    def job_uuid(self) -> Optional[str]:
        """Job-UUID de um BACKGROUND_JOB (correlaciona com bgapi)."""
        return self.headers.get("Job-UUID")

    @property
    def is_background_job(self) -> bool:
        return self.name == BACKGROUND_JOB

    @property
    def hangup_cause(self) -> Optional[str]:
        """Retorna hangup cause se for evento de hangup."""
        return self.headers.get("Hangup-Cause")

    @property
    def channel_state(self) -> Optional[str]:
        return self.headers.get("Channel-State")

    @property
    def caller_id_number(self) -> Optional[str]:
        return self.headers.get("Caller-Caller-ID-Number")

    @classmethod
    def from_plain(cls, text: str) -> "ESLEvent":
        """
        Parseia o body de um frame text/event-plain.

        O evento pode ter body próprio (ex: resultado de BACKGROUND_JOB),
        indicado por um Content-Length dentro dos headers do evento.
        """
        raw_headers, _, rest = text.partition("\n\n")
        headers = parse_headers(raw_headers, unquote_values=True)

        body = None
        length = headers.get("Content-Length")
        if length is not None:
            # Content-Length conta bytes, não caracteres
            try:
                body = rest.encode()[:int(length)].decode(errors="replace")
            except ValueError:
                body = rest
        elif rest.strip():
            body = rest

        return cls(
            name=headers.get("Event-Name", "UNKNOWN"),
            headers=headers,
            body=body,
        )
