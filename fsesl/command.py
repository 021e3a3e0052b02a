"""
Command - Montagem das linhas de comando ESL.

Cada operação de controle de chamada é declarada como nome + lista ordenada
de argumentos, onde qualquer argumento pode ser None (ausente):

    Command.cmd(UUID_BREAK).arg(uuid).arg("all" if all_ else None)

Regras de renderização:
- argumentos None ou vazios são omitidos (sem espaço extra)
- argumentos presentes são anexados com um espaço, sem escape
- nenhum argumento pode conter o terminador de linha do protocolo

Não faz I/O e não guarda estado: mesma entrada, mesma saída.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from .errors import ESLEncodingError

# Comandos de controle de chamada (mod_commands)
UUID_ANSWER = "uuid_answer"
UUID_BRIDGE = "uuid_bridge"
UUID_BROADCAST = "uuid_broadcast"
UUID_BREAK = "uuid_break"
UUID_HOLD = "uuid_hold"
UUID_GETVAR = "uuid_getvar"
UUID_SETVAR = "uuid_setvar"
UUID_SETVAR_MULTI = "uuid_setvar_multi"
UUID_RECORD = "uuid_record"
UUID_TRANSFER = "uuid_transfer"
UUID_KILL = "uuid_kill"
UUID_PARK = "uuid_park"
UUID_SEND_DTMF = "uuid_send_dtmf"
UUID_EXISTS = "uuid_exists"
ORIGINATE = "originate"

_LINE_TERMINATORS = ("\r", "\n")


def _check(value: str) -> str:
    if any(t in value for t in _LINE_TERMINATORS):
        raise ESLEncodingError(f"Argumento contém terminador de linha: {value!r}")
    return value


def render(name: str, *args: Optional[str]) -> str:
    """
    Renderiza comando ESL.

    Args:
        name: Nome do comando (ex: "uuid_hold")
        *args: Argumentos na ordem do comando; None ou em branco são omitidos

    Returns:
        Linha de comando (ex: "uuid_hold toggle abc-123")

    Raises:
        ESLEncodingError: se nome ou argumento contém \\r ou \\n
    """
    parts = [_check(name)]
    for value in args:
        if value is None or not value.strip():
            continue
        parts.append(_check(value))
    return " ".join(parts)


def render_vars(name: str, uuid: str, variables: Optional[Mapping[str, Any]]) -> str:
    """
    Renderiza comando com mapa de variáveis "k=v;k2=v2".

    Mapa vazio retorna "" (nada a enviar).
    """
    if not variables:
        return ""
    pairs = ";".join(f"{_check(str(k))}={_check(str(v))}" for k, v in variables.items())
    return render(name, uuid, pairs)


def render_channel_vars(variables: Optional[Mapping[str, Any]]) -> str:
    """Renderiza bloco de variáveis de originate: {k=v,k2=v2}."""
    if not variables:
        return ""
    pairs = ",".join(f"{_check(str(k))}={_check(str(v))}" for k, v in variables.items())
    return "{" + pairs + "}"


def positive_or_none(value: Optional[int]) -> Optional[str]:
    """Valores numéricos < 1 são tratados como ausentes."""
    if value is None or value < 1:
        return None
    return str(value)


@dataclass(frozen=True)
class Command:
    """
    Comando ESL imutável.

    Uso:
        command = Command.cmd(UUID_HOLD).arg("toggle").arg(uuid).arg(None)
        str(command)  # "uuid_hold toggle <uuid>"
    """
    name: str
    args: Tuple[Optional[str], ...] = ()

    @classmethod
    def cmd(cls, name: str) -> "Command":
        return cls(name=name)

    def arg(self, value: Optional[str]) -> "Command":
        """Retorna novo Command com mais um argumento (None = ausente)."""
        return Command(self.name, self.args + (value,))

    def render(self) -> str:
        return render(self.name, *self.args)

    def __str__(self) -> str:
        return self.render()
