"""
ESL Command Interface - Operações de controle de chamada.

Cada operação é uma composição de uma linha: monta o comando (command.py)
e envia pelo transporte (transport.py).

- Operações que alteram a perna (answer, bridge, hold, record, ...) usam
  bgapi e retornam o Job-UUID imediatamente
- Leituras (get_var, exists) usam api e retornam as linhas do body

Erros de codificação e transporte sobem sem tratamento: não há retry aqui.

Ref: https://freeswitch.org/confluence/display/FREESWITCH/mod_commands
"""

import logging
from typing import Any, List, Mapping, Optional

from .command import (
    ORIGINATE,
    UUID_ANSWER,
    UUID_BREAK,
    UUID_BRIDGE,
    UUID_BROADCAST,
    UUID_EXISTS,
    UUID_GETVAR,
    UUID_HOLD,
    UUID_KILL,
    UUID_PARK,
    UUID_RECORD,
    UUID_SEND_DTMF,
    UUID_SETVAR,
    UUID_SETVAR_MULTI,
    UUID_TRANSFER,
    Command,
    positive_or_none,
    render_channel_vars,
    render_vars,
)
from .event import Reply
from .transport import ESLTransport

logger = logging.getLogger(__name__)

EMPTY = ""


class ESLCommandInterface:
    """
    Fachada de comandos ESL sobre um ESLTransport.

    Não guarda estado além do transporte.

    Uso:
        commands = ESLCommandInterface(client)
        job_uuid = await commands.answer("127.0.0.1:8021", call_uuid)
        lines = await commands.get_var("127.0.0.1:8021", call_uuid, "domain_name")
    """

    def __init__(self, transport: ESLTransport):
        self._transport = transport

    async def _send_async(self, op: str, addr: str, command: str) -> str:
        logger.debug(f"{op} addr : {addr}, command : {command}")
        return await self._transport.send_async(addr, command, EMPTY)

    async def _send_sync(self, op: str, addr: str, command: str) -> Reply:
        logger.debug(f"{op} addr : {addr}, command : {command}")
        return await self._transport.send_sync(addr, command, EMPTY)

    async def answer(self, addr: str, uuid: str) -> str:
        """
        uuid_answer <uuid>

        Returns:
            Job-UUID
        """
        command = Command.cmd(UUID_ANSWER).arg(uuid)
        return await self._send_async("answer", addr, str(command))

    async def bridge(self, addr: str, uuid: str, other_uuid: str) -> str:
        """uuid_bridge <uuid> <other_uuid>"""
        command = Command.cmd(UUID_BRIDGE).arg(uuid).arg(other_uuid)
        return await self._send_async("bridge", addr, str(command))

    async def broadcast(
        self,
        addr: str,
        uuid: str,
        path: str,
        smf: Optional[str] = None
    ) -> str:
        """
        uuid_broadcast <uuid> <path> [aleg|bleg|holdb|both]

        Args:
            path: Caminho do arquivo ou stream (ex: "local_stream://moh")
            smf: Perna que ouve a mídia
        """
        command = Command.cmd(UUID_BROADCAST).arg(uuid).arg(path).arg(smf)
        return await self._send_async("broadcast", addr, str(command))

    async def break_(self, addr: str, uuid: str, all_: bool = False) -> str:
        """
        uuid_break <uuid> [all]

        Args:
            all_: Se True, interrompe todos os playbacks enfileirados
        """
        command = Command.cmd(UUID_BREAK).arg(uuid).arg("all" if all_ else None)
        return await self._send_async("break", addr, str(command))

    async def hold(
        self,
        addr: str,
        smf: Optional[str],
        uuid: str,
        display: bool = False
    ) -> str:
        """
        uuid_hold [off|toggle] <uuid> [<display>]

        Args:
            smf: "off", "toggle" ou None (hold)
            display: Anexa "all" ao comando
        """
        command = Command.cmd(UUID_HOLD).arg(smf).arg(uuid).arg("all" if display else EMPTY)
        return await self._send_async("hold", addr, str(command))

    async def get_var(self, addr: str, uuid: str, var: str) -> List[str]:
        """
        uuid_getvar <uuid> <var>

        Returns:
            Linhas do body da resposta (síncrono)
        """
        command = Command.cmd(UUID_GETVAR).arg(uuid).arg(var)
        reply = await self._send_sync("get_var", addr, str(command))
        return list(reply.body_lines)

    async def set_var(
        self,
        addr: str,
        uuid: str,
        var: str,
        val: Optional[str] = None
    ) -> str:
        """
        uuid_setvar <uuid> <var> [value]

        Sem valor, a variável é removida do canal.
        """
        command = Command.cmd(UUID_SETVAR).arg(uuid).arg(var).arg(val)
        return await self._send_async("set_var", addr, str(command))

    async def multi_set_var(
        self,
        addr: str,
        uuid: str,
        variables: Optional[Mapping[str, Any]]
    ) -> str:
        """
        uuid_setvar_multi <uuid> <var>=<value>;<var>=<value>...

        Mapa vazio não envia nada e retorna "".
        """
        command = render_vars(UUID_SETVAR_MULTI, uuid, variables)
        if not command:
            return EMPTY
        return await self._send_async("multi_set_var", addr, command)

    async def record(
        self,
        addr: str,
        uuid: str,
        action: str,
        path: str,
        limit: int = 0
    ) -> str:
        """
        uuid_record <uuid> [start|stop|mask|unmask] <path> [<limit>]

        Args:
            limit: Limite em segundos; < 1 omite o argumento
        """
        command = (
            Command.cmd(UUID_RECORD)
            .arg(uuid)
            .arg(action)
            .arg(path)
            .arg(positive_or_none(limit))
        )
        return await self._send_async("record", addr, str(command))

    async def transfer(
        self,
        addr: str,
        uuid: str,
        smf: Optional[str],
        dest: str,
        dialplan: Optional[str] = None,
        context: Optional[str] = None
    ) -> str:
        """
        uuid_transfer <uuid> [-bleg|-both] <dest-exten> [<dialplan>] [<context>]
        """
        command = (
            Command.cmd(UUID_TRANSFER)
            .arg(uuid)
            .arg(smf)
            .arg(dest)
            .arg(dialplan)
            .arg(context)
        )
        return await self._send_async("transfer", addr, str(command))

    async def kill(self, addr: str, uuid: str, cause: Optional[str] = None) -> str:
        """uuid_kill <uuid> [cause]"""
        command = Command.cmd(UUID_KILL).arg(uuid).arg(cause)
        return await self._send_async("kill", addr, str(command))

    async def park(self, addr: str, uuid: str) -> str:
        """uuid_park <uuid>"""
        command = Command.cmd(UUID_PARK).arg(uuid)
        return await self._send_async("park", addr, str(command))

    async def send_dtmf(
        self,
        addr: str,
        uuid: str,
        digits: str,
        duration: int = 0
    ) -> str:
        """uuid_send_dtmf <uuid> <dtmf digits> [<tone_duration>]"""
        command = (
            Command.cmd(UUID_SEND_DTMF)
            .arg(uuid)
            .arg(digits)
            .arg(positive_or_none(duration))
        )
        return await self._send_async("send_dtmf", addr, str(command))

    async def exists(self, addr: str, uuid: str) -> List[str]:
        """uuid_exists <uuid> - body "true" ou "false" (síncrono)"""
        command = Command.cmd(UUID_EXISTS).arg(uuid)
        reply = await self._send_sync("exists", addr, str(command))
        return list(reply.body_lines)

    async def originate(
        self,
        addr: str,
        dial_string: str,
        app: str = "&park()",
        variables: Optional[Mapping[str, Any]] = None
    ) -> str:
        """
        originate {vars}<dial_string> <app>

        Args:
            dial_string: Dial string (ex: "user/1000@domain.com")
            app: Aplicação após atender (default: park)
            variables: Variáveis de canal (ex: origination_uuid)
        """
        # O bloco de variáveis vai colado na dial string, sem espaço
        command = Command.cmd(ORIGINATE).arg(render_channel_vars(variables) + dial_string).arg(app)
        return await self._send_async("originate", addr, str(command))

    async def api(self, addr: str, command: str) -> Reply:
        """Executa comando API arbitrário (síncrono)."""
        return await self._send_sync("api", addr, str(Command.cmd(command)))

    async def bgapi(self, addr: str, command: str) -> str:
        """Executa comando arbitrário em background."""
        return await self._send_async("bgapi", addr, str(Command.cmd(command)))
