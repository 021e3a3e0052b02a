"""
fsesl entrypoint - Monitor de eventos ESL.

Conecta ao FreeSWITCH (ESL Inbound), subscreve ESL_EVENTS e registra cada
evento recebido. Resultados de bgapi (BACKGROUND_JOB) são logados com o
Job-UUID.

Configuração via variáveis de ambiente (ver settings.py):
- ESL_HOST / ESL_PORT / ESL_PASSWORD
- ESL_EVENTS (ex: "CHANNEL_ANSWER CHANNEL_HANGUP BACKGROUND_JOB")
- DEBUG

Uso:
    python -m fsesl
"""

import asyncio
import logging
import signal
import sys

import structlog

from .client import AsyncESLClient
from .errors import ESLConnectionError
from .event import BACKGROUND_JOB, ESLEvent
from .event_listener import DEFAULT_EVENT_HANDLER, EventHandlerRegistry
from .settings import ESLSettings, get_esl_settings

logger = logging.getLogger(__name__)
log = structlog.get_logger()


def setup_logging(debug: bool = False) -> None:
    """Configura logging baseado em DEBUG."""
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )


def log_event(addr: str, event: ESLEvent) -> None:
    log.info(
        "esl_event",
        addr=addr,
        event_name=event.name,
        uuid=event.uuid,
        channel_state=event.channel_state,
        hangup_cause=event.hangup_cause,
    )


def log_job_result(addr: str, event: ESLEvent) -> None:
    log.info(
        "esl_job_result",
        addr=addr,
        job_uuid=event.job_uuid,
        command=event.get("Job-Command"),
        result=(event.body or "").strip()[:200],
    )


def build_registry() -> EventHandlerRegistry:
    registry = EventHandlerRegistry()
    registry.register(DEFAULT_EVENT_HANDLER, log_event)
    registry.register(BACKGROUND_JOB, log_job_result)
    return registry


async def run_monitor(settings: ESLSettings) -> None:
    dispatcher = build_registry().build()
    client = AsyncESLClient(listener=dispatcher, settings=settings)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows
            pass

    await client.start()
    logger.info(f"Monitoring ESL events on {client.default_addr}: {settings.ESL_EVENTS}")

    try:
        while not stop.is_set() and client.is_connected(client.default_addr):
            try:
                await asyncio.wait_for(stop.wait(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
    finally:
        await client.stop()

    if not stop.is_set():
        raise ESLConnectionError(f"Lost ESL connection to {client.default_addr}")


def main() -> None:
    """Entry point principal."""
    settings = get_esl_settings()
    setup_logging(settings.DEBUG)

    logger.info("=" * 60)
    logger.info("FreeSWITCH ESL event monitor")
    logger.info(f"Server: {settings.esl_addr}")
    logger.info("=" * 60)

    try:
        asyncio.run(run_monitor(settings))
    except ESLConnectionError as e:
        logger.error(f"ESL monitor stopped: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


if __name__ == "__main__":
    main()
