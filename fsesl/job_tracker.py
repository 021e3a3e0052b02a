"""
Background Job Tracker - Aguarda o resultado de comandos bgapi.

O dispatcher não correlaciona Job-UUIDs sozinho. Quem precisa do resultado
registra este handler para BACKGROUND_JOB e usa wait():

    tracker = BackgroundJobTracker()
    registry.register("BACKGROUND_JOB", tracker)
    ...
    job_uuid = await commands.answer(addr, call_uuid)
    event = await tracker.wait(job_uuid, timeout=10.0)
    event.body  # "+OK ..." ou "-ERR ..."

O resultado pode chegar antes de wait() ser chamado (o reader continua
lendo enquanto o chamador retoma): resultados sem espera ficam em buffer.
"""

import asyncio
import logging
from collections import OrderedDict
from typing import Dict, List, Optional

from .errors import ESLTimeoutError
from .event import ESLEvent
from .event_listener import EventHandler

logger = logging.getLogger(__name__)

DEFAULT_MAX_BUFFERED = 1000


class BackgroundJobTracker(EventHandler):
    """Correlaciona eventos BACKGROUND_JOB com Job-UUIDs aguardados."""

    def __init__(self, max_buffered: int = DEFAULT_MAX_BUFFERED):
        self.max_buffered = max_buffered
        self._waiters: Dict[str, List[asyncio.Future]] = {}
        self._results: "OrderedDict[str, ESLEvent]" = OrderedDict()

    @property
    def pending_count(self) -> int:
        return len(self._waiters)

    @property
    def buffered_count(self) -> int:
        return len(self._results)

    def handle(self, addr: str, event: ESLEvent) -> None:
        job_uuid = event.job_uuid
        if not job_uuid:
            logger.warning(f"BACKGROUND_JOB without Job-UUID from {addr}")
            return

        resolved = False
        for future in self._waiters.pop(job_uuid, []):
            if not future.done():
                future.set_result(event)
                resolved = True
        if resolved:
            return

        self._results[job_uuid] = event
        # Descartar resultado mais antigo
        while len(self._results) > self.max_buffered:
            dropped, _ = self._results.popitem(last=False)
            logger.debug(f"Dropping unclaimed job result {dropped}")

    async def wait(self, job_uuid: str, timeout: Optional[float] = 30.0) -> ESLEvent:
        """
        Aguarda o evento BACKGROUND_JOB de um Job-UUID.

        Raises:
            ESLTimeoutError: se o resultado não chegar no timeout
        """
        event = self._results.pop(job_uuid, None)
        if event is not None:
            return event

        # Um future por chamador: o timeout de um não afeta os outros
        future = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(job_uuid, []).append(future)

        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            raise ESLTimeoutError(f"Job {job_uuid} sem resultado após {timeout}s") from None
        finally:
            futures = self._waiters.get(job_uuid)
            if futures and future in futures:
                futures.remove(future)
                if not futures:
                    del self._waiters[job_uuid]
