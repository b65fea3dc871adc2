from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Optional

from verdict.app.events.models import TERMINAL_EVENT_TYPES, VerdictEvent
from verdict.app.events.emitter import VerdictEventEmitter

logger = logging.getLogger(__name__)


class MemoryQueueEventEmitter(VerdictEventEmitter):
    """
    Buffers verdict progress events for one streaming consumer.

    The stream ends after pipeline_completed or pipeline_failed; anything
    emitted afterwards is discarded.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Optional[VerdictEvent]] = asyncio.Queue()
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    async def emit(self, event: VerdictEvent) -> None:
        if self._finished:
            logger.debug(
                "Ignoring %s for run %s after terminal event",
                event.event_type.value,
                event.run_id,
            )
            return

        try:
            await self._queue.put(event)
        except RuntimeError as exc:
            # Observability must never break the pipeline
            logger.warning("Dropping event %s: %s", event.event_type.value, exc)
            return

        if event.event_type in TERMINAL_EVENT_TYPES:
            await self.close()

    async def close(self) -> None:
        if self._finished:
            return
        self._finished = True
        await self._queue.put(None)

    async def stream(self) -> AsyncIterator[VerdictEvent]:
        """Yield buffered events in emission order until the run finishes."""
        event = await self._queue.get()
        while event is not None:
            yield event
            event = await self._queue.get()
