from __future__ import annotations

from typing import Protocol

from verdict.app.events.models import VerdictEvent


class VerdictEventEmitter(Protocol):
    """
    Receives progress events while the coordinator computes a verdict.

    Implementations must not block the pipeline for long and must not
    raise. Events describe what happened; they never steer the verdict.
    """

    async def emit(self, event: VerdictEvent) -> None:
        ...


class NullEventEmitter:
    """Discards every event. Default when the caller does not stream."""

    async def emit(self, event: VerdictEvent) -> None:
        return
