"""
FastAPI entrypoint for the verdict engine service.

This module defines the public HTTP interface for gating CI runs. It
accepts candidate findings and run facts, invokes the coordinator, and
returns the canonical findings report, gate decision and gate report.

The application is stateless: every request is judged from its own
snapshot. No artifacts are read from or written to disk.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Set

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.responses import Response

from verdict.app.config import VerdictConfig
from verdict.app.coordinator.coordinator import VerdictCoordinator
from verdict.app.schemas.reports import VerdictResult
from verdict.app.schemas.requests import VerdictRequest

# Events / streaming
from verdict.app.events import MemoryQueueEventEmitter

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Presentation helpers (presentation-only)
# ---------------------------------------------------------------------------

def pretty_json(data: Any) -> str:
    """
    Pretty-print JSON for human-readable output.

    PRESENTATION ONLY:
    - MUST NOT be used for canonical artifacts
    - MUST NOT be hashed
    """
    return json.dumps(
        data,
        ensure_ascii=False,
        allow_nan=False,
        indent=2,
        separators=(", ", ": "),
    )


class PrettyJSONResponse(Response):
    """
    Pretty-printed JSON response for human-readable console output.
    """

    media_type = "application/json"

    def render(self, content: Any) -> bytes:
        return pretty_json(content).encode("utf-8")


# ---------------------------------------------------------------------------
# Application setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Verdict Engine",
    description="Evidence-based verdict and gate service for silent-failure scans",
    version="0.1.0",
)

_background_tasks: Set[asyncio.Task] = set()


# ---------------------------------------------------------------------------
# Startup / Shutdown
# ---------------------------------------------------------------------------

@app.on_event("startup")
def startup_event() -> None:
    """
    Application startup hook.

    Configuration is loaded once and treated as immutable for the lifetime
    of the process.
    """
    config = VerdictConfig.from_env()

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app.state.config = config
    app.state.coordinator = VerdictCoordinator.from_config(config)

    logger.info(
        "Verdict engine started (fail_on_incomplete=%s, streaming=%s)",
        config.FAIL_ON_INCOMPLETE,
        config.ENABLE_EVENT_STREAMING,
    )


def _enforce_limits(request: VerdictRequest) -> None:
    # Hard resource safety limits (NOT verdict decisions)
    config: VerdictConfig = app.state.config
    if len(request.candidates) > config.MAX_CANDIDATES:
        raise HTTPException(
            status_code=413,
            detail=(
                f"Request exceeds maximum of {config.MAX_CANDIDATES} "
                "candidate findings"
            ),
        )


# ---------------------------------------------------------------------------
# API Routes
# ---------------------------------------------------------------------------

@app.post(
    "/verdict",
    response_model=VerdictResult,
    response_class=PrettyJSONResponse,
    summary="Judge candidate findings and decide the gate for one run",
)
async def compute_verdict(request: VerdictRequest) -> VerdictResult:
    _enforce_limits(request)

    coordinator: VerdictCoordinator = app.state.coordinator
    return await coordinator.run(request)


# ---------------------------------------------------------------------------
# Streaming Verdict (SSE)
# ---------------------------------------------------------------------------

@app.post(
    "/verdict/stream",
    summary="Judge candidate findings (streaming progress)",
)
async def compute_verdict_stream(request: VerdictRequest):
    """
    Compute a verdict while streaming progress events.

    This endpoint is observational only:
    - Client disconnects do NOT cancel the computation
    - Events do NOT influence execution
    - The final PIPELINE_COMPLETED event contains the VerdictResult
    """
    config: VerdictConfig = app.state.config
    if not config.ENABLE_EVENT_STREAMING:
        raise HTTPException(
            status_code=404,
            detail="Event streaming is disabled",
        )

    _enforce_limits(request)

    coordinator: VerdictCoordinator = app.state.coordinator
    emitter = MemoryQueueEventEmitter()

    # --------------------------------------------------------------
    # Background verdict execution
    # --------------------------------------------------------------
    async def run_verdict_task() -> None:
        try:
            await coordinator.run(request, emitter=emitter)
        except Exception as exc:
            # Coordinator already emitted PIPELINE_FAILED
            logger.warning("Streaming verdict failed: %s", exc)

    task = asyncio.create_task(run_verdict_task())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)

    # --------------------------------------------------------------
    # SSE event stream
    # --------------------------------------------------------------
    async def event_stream():
        async for event in emitter.stream():
            yield event.to_sse_payload()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


# ---------------------------------------------------------------------------
# Health Check
# ---------------------------------------------------------------------------

@app.get(
    "/health",
    summary="Service health check",
)
def health_check() -> JSONResponse:
    """Simple health check endpoint."""
    return JSONResponse(
        content={
            "status": "ok",
            "service": "verdict",
        }
    )
