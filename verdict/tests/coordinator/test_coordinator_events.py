import anyio
import pytest

from verdict.app.config import VerdictConfig
from verdict.app.coordinator import coordinator as coordinator_module
from verdict.app.coordinator.coordinator import (
    InvariantViolationError,
    VerdictCoordinator,
)
from verdict.app.events import MemoryQueueEventEmitter, VerdictEvent, VerdictEventType
from verdict.app.schemas.requests import VerdictRequest
from verdict.tests.fixtures.candidates import make_candidate


# Safe, non-blocking test emitter
class TestListEmitter:
    __test__ = False

    def __init__(self):
        self.events: list[VerdictEvent] = []

    async def emit(self, event: VerdictEvent) -> None:
        self.events.append(event)


def _coordinator() -> VerdictCoordinator:
    return VerdictCoordinator.from_config(VerdictConfig())


def _request() -> VerdictRequest:
    return VerdictRequest(candidates=[make_candidate(), make_candidate(id="x")])


async def _run_and_collect_events():
    emitter = TestListEmitter()
    await _coordinator().run(_request(), emitter=emitter)
    return emitter.events


def test_events_follow_stage_order():
    events = anyio.run(_run_and_collect_events)

    assert [e.event_type for e in events] == [
        VerdictEventType.PIPELINE_STARTED,
        VerdictEventType.CANDIDATES_SCORED,
        VerdictEventType.INVARIANTS_ENFORCED,
        VerdictEventType.FINDINGS_CANONICALIZED,
        VerdictEventType.GATE_DECIDED,
        VerdictEventType.PIPELINE_COMPLETED,
    ]
    assert len({e.run_id for e in events}) == 1
    assert events[0].details == {"candidate_count": 2}
    assert events[4].details == {"outcome": "FAILURE_CONFIRMED", "exit_code": 20}


def test_completed_event_carries_the_result():
    events = anyio.run(_run_and_collect_events)

    result = events[-1].details["result"]
    assert result["gateDecision"]["outcome"] == "FAILURE_CONFIRMED"
    assert result["findingsDigest"].startswith("SHA-256:")


def test_invariant_violation_is_a_hard_stop(monkeypatch):
    monkeypatch.setattr(coordinator_module, "violations", lambda findings: ["x"])
    emitter = TestListEmitter()

    async def _run():
        await _coordinator().run(_request(), emitter=emitter)

    with pytest.raises(InvariantViolationError):
        anyio.run(_run)

    types = [e.event_type for e in emitter.events]
    assert types[-1] == VerdictEventType.PIPELINE_FAILED
    assert VerdictEventType.GATE_DECIDED not in types
    assert emitter.events[-1].details["exception_type"] == "InvariantViolationError"


def test_memory_emitter_streams_until_terminal_event():
    async def _run():
        emitter = MemoryQueueEventEmitter()
        await _coordinator().run(_request(), emitter=emitter)
        assert emitter.finished

        # Emissions after the terminal event are ignored
        await emitter.emit(
            VerdictEvent(run_id="late", event_type=VerdictEventType.PIPELINE_STARTED)
        )
        return [event async for event in emitter.stream()]

    events = anyio.run(_run)

    assert events[-1].event_type == VerdictEventType.PIPELINE_COMPLETED
    assert all(e.run_id != "late" for e in events)


def test_sse_payload_shape():
    event = VerdictEvent(
        run_id="run-1",
        event_type=VerdictEventType.GATE_DECIDED,
        details={"outcome": "SUCCESS"},
    )

    payload = event.to_sse_payload()

    assert payload.startswith("event: gate_decided\ndata: {")
    assert payload.endswith("\n\n")
