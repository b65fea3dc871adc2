import pytest

from verdict.app.canonical.serialization import canonical_bytes
from verdict.app.config import VerdictConfig
from verdict.app.coordinator.coordinator import VerdictCoordinator, run_verdict
from verdict.app.coordinator.pipeline import run_pipeline, score_candidate
from verdict.app.determinism.comparison import find_differences, semantic_hash
from verdict.app.schemas.findings import ConfidenceLevel, FindingStatus
from verdict.app.schemas.gate import GateOutcome
from verdict.app.schemas.requests import VerdictRequest
from verdict.tests.fixtures.candidates import make_candidate, make_scored_candidate

pytestmark = pytest.mark.anyio


def _candidates():
    return [
        make_scored_candidate(id="scored", sourceRef="src/form.js:7"),
        make_candidate(id="dup", sourceRef="src/a.js:10"),
        make_candidate(id="dup", sourceRef="src/a.js:10"),
        make_candidate(id="weak", evidence={}, sourceRef="src/a.js:9"),
        make_candidate(id="broken", impact="SEVERE"),
        "garbage",
    ]


# ---------------------------------------------------------------------------
# Synchronous pipeline
# ---------------------------------------------------------------------------

def test_pipeline_stages_compose():
    output = run_pipeline(_candidates())
    enforcement = output.report.enforcement

    assert [f.id for f in output.findings] == ["weak", "dup", "scored"]
    assert enforcement.dropped_count == 2
    assert enforcement.downgraded_count == 1
    assert enforcement.deduplicated_count == 1
    assert output.candidate_count == 6
    assert output.scored_count == 1
    assert output.report.outcome_summary == {"CONFIRMED": 2, "SUSPECTED": 1}
    assert output.report.promise_summary == {"network": 3}


def test_scored_candidate_uses_engine_confidence():
    output = run_pipeline([make_scored_candidate()])

    confidence = output.findings[0].confidence
    assert confidence.score == 94
    assert confidence.level == ConfidenceLevel.HIGH
    assert confidence.factors is not None
    assert confidence.explanation is not None


def test_candidates_without_signals_are_not_scored():
    candidate = make_candidate()

    scored, was_scored = score_candidate(candidate)

    assert was_scored is False
    assert scored is candidate


def test_pipeline_output_is_byte_identical_across_runs():
    first = run_pipeline(_candidates())
    second = run_pipeline(_candidates())

    assert canonical_bytes(first.report) == canonical_bytes(second.report)


def test_finding_order_does_not_depend_on_input_order():
    first = run_pipeline(_candidates())
    second = run_pipeline(list(reversed(_candidates())))

    assert [canonical_bytes(f) for f in first.findings] == [
        canonical_bytes(f) for f in second.findings
    ]


def test_findings_differing_only_in_location_have_a_fixed_order():
    a = make_candidate(location="#a")
    b = make_candidate(location="#b")

    first = run_pipeline([a, b])
    second = run_pipeline([b, a])

    assert [f.location for f in first.findings] == ["#a", "#b"]
    assert canonical_bytes(first.report) == canonical_bytes(second.report)


def test_pipeline_never_emits_unsupported_confirmed_findings():
    candidates = [
        make_candidate(id=str(i), evidence={} if i % 2 else None)
        for i in range(6)
    ]

    output = run_pipeline(candidates)

    assert all(f.status == FindingStatus.SUSPECTED for f in output.findings)


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------

async def test_identical_requests_yield_identical_artifacts():
    payload = {
        "candidates": _candidates(),
        "run": {"stabilityClassification": "STABLE"},
    }

    first = await run_verdict({**payload, "generatedAt": "2026-01-01T00:00:00Z"})
    second = await run_verdict({**payload, "generatedAt": "2026-06-30T12:00:00Z"})

    assert first.run_id == second.run_id
    assert first.run_id.startswith("run-")
    assert first.findings_digest == second.findings_digest
    assert canonical_bytes(first.gate_report) == canonical_bytes(second.gate_report)
    assert first.diagnostics.generated_at != second.diagnostics.generated_at
    assert semantic_hash(first) == semantic_hash(second)
    assert find_differences(first, second) == []


async def test_confirmed_findings_fail_the_gate():
    result = await run_verdict({"candidates": _candidates()})

    assert result.gate_decision.outcome == GateOutcome.FAILURE_CONFIRMED
    assert result.gate_decision.exit_code == 20
    assert result.gate_report.gate.decision == GateOutcome.FAILURE_CONFIRMED
    assert result.findings_digest.startswith("SHA-256:")


async def test_non_deterministic_run_is_incomplete():
    request = {
        "candidates": [make_candidate()],
        "determinismFactors": [
            {"classification": "NON_DETERMINISTIC", "reason": "Timeout during observe"}
        ],
    }

    result = await run_verdict(request)

    assert result.determinism.reproducible is False
    assert result.gate_report.run.exit_code == 30
    assert result.gate_decision.outcome == GateOutcome.INCOMPLETE


async def test_config_supplies_default_completeness_policy():
    request = {
        "candidates": [],
        "run": {"runExitCode": 30},
    }

    strict = await run_verdict(request)
    lenient = await run_verdict(
        request, config=VerdictConfig(FAIL_ON_INCOMPLETE=False)
    )

    assert strict.gate_decision.outcome == GateOutcome.INCOMPLETE
    assert lenient.gate_decision.outcome == GateOutcome.NEEDS_REVIEW


async def test_explicit_run_id_is_kept():
    coordinator = VerdictCoordinator.from_config(VerdictConfig())

    result = await coordinator.run(VerdictRequest(run_id="ci-42"))

    assert result.run_id == "ci-42"
    assert result.gate_decision.outcome == GateOutcome.SUCCESS
    assert result.gate_report.meta.verax_version == "0.1.0"
