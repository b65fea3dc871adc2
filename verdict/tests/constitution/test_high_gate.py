import pytest

from verdict.app.confidence.engine import score
from verdict.app.constitution.enforcer import enforce, violations
from verdict.app.schemas.findings import Confidence, ConfidenceLevel
from verdict.tests.fixtures.candidates import (
    full_sensors,
    make_candidate,
    proven_proof,
)


def _factors(strength: str, sensors: bool) -> dict:
    return {
        "promiseStrength": strength,
        "sensorsPresent": {"network": sensors, "console": sensors, "ui": sensors},
        "evidenceSignals": {},
    }


def _enforced_confidence(confidence) -> Confidence:
    result = enforce([make_candidate(confidence=confidence)])
    assert result.enforcement.dropped_count == 0
    return result.findings[0].confidence


# ---------------------------------------------------------------------------
# Supplied confidence
# ---------------------------------------------------------------------------

def test_supplied_high_without_proof_is_capped_at_medium():
    confidence = _enforced_confidence(
        {"score": 95, "level": "HIGH", "factors": _factors("OBSERVED", False)}
    )

    assert confidence.level == ConfidenceLevel.MEDIUM
    assert confidence.score == 79
    assert "Capped at MEDIUM" in confidence.boundary


def test_supplied_high_without_factors_is_capped_at_medium():
    confidence = _enforced_confidence({"score": 85, "level": "HIGH"})

    assert confidence.level == ConfidenceLevel.MEDIUM
    assert confidence.score == 79


def test_supplied_high_with_missing_sensors_is_capped_at_medium():
    confidence = _enforced_confidence(
        {"score": 90, "level": "HIGH", "factors": _factors("PROVEN", False)}
    )

    assert confidence.level == ConfidenceLevel.MEDIUM
    assert "sensors lack data" in confidence.boundary


def test_supplied_high_with_proof_and_sensors_is_kept():
    confidence = _enforced_confidence(
        {"score": 92, "level": "HIGH", "factors": _factors("PROVEN", True)}
    )

    assert confidence.level == ConfidenceLevel.HIGH
    assert confidence.score == 92


def test_engine_confidence_survives_enforcement():
    engine = score("network_silent_failure", proven_proof(), full_sensors())

    confidence = _enforced_confidence(engine)

    assert confidence.level == ConfidenceLevel.HIGH
    assert confidence.score == engine.score


@pytest.mark.parametrize(
    "supplied, expected",
    [
        ({"score": 90, "level": "MEDIUM"}, 79),
        ({"score": 70, "level": "LOW"}, 54),
        ({"score": 30, "level": "LOW"}, 30),
    ],
)
def test_lower_supplied_level_clamps_the_score(supplied, expected):
    assert _enforced_confidence(supplied).score == expected


# ---------------------------------------------------------------------------
# Output invariants
# ---------------------------------------------------------------------------

def test_enforced_findings_never_violate_the_high_gate():
    candidates = [
        make_candidate(
            id=f"f-{i}",
            confidence={"score": 80 + i, "level": "HIGH", "factors": factors},
        )
        for i, factors in enumerate(
            [
                None,
                _factors("PROVEN", True),
                _factors("PROVEN", False),
                _factors("WEAK", True),
                _factors("UNKNOWN", False),
            ]
        )
    ]

    findings = enforce(candidates).findings

    assert len(findings) == 5
    assert violations(findings) == []
    for finding in findings:
        if finding.confidence.level == ConfidenceLevel.HIGH:
            assert finding.confidence.factors.promise_strength.value == "PROVEN"
            assert finding.confidence.factors.sensors_present.all_present


def test_violations_flags_high_without_proven_promise():
    finding = enforce([make_candidate()]).findings[0]
    forged = finding.model_copy(
        update={"confidence": Confidence(score=95, level=ConfidenceLevel.HIGH)}
    )

    assert violations([finding, forged]) == [forged.id]


def test_violations_flags_level_contradicting_score():
    finding = enforce([make_candidate()]).findings[0]
    forged = finding.model_copy(
        update={"confidence": Confidence(score=20, level=ConfidenceLevel.MEDIUM)}
    )

    assert violations([forged]) == [forged.id]
