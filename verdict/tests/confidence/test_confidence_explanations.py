from verdict.app.confidence.engine import score
from verdict.app.confidence.explanation import (
    boundary_explanation,
    collect_explanations,
)
from verdict.app.schemas.findings import ConfidenceLevel
from verdict.app.schemas.signals import PromiseStrength, SensorPresence
from verdict.tests.fixtures.candidates import full_sensors, proven_proof


ALL_SENSORS = SensorPresence(network=True, console=True, ui=True)


def test_explanations_order_penalties_boosts_then_strength():
    explain = collect_explanations(
        boosts=["boost-a", "shared"],
        penalties=["penalty-a", "shared"],
        strength=PromiseStrength.WEAK,
        limit=8,
    )

    assert explain == [
        "penalty-a",
        "shared",
        "boost-a",
        "Promise strength: WEAK",
    ]


def test_explanations_are_truncated():
    explain = collect_explanations(
        boosts=[f"boost-{i}" for i in range(10)],
        penalties=[],
        strength=PromiseStrength.PROVEN,
        limit=8,
    )

    assert explain == [f"boost-{i}" for i in range(8)]


def test_boundary_near_high_threshold():
    text = boundary_explanation(
        raw_score=81,
        level=ConfidenceLevel.HIGH,
        strength=PromiseStrength.PROVEN,
        sensors=ALL_SENSORS,
    )

    assert text.startswith("Near threshold: score 81 >= 80")


def test_boundary_reports_cap_for_unproven_promise():
    text = boundary_explanation(
        raw_score=90,
        level=ConfidenceLevel.MEDIUM,
        strength=PromiseStrength.WEAK,
        sensors=ALL_SENSORS,
    )

    assert "promise is not proven" in text


def test_no_boundary_far_from_thresholds():
    assert (
        boundary_explanation(
            raw_score=30,
            level=ConfidenceLevel.LOW,
            strength=PromiseStrength.WEAK,
            sensors=ALL_SENSORS,
        )
        is None
    )


def test_high_confidence_explanation_layers():
    result = score("network_silent_failure", proven_proof(), full_sensors())
    explanation = result.explanation

    assert explanation.why_this_confidence[0].startswith("High confidence")
    assert explanation.what_would_increase_confidence == [
        "Already at maximum confidence for available evidence"
    ]
    assert "If sensors become unavailable or disabled" in (
        explanation.what_would_reduce_confidence
    )


def test_low_confidence_suggests_missing_sensors_and_repetition():
    result = score("no_effect_silent_failure", {"kind": "click", "value": "#go"})
    explanation = result.explanation

    assert result.level == ConfidenceLevel.LOW
    assert "Enable missing sensors: network, console, UI" in (
        explanation.what_would_increase_confidence
    )
    assert (
        "Repeat the interaction multiple times to confirm consistency"
        in explanation.what_would_increase_confidence
    )
    assert explanation.what_would_reduce_confidence == [
        "No factors would reduce confidence further"
    ]
