import itertools

from verdict.app.confidence.engine import (
    determine_promise_strength,
    score,
)
from verdict.app.confidence.rules import BASE_SCORES
from verdict.app.schemas.findings import ConfidenceLevel
from verdict.app.schemas.signals import PromiseProof, PromiseStrength
from verdict.tests.fixtures.candidates import full_sensors, proven_proof


# ---------------------------------------------------------------------------
# Level gating
# ---------------------------------------------------------------------------

def test_proven_promise_with_all_sensors_reaches_high():
    result = score("network_silent_failure", proven_proof(), full_sensors())

    # 70 base + 10 failed request + 8 console errors + 6 silent failure
    assert result.score == 94
    assert result.level == ConfidenceLevel.HIGH
    assert result.factors.promise_strength == PromiseStrength.PROVEN
    assert result.factors.sensors_present.all_present
    assert result.explain == [
        "Network request failed",
        "Console errors present",
        "Silent failure: no user feedback on network error",
    ]
    assert result.boundary is None


def test_missing_sensor_caps_high_score_at_medium():
    sensors = full_sensors()
    del sensors["ui"]

    result = score("network_silent_failure", proven_proof(), sensors)

    assert result.level == ConfidenceLevel.MEDIUM
    assert result.score == 79
    assert result.explain[0] == "Missing sensor data: ui"
    assert "sensors lack data" in result.boundary


def test_sensor_without_data_counts_as_missing():
    sensors = full_sensors()
    sensors["network"] = {"totalRequests": 0, "failedRequests": 0}

    result = score("network_silent_failure", proven_proof(), sensors)

    assert result.factors.sensors_present.network is False
    assert result.level != ConfidenceLevel.HIGH
    assert "Missing sensor data: network" in result.explain


def test_weak_promise_is_penalized_and_noted_last():
    proof = {"kind": "network", "value": "POST /api/save"}

    result = score("network_silent_failure", proof, full_sensors())

    # 50 weak base + 24 boosts - 10 non-proven penalty
    assert result.score == 64
    assert result.level == ConfidenceLevel.MEDIUM
    assert "Promise strength is WEAK, not PROVEN" in result.factors.penalties
    assert result.explain[-1] == "Promise strength: WEAK"
    assert [e for e in result.explain if "WEAK" in e] == ["Promise strength: WEAK"]


def test_unknown_promise_keeps_type_base_but_never_high():
    sensors = full_sensors()
    sensors["ui"]["after"] = {}

    result = score(
        "navigation_silent_failure",
        None,
        sensors,
        {"urlChanged": False},
    )

    # 75 type base + 10 + 8 + 6 boosts - 10 non-proven penalty = 89
    assert result.factors.promise_strength == PromiseStrength.UNKNOWN
    assert result.level == ConfidenceLevel.MEDIUM
    assert result.score == 79
    assert "Promise strength: UNKNOWN" in result.explain


def test_ui_feedback_penalizes_network_silent_failure():
    result = score(
        "network_silent_failure",
        proven_proof(),
        full_sensors(ui_feedback=True),
    )

    # 70 + 10 + 8 - 10 (feedback shown, so no silent-failure boost)
    assert result.score == 78
    assert result.level == ConfidenceLevel.MEDIUM
    assert result.explain[0] == "UI feedback detected (suggests not silent)"


# ---------------------------------------------------------------------------
# OBSERVED promises
# ---------------------------------------------------------------------------

def test_single_observation_is_forced_low():
    proof = {"expectationStrength": "OBSERVED", "kind": "network"}

    result = score(
        "network_silent_failure",
        proof,
        full_sensors(),
        {"repeated": False},
    )

    assert result.level == ConfidenceLevel.LOW
    assert result.score <= 49
    # Boundary text describes the final LOW level, not the MEDIUM gate
    assert result.boundary.startswith("Capped at LOW: score 69")
    assert "MEDIUM" not in result.boundary


def test_observation_count_counts_as_repetition():
    proof = {"expectationStrength": "OBSERVED", "kind": "network"}

    single = score(
        "network_silent_failure", proof, full_sensors(), {"observationCount": 1}
    )
    several = score(
        "network_silent_failure", proof, full_sensors(), {"observationCount": 3}
    )

    assert (single.score, single.level) == (49, ConfidenceLevel.LOW)
    assert (several.score, several.level) == (69, ConfidenceLevel.MEDIUM)
    assert "Not repeated" not in " ".join(
        several.explanation.why_this_confidence
    )


def test_repeated_observation_is_not_forced_low():
    proof = {"expectationStrength": "OBSERVED", "kind": "network"}

    result = score(
        "network_silent_failure",
        proof,
        full_sensors(),
        {"repeated": True},
    )

    # 55 observed base + 24 boosts - 10 non-proven penalty
    assert result.score == 69
    assert result.level == ConfidenceLevel.MEDIUM


# ---------------------------------------------------------------------------
# Robustness
# ---------------------------------------------------------------------------

def test_malformed_sensor_shapes_are_treated_as_absent():
    sensors = {
        "network": "not-a-summary",
        "console": {"errors": "many"},
        "ui": ["diff"],
    }

    result = score("network_silent_failure", proven_proof(), sensors, 42)

    assert result.factors.sensors_present.missing == ["network", "console", "ui"]
    assert 0 <= result.score <= 100
    assert result.level == ConfidenceLevel.LOW


def test_one_malformed_sensor_does_not_hide_the_others():
    sensors = full_sensors()
    sensors["console"] = {"errors": "many"}

    result = score("network_silent_failure", proven_proof(), sensors)

    present = result.factors.sensors_present
    assert present.network is True
    assert present.console is False
    assert present.ui is True


def test_hyphenated_type_is_scored_like_underscored_type():
    a = score("network-silent-failure", proven_proof(), full_sensors())
    b = score("network_silent_failure", proven_proof(), full_sensors())

    assert a == b


def test_unknown_type_uses_default_base():
    result = score("something_new", {"kind": "click", "value": "#x"}, None)

    # 50 weak base - 24 missing sensors - 10 non-proven penalty
    assert result.score == 16
    assert result.level == ConfidenceLevel.LOW
    assert result.factors.boosts == []


def test_score_bounds_and_high_gate_hold_for_all_inputs():
    proofs = [None, {"kind": "k", "value": "v"}, proven_proof(),
              {"expectationStrength": "OBSERVED"}]
    sensor_sets = [None, full_sensors(), full_sensors(ui_feedback=True)]
    correlations = [
        None,
        {"urlChanged": True, "domChanged": True, "visibleChanged": True},
        {"repeated": True},
    ]

    for finding_type, proof, sensors, correlation in itertools.product(
        list(BASE_SCORES) + ["unknown"], proofs, sensor_sets, correlations
    ):
        result = score(finding_type, proof, sensors, correlation)

        assert 0 <= result.score <= 100
        assert len(result.explain) <= 8
        assert len(result.explain) == len(set(result.explain))
        if result.level == ConfidenceLevel.HIGH:
            assert result.score >= 80
            assert result.factors.promise_strength == PromiseStrength.PROVEN
            assert result.factors.sensors_present.all_present


# ---------------------------------------------------------------------------
# Promise strength
# ---------------------------------------------------------------------------

def test_promise_strength_determination():
    assert determine_promise_strength(None) == PromiseStrength.UNKNOWN
    assert determine_promise_strength(PromiseProof()) == PromiseStrength.UNKNOWN
    assert (
        determine_promise_strength(PromiseProof(proof="PROVEN_EXPECTATION"))
        == PromiseStrength.PROVEN
    )
    assert (
        determine_promise_strength(PromiseProof(explicit=True))
        == PromiseStrength.PROVEN
    )
    assert (
        determine_promise_strength(PromiseProof(source="src/form.tsx:10"))
        == PromiseStrength.PROVEN
    )
    assert (
        determine_promise_strength(
            PromiseProof(
                expectation_strength=PromiseStrength.OBSERVED,
                source_ref="a.js:1",
            )
        )
        == PromiseStrength.OBSERVED
    )
    assert (
        determine_promise_strength(PromiseProof(kind="click", value="#save"))
        == PromiseStrength.WEAK
    )


def test_scoring_is_pure():
    first = score("missing_network_action", proven_proof(), full_sensors())
    second = score("missing_network_action", proven_proof(), full_sensors())

    assert first.model_dump() == second.model_dump()
