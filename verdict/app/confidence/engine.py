"""
Confidence engine.

Scores a single candidate finding from the strength of the promise it
claims was broken and the sensor signals captured for the interaction.

IMPORTANT:
- Pure function: no I/O, no clock, no randomness
- Malformed sensor payloads are treated as absent and MUST NOT raise
- HIGH is a gate, not a threshold: it requires score >= 80, a PROVEN
  promise, and data from every sensor category
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from verdict.app.confidence.explanation import (
    boundary_explanation,
    collect_explanations,
    confidence_explanation,
    observed_cap_explanation,
)
from verdict.app.confidence.rules import (
    HIGH_THRESHOLD,
    MAX_EXPLANATIONS,
    MEDIUM_CAP,
    MEDIUM_THRESHOLD,
    MISSING_SENSOR_PENALTY,
    NON_PROVEN_PENALTY,
    OBSERVED_SINGLE_CAP,
    SCORE_MAX,
    SCORE_MIN,
    RuleInput,
    base_score_for,
    normalize_finding_type,
    rules_for,
)
from verdict.app.schemas.findings import (
    Confidence,
    ConfidenceFactors,
    ConfidenceLevel,
)
from verdict.app.schemas.signals import (
    ConsoleSummary,
    CorrelationMeta,
    EvidenceSignals,
    NetworkSummary,
    PromiseProof,
    PromiseStrength,
    SensorPresence,
    SensorSignals,
    UiSignals,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

PROVEN_PROOF_MARKER = "PROVEN_EXPECTATION"


# ---------------------------------------------------------------------------
# Input coercion (soft-fail to None)
# ---------------------------------------------------------------------------


def _coerce(model: Type[M], raw: Any) -> Optional[M]:
    if raw is None:
        return None
    if isinstance(raw, model):
        return raw
    if not isinstance(raw, Mapping):
        return None
    try:
        return model.model_validate(dict(raw))
    except ValidationError:
        logger.debug("Discarding malformed %s payload", model.__name__)
        return None


def coerce_sensor_signals(raw: Any) -> SensorSignals:
    """
    Build SensorSignals, coercing each category independently so that one
    malformed sensor does not hide the others.
    """
    if isinstance(raw, SensorSignals):
        return raw
    if not isinstance(raw, Mapping):
        return SensorSignals()
    return SensorSignals(
        network=_coerce(NetworkSummary, raw.get("network")),
        console=_coerce(ConsoleSummary, raw.get("console")),
        ui=_coerce(UiSignals, raw.get("ui", raw.get("uiSignals"))),
    )


# ---------------------------------------------------------------------------
# Derived inputs
# ---------------------------------------------------------------------------


def determine_promise_strength(proof: Optional[PromiseProof]) -> PromiseStrength:
    if proof is None or proof.is_empty:
        return PromiseStrength.UNKNOWN
    if proof.expectation_strength is PromiseStrength.OBSERVED:
        return PromiseStrength.OBSERVED
    if proof.proof == PROVEN_PROOF_MARKER:
        return PromiseStrength.PROVEN
    if proof.explicit or proof.source_ref or proof.source:
        return PromiseStrength.PROVEN
    return PromiseStrength.WEAK


def sensor_presence(sensors: SensorSignals) -> SensorPresence:
    return SensorPresence(
        network=sensors.network is not None and sensors.network.has_data,
        console=sensors.console is not None and sensors.console.has_data,
        ui=sensors.ui is not None and sensors.ui.has_data,
    )


def evidence_signals(
    sensors: SensorSignals, correlation: CorrelationMeta
) -> EvidenceSignals:
    network = sensors.network
    return EvidenceSignals(
        url_changed=correlation.url_changed,
        dom_changed=correlation.dom_changed,
        screenshot_changed=correlation.visible_changed,
        network_failed=network is not None and network.failed_requests > 0,
        console_errors=sensors.console is not None
        and sensors.console.reports_errors,
        ui_feedback_detected=sensors.ui is not None
        and sensors.ui.feedback_detected,
        slow_requests=network is not None and network.slow_requests > 0,
    )


def _clamp(value: int) -> int:
    return max(SCORE_MIN, min(SCORE_MAX, value))


def _determine_level(
    score: int, strength: PromiseStrength, sensors: SensorPresence
) -> Tuple[int, ConfidenceLevel]:
    if score >= HIGH_THRESHOLD:
        if strength is PromiseStrength.PROVEN and sensors.all_present:
            return score, ConfidenceLevel.HIGH
        return min(score, MEDIUM_CAP), ConfidenceLevel.MEDIUM
    if score >= MEDIUM_THRESHOLD:
        return score, ConfidenceLevel.MEDIUM
    return score, ConfidenceLevel.LOW


def _apply_observed_caps(
    score: int, level: ConfidenceLevel, repeated: bool
) -> Tuple[int, ConfidenceLevel]:
    if not repeated:
        return min(score, OBSERVED_SINGLE_CAP), ConfidenceLevel.LOW
    if level is ConfidenceLevel.HIGH:
        return min(score, MEDIUM_CAP), ConfidenceLevel.MEDIUM
    return score, level


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def score(
    finding_type: Any,
    promise_proof: Any = None,
    sensor_signals: Any = None,
    correlation_meta: Any = None,
) -> Confidence:
    """
    Score one candidate finding.

    Every argument may be a model instance, a JSON-shaped mapping, or
    None. The result always satisfies 0 <= score <= 100.
    """
    type_key = normalize_finding_type(finding_type)
    proof = _coerce(PromiseProof, promise_proof)
    sensors = coerce_sensor_signals(sensor_signals)
    correlation = _coerce(CorrelationMeta, correlation_meta) or CorrelationMeta()

    strength = determine_promise_strength(proof)
    presence = sensor_presence(sensors)
    signals = evidence_signals(sensors, correlation)

    boosts: List[str] = []
    penalties: List[str] = []
    total = base_score_for(type_key, strength)

    rule_input = RuleInput(signals=signals, strength=strength, network=sensors.network)
    type_rules = rules_for(type_key)

    for rule in type_rules.boosts:
        if rule.applies(rule_input):
            total += rule.points
            boosts.append(rule.reason)

    for rule in type_rules.penalties:
        if rule.applies(rule_input):
            total -= rule.points
            penalties.append(rule.reason)

    missing = presence.missing
    if missing:
        total -= MISSING_SENSOR_PENALTY * len(missing)
        penalties.append("Missing sensor data: " + ", ".join(missing))

    # The strength note at the end of explain already states this penalty
    explained_penalties = list(penalties)
    if strength is not PromiseStrength.PROVEN:
        total -= NON_PROVEN_PENALTY
        penalties.append(f"Promise strength is {strength.value}, not PROVEN")

    repeated = correlation.observed_repeatedly
    raw_score = _clamp(total)
    gated_score, gated_level = _determine_level(raw_score, strength, presence)
    final_score, level = gated_score, gated_level

    if strength is PromiseStrength.OBSERVED:
        final_score, level = _apply_observed_caps(gated_score, gated_level, repeated)

    if (final_score, level) != (gated_score, gated_level):
        boundary = observed_cap_explanation(
            raw_score=raw_score, level=level, repeated=repeated
        )
    else:
        boundary = boundary_explanation(
            raw_score=raw_score,
            level=level,
            strength=strength,
            sensors=presence,
        )

    return Confidence(
        score=final_score,
        level=level,
        explain=collect_explanations(
            boosts, explained_penalties, strength, MAX_EXPLANATIONS
        ),
        factors=ConfidenceFactors(
            promise_strength=strength,
            sensors_present=presence,
            evidence_signals=signals,
            boosts=boosts,
            penalties=penalties,
        ),
        explanation=confidence_explanation(
            level=level,
            strength=strength,
            sensors=presence,
            boosts=boosts,
            penalties=penalties,
            repeated=repeated,
            boundary=boundary,
        ),
        boundary=boundary,
    )
