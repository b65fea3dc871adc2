"""
Human-readable confidence explanations.

Every sentence produced here is derived from a gate or rule that was
actually evaluated by the engine. Nothing is inferred.
"""

from __future__ import annotations

from typing import List, Optional

from verdict.app.confidence.rules import (
    BOUNDARY_MARGIN,
    HIGH_THRESHOLD,
    MEDIUM_THRESHOLD,
    OBSERVED_SINGLE_CAP,
)
from verdict.app.schemas.findings import ConfidenceExplanation, ConfidenceLevel
from verdict.app.schemas.signals import PromiseStrength, SensorPresence


def collect_explanations(
    boosts: List[str],
    penalties: List[str],
    strength: PromiseStrength,
    limit: int,
) -> List[str]:
    """
    Penalties first, then boosts, then the strength note.

    Duplicates are removed keeping the first occurrence.
    """
    ordered = list(penalties) + list(boosts)
    if strength is not PromiseStrength.PROVEN:
        ordered.append(f"Promise strength: {strength.value}")

    unique: List[str] = []
    for item in ordered:
        if item not in unique:
            unique.append(item)
    return unique[:limit]


def boundary_explanation(
    *,
    raw_score: int,
    level: ConfidenceLevel,
    strength: PromiseStrength,
    sensors: SensorPresence,
) -> Optional[str]:
    if raw_score >= HIGH_THRESHOLD:
        if level is ConfidenceLevel.HIGH:
            if raw_score < HIGH_THRESHOLD + BOUNDARY_MARGIN:
                return (
                    f"Near threshold: score {raw_score} >= {HIGH_THRESHOLD}, "
                    "assigned HIGH (proven promise and all sensors)"
                )
            return None
        if strength is not PromiseStrength.PROVEN:
            return (
                f"Capped at MEDIUM: score {raw_score} >= {HIGH_THRESHOLD} "
                "but promise is not proven"
            )
        if not sensors.all_present:
            return (
                f"Capped at MEDIUM: score {raw_score} >= {HIGH_THRESHOLD} "
                "but sensors lack data"
            )
        return None

    if raw_score >= MEDIUM_THRESHOLD:
        if raw_score < MEDIUM_THRESHOLD + BOUNDARY_MARGIN:
            return (
                f"Near threshold: score {raw_score} >= {MEDIUM_THRESHOLD}, "
                "assigned MEDIUM (above LOW boundary)"
            )
        if raw_score > HIGH_THRESHOLD - BOUNDARY_MARGIN:
            return (
                f"Near threshold: score {raw_score} < {HIGH_THRESHOLD}, "
                "kept MEDIUM (below HIGH boundary)"
            )
        return None

    if raw_score > MEDIUM_THRESHOLD - BOUNDARY_MARGIN:
        return (
            f"Near threshold: score {raw_score} < {MEDIUM_THRESHOLD}, "
            "kept LOW (below MEDIUM boundary)"
        )
    return None


def observed_cap_explanation(
    *,
    raw_score: int,
    level: ConfidenceLevel,
    repeated: bool,
) -> str:
    if not repeated:
        return (
            f"Capped at {level.value}: score {raw_score} from a single "
            f"observation of an OBSERVED promise (max {OBSERVED_SINGLE_CAP})"
        )
    return (
        f"Capped at {level.value}: score {raw_score} but promise is only "
        "OBSERVED at runtime"
    )


def _missing_sensor_names(sensors: SensorPresence) -> List[str]:
    names = {"network": "network", "console": "console", "ui": "UI"}
    return [names[name] for name in sensors.missing]


def confidence_explanation(
    *,
    level: ConfidenceLevel,
    strength: PromiseStrength,
    sensors: SensorPresence,
    boosts: List[str],
    penalties: List[str],
    repeated: bool,
    boundary: Optional[str],
) -> ConfidenceExplanation:
    why: List[str] = []
    increase: List[str] = []
    reduce: List[str] = []

    if boundary:
        why.append(boundary)

    if level is ConfidenceLevel.HIGH:
        why.append(
            "High confidence: promise is proven and all sensors captured evidence"
        )
        if boosts:
            why.append(f"Strong evidence: {len(boosts)} positive signal(s)")
    elif level is ConfidenceLevel.MEDIUM:
        why.append(
            "Medium confidence: evidence suggests a failure, but uncertainty remains"
        )
        if strength is PromiseStrength.PROVEN:
            why.append("Promise is proven from source code")
        else:
            why.append(f"Promise strength: {strength.value} (not proven)")
        if not sensors.all_present:
            why.append(
                "Missing sensor data: " + ", ".join(_missing_sensor_names(sensors))
            )
        if penalties:
            why.append(f"Reducing factors: {len(penalties)} uncertainty signal(s)")
    else:
        why.append("Low confidence: limited evidence or promise not proven")
        if strength is not PromiseStrength.PROVEN:
            why.append(f"Promise strength: {strength.value} (not proven)")
        if not sensors.all_present:
            why.append("Some sensors were not active, reducing confidence")
        if not repeated:
            why.append("Not repeated (single observation may be unreliable)")

    if level is not ConfidenceLevel.HIGH:
        if strength is not PromiseStrength.PROVEN:
            increase.append(
                "Make the promise proven by adding explicit code that declares the behavior"
            )
        if not sensors.all_present:
            increase.append(
                "Enable missing sensors: "
                + ", ".join(_missing_sensor_names(sensors))
            )
        if not repeated and level is ConfidenceLevel.LOW:
            increase.append(
                "Repeat the interaction multiple times to confirm consistency"
            )
        if not boosts:
            increase.append(
                "Add stronger evidence signals (network requests, console errors, UI changes)"
            )

    if level is not ConfidenceLevel.LOW:
        if strength is PromiseStrength.PROVEN:
            reduce.append("If the promise becomes unproven (code changes, promise removed)")
        if sensors.all_present:
            reduce.append("If sensors become unavailable or disabled")
        if boosts:
            reduce.append(
                "If positive evidence signals disappear (network succeeds, UI feedback appears)"
            )
    if level is ConfidenceLevel.HIGH and not penalties:
        reduce.append(
            "If uncertainty factors appear (URL changes, partial effects, missing data)"
        )

    return ConfidenceExplanation(
        why_this_confidence=why or ["Confidence based on available evidence"],
        what_would_increase_confidence=increase
        or ["Already at maximum confidence for available evidence"],
        what_would_reduce_confidence=reduce
        or ["No factors would reduce confidence further"],
    )
