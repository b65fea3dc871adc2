"""
Constitution / invariant enforcer.

Applies the Evidence Law and the structural invariants to every candidate
finding and converts survivors into canonical Finding models.

IMPORTANT:
- A CONFIRMED finding without substantive evidence is DOWNGRADED to
  SUSPECTED, never dropped
- Structural defects DROP the single finding; the run continues
- Findings carrying an internal tool error marker are always dropped
- Cause pruning is silent and is not counted
- This stage MUST NOT raise; a malformed aggregate input yields an empty,
  well-formed result
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ValidationError

from verdict.app.constitution.evidence import (
    classify_evidence,
    coerce_evidence,
    is_substantive,
    resolve_evidence_ref,
)
from verdict.app.confidence.explanation import boundary_explanation
from verdict.app.confidence.rules import (
    HIGH_THRESHOLD,
    MAX_EXPLANATIONS,
    MEDIUM_CAP,
    MEDIUM_THRESHOLD,
    SCORE_MAX,
    SCORE_MIN,
)
from verdict.app.schemas.enforcement import (
    DropReason,
    Downgrade,
    DroppedFinding,
    EnforcementResult,
    EnforcementSnapshot,
)
from verdict.app.schemas.findings import (
    Cause,
    Confidence,
    ConfidenceExplanation,
    ConfidenceFactors,
    ConfidenceLevel,
    Evidence,
    Finding,
    FindingStatus,
    Impact,
    Promise,
    Severity,
)
from verdict.app.schemas.signals import PromiseStrength, SensorPresence

logger = logging.getLogger(__name__)


EVIDENCE_LAW_REASON = (
    "Evidence Law violation: CONFIRMED finding lacks substantive evidence"
)

INTERNAL_ERROR_MARKERS = (
    "INTERNAL_ERROR",
    "internal-error",
    "internalError",
    "TIMEOUT_ERROR",
    "CRASH",
    "FATAL",
    "BROWSER_CRASH",
)

_MARKER_FIELDS = (
    ("reason",),
    ("errorMessage", "error_message"),
    ("errorStack", "error_stack"),
)

_PROMISE_KEYS = {
    "kind": ("kind",),
    "value": ("value",),
    "type": ("type",),
    "expected": ("expected",),
    "actual": ("actual",),
    "expected_signal": ("expectedSignal", "expected_signal"),
}


class _Dropped(Exception):
    """Internal control-flow signal carrying the drop reason."""

    def __init__(self, reason: DropReason) -> None:
        super().__init__(reason.value)
        self.reason = reason


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _first(raw: Mapping, *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _non_empty_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


# ---------------------------------------------------------------------------
# Structural checks
# ---------------------------------------------------------------------------


def _parse_id(raw: Mapping) -> str:
    finding_id = _non_empty_str(raw.get("id"))
    if finding_id is None:
        raise _Dropped(DropReason.INVALID_ID)
    return finding_id


def _parse_status(raw: Mapping) -> FindingStatus:
    value = raw.get("status")
    if value is None:
        return FindingStatus.SUSPECTED
    try:
        return FindingStatus(value)
    except ValueError:
        raise _Dropped(DropReason.INVALID_STATUS) from None


def _parse_promise(raw: Mapping) -> Promise:
    value = raw.get("promise")
    if isinstance(value, Promise):
        value = value.model_dump()
    if not isinstance(value, Mapping):
        raise _Dropped(DropReason.INVALID_PROMISE)

    fields = {}
    for name, keys in _PROMISE_KEYS.items():
        item = _first(value, *keys)
        if _is_number(item):
            item = str(item)
        if isinstance(item, str):
            fields[name] = item

    promise = Promise(**fields)
    has_kind_value = bool(
        _non_empty_str(promise.kind) and _non_empty_str(promise.value)
    )
    has_typed_expectation = bool(
        _non_empty_str(promise.type)
        and (
            _non_empty_str(promise.expected)
            or _non_empty_str(promise.actual)
            or _non_empty_str(promise.expected_signal)
        )
    )
    if not (has_kind_value or has_typed_expectation):
        raise _Dropped(DropReason.INVALID_PROMISE)
    return promise


def _parse_impact(raw: Mapping) -> Impact:
    value = raw.get("impact")
    if value is None:
        return Impact.UNKNOWN
    try:
        return Impact(value)
    except ValueError:
        raise _Dropped(DropReason.INVALID_IMPACT) from None


def has_internal_error_marker(raw: Mapping) -> bool:
    for keys in _MARKER_FIELDS:
        text = _first(raw, *keys)
        if not isinstance(text, str):
            continue
        if any(marker in text for marker in INTERNAL_ERROR_MARKERS):
            return True

    reason = raw.get("reason")
    return isinstance(reason, str) and "internal error" in reason.lower()


def _level_for_score(score: int) -> ConfidenceLevel:
    # HIGH is never inferred for pre-scored findings.
    if score >= MEDIUM_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def _level_floor(level: ConfidenceLevel) -> int:
    if level is ConfidenceLevel.HIGH:
        return HIGH_THRESHOLD
    if level is ConfidenceLevel.MEDIUM:
        return MEDIUM_THRESHOLD
    return SCORE_MIN


def _level_ceiling(level: ConfidenceLevel) -> int:
    if level is ConfidenceLevel.HIGH:
        return SCORE_MAX
    if level is ConfidenceLevel.MEDIUM:
        return MEDIUM_CAP
    return MEDIUM_THRESHOLD - 1


def passes_high_gate(factors: Optional[ConfidenceFactors]) -> bool:
    return (
        factors is not None
        and factors.promise_strength is PromiseStrength.PROVEN
        and factors.sensors_present.all_present
    )


def _confidence_is_consistent(confidence: Confidence) -> bool:
    level = confidence.level
    if not _level_floor(level) <= confidence.score <= _level_ceiling(level):
        return False
    return level is not ConfidenceLevel.HIGH or passes_high_gate(confidence.factors)


def _optional_model(model, value: Any):
    if value is None or isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError:
        return None


def _parse_confidence(raw: Mapping) -> Confidence:
    value = raw.get("confidence")

    if value is None:
        return Confidence(score=0, level=ConfidenceLevel.LOW)

    if isinstance(value, Confidence):
        value = value.model_dump(mode="json", by_alias=True)

    # Fractional form: 0.0 - 1.0
    if _is_number(value):
        if not 0 <= value <= 1:
            raise _Dropped(DropReason.INVALID_CONFIDENCE)
        score = int(round(value * 100))
        level = _level_for_score(score)
        return Confidence(score=min(score, _level_ceiling(level)), level=level)

    if not isinstance(value, Mapping):
        raise _Dropped(DropReason.INVALID_CONFIDENCE)

    raw_score = value.get("score")
    if not _is_number(raw_score) or not 0 <= raw_score <= 100:
        raise _Dropped(DropReason.INVALID_CONFIDENCE)
    score = int(round(raw_score))

    raw_level = value.get("level")
    if raw_level is None:
        level = _level_for_score(score)
    else:
        try:
            level = ConfidenceLevel(raw_level)
        except ValueError:
            raise _Dropped(DropReason.INVALID_CONFIDENCE) from None
        if score < _level_floor(level):
            raise _Dropped(DropReason.INVALID_CONFIDENCE)

    factors = _optional_model(ConfidenceFactors, value.get("factors"))
    boundary = value.get("boundary")
    boundary = boundary if isinstance(boundary, str) else None

    if level is ConfidenceLevel.HIGH and not passes_high_gate(factors):
        level = ConfidenceLevel.MEDIUM
        boundary = boundary_explanation(
            raw_score=score,
            level=level,
            strength=(
                factors.promise_strength
                if factors is not None
                else PromiseStrength.UNKNOWN
            ),
            sensors=(
                factors.sensors_present
                if factors is not None
                else SensorPresence()
            ),
        )
    score = min(score, _level_ceiling(level))

    explain = value.get("explain")
    explain = (
        [item for item in explain if isinstance(item, str)][:MAX_EXPLANATIONS]
        if isinstance(explain, list)
        else []
    )

    return Confidence(
        score=score,
        level=level,
        explain=explain,
        factors=factors,
        explanation=_optional_model(
            ConfidenceExplanation, value.get("explanation")
        ),
        boundary=boundary,
    )


def _parse_severity(raw: Mapping) -> Optional[Severity]:
    value = raw.get("severity")
    if value is None:
        return None
    try:
        return Severity(value)
    except ValueError:
        logger.debug("Ignoring unknown severity %r", value)
        return None


def _valid_causes(raw: Mapping, evidence: Evidence) -> List[Cause]:
    value = raw.get("causes")
    if not isinstance(value, list):
        return []

    causes: List[Cause] = []
    for item in value:
        cause = _optional_model(Cause, item)
        if cause is None:
            continue
        if not (_non_empty_str(cause.id) and _non_empty_str(cause.statement)):
            continue
        if all(resolve_evidence_ref(evidence, ref) for ref in cause.evidence_refs):
            causes.append(cause)
    return causes


# ---------------------------------------------------------------------------
# Single-finding enforcement
# ---------------------------------------------------------------------------


def _as_mapping(item: Any) -> Optional[Mapping]:
    if isinstance(item, BaseModel):
        return item.model_dump(mode="json", by_alias=True)
    if isinstance(item, Mapping):
        return item
    return None


def _enforce_one(
    raw: Mapping,
) -> Tuple[Finding, Optional[Downgrade]]:
    finding_id = _parse_id(raw)
    status = _parse_status(raw)
    evidence = coerce_evidence(raw.get("evidence"))

    downgrade = None
    if status is FindingStatus.CONFIRMED and not is_substantive(evidence):
        downgrade = Downgrade(
            id=finding_id,
            reason=EVIDENCE_LAW_REASON,
            original_status=status,
            downgrade_to_status=FindingStatus.SUSPECTED,
        )
        status = FindingStatus.SUSPECTED

    promise = _parse_promise(raw)
    impact = _parse_impact(raw)
    if has_internal_error_marker(raw):
        raise _Dropped(DropReason.INTERNAL_ERROR_MARKER)
    confidence = _parse_confidence(raw)

    categories, ambiguity = classify_evidence(evidence)

    try:
        finding = Finding(
            id=finding_id,
            type=_non_empty_str(raw.get("type")) or "unknown",
            status=status,
            severity=_parse_severity(raw),
            promise=promise,
            evidence=evidence,
            confidence=confidence,
            impact=impact,
            causes=_valid_causes(raw, evidence),
            source_ref=_non_empty_str(
                _first(raw, "sourceRef", "source_ref", "source")
            ),
            location=_non_empty_str(raw.get("location")),
            evidence_categories=categories,
            ambiguity_reasons=ambiguity,
        )
    except ValidationError:
        raise _Dropped(DropReason.INVALID_FINDING) from None

    return finding, downgrade


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def enforce(findings: Any) -> EnforcementResult:
    """
    Enforce the constitution over a list of candidate findings.

    Accepts Finding models or JSON-shaped mappings. Input order is
    preserved among survivors.
    """
    if not isinstance(findings, (list, tuple)):
        logger.warning(
            "Enforcement input is not a list (%s); returning empty result",
            type(findings).__name__,
        )
        return EnforcementResult()

    survivors: List[Finding] = []
    downgrades: List[Downgrade] = []
    dropped: List[DroppedFinding] = []

    for item in findings:
        raw = _as_mapping(item)
        if raw is None:
            dropped.append(DroppedFinding(reason=DropReason.INVALID_FINDING))
            continue

        try:
            finding, downgrade = _enforce_one(raw)
        except _Dropped as drop:
            finding_id = _non_empty_str(raw.get("id"))
            logger.info(
                "Dropped finding %s: %s", finding_id, drop.reason.value
            )
            dropped.append(DroppedFinding(id=finding_id, reason=drop.reason))
            continue

        if downgrade is not None:
            logger.info(
                "Downgraded finding %s to %s: %s",
                finding.id,
                downgrade.downgrade_to_status.value,
                downgrade.reason,
            )
            downgrades.append(downgrade)
        survivors.append(finding)

    return EnforcementResult(
        findings=survivors,
        enforcement=EnforcementSnapshot(
            dropped_count=len(dropped),
            downgraded_count=len(downgrades),
            downgrades=downgrades,
            dropped=dropped,
        ),
    )


def violations(findings: Iterable[Finding]) -> List[str]:
    """
    Return the ids of findings that violate an output invariant.

    Used to verify artifacts produced elsewhere; enforce() output is
    always empty here.
    """
    bad: List[str] = []
    for finding in findings:
        if (
            finding.status is FindingStatus.CONFIRMED
            and not is_substantive(finding.evidence)
        ):
            bad.append(finding.id)
        elif not _confidence_is_consistent(finding.confidence):
            bad.append(finding.id)
    return bad
