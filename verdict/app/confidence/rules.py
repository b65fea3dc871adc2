"""
Static scoring tables for the confidence engine.

All tables are immutable and loaded once at import time. Every boost or
penalty pairs its points with the reason string surfaced in
``Confidence.explain``.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, NamedTuple, Optional, Tuple

from verdict.app.schemas.findings import FindingType
from verdict.app.schemas.signals import (
    EvidenceSignals,
    NetworkSummary,
    PromiseStrength,
)


# ---------------------------------------------------------------------------
# Thresholds
# ---------------------------------------------------------------------------

SCORE_MIN = 0
SCORE_MAX = 100

HIGH_THRESHOLD = 80
MEDIUM_THRESHOLD = 55

# Scores above a capped level sit one point below the next threshold.
MEDIUM_CAP = HIGH_THRESHOLD - 1
OBSERVED_SINGLE_CAP = 49

# Distance from a threshold that triggers a boundary explanation.
BOUNDARY_MARGIN = 3

MISSING_SENSOR_PENALTY = 8
NON_PROVEN_PENALTY = 10

MAX_EXPLANATIONS = 8


# ---------------------------------------------------------------------------
# Base scores
# ---------------------------------------------------------------------------

DEFAULT_BASE_SCORE = 50

BASE_SCORES = MappingProxyType(
    {
        FindingType.NETWORK_SILENT_FAILURE.value: 70,
        FindingType.VALIDATION_SILENT_FAILURE.value: 60,
        FindingType.MISSING_FEEDBACK_FAILURE.value: 55,
        FindingType.NO_EFFECT_SILENT_FAILURE.value: 50,
        FindingType.MISSING_NETWORK_ACTION.value: 65,
        FindingType.MISSING_STATE_ACTION.value: 60,
        FindingType.NAVIGATION_SILENT_FAILURE.value: 75,
        FindingType.PARTIAL_NAVIGATION_FAILURE.value: 65,
        FindingType.FLOW_SILENT_FAILURE.value: 70,
        FindingType.OBSERVED_BREAK.value: 50,
    }
)

# UNKNOWN is absent: an unknown promise keeps the per-type base.
STRENGTH_BASE_SCORES = MappingProxyType(
    {
        PromiseStrength.PROVEN: 70,
        PromiseStrength.OBSERVED: 55,
        PromiseStrength.WEAK: 50,
    }
)


# ---------------------------------------------------------------------------
# Type-specific rules
# ---------------------------------------------------------------------------


class RuleInput(NamedTuple):
    signals: EvidenceSignals
    strength: PromiseStrength
    network: Optional[NetworkSummary]


class Rule(NamedTuple):
    points: int
    reason: str
    applies: Callable[[RuleInput], bool]


class TypeRules(NamedTuple):
    boosts: Tuple[Rule, ...] = ()
    penalties: Tuple[Rule, ...] = ()


def _ui_feedback(i: RuleInput) -> bool:
    return i.signals.ui_feedback_detected


def _no_ui_feedback(i: RuleInput) -> bool:
    return not i.signals.ui_feedback_detected


def _proven(i: RuleInput) -> bool:
    return i.strength is PromiseStrength.PROVEN


def _no_network_activity(i: RuleInput) -> bool:
    total = i.network.total_requests if i.network is not None else 0
    return not i.signals.network_failed and total == 0


TYPE_RULES = MappingProxyType(
    {
        FindingType.NETWORK_SILENT_FAILURE.value: TypeRules(
            boosts=(
                Rule(10, "Network request failed",
                     lambda i: i.signals.network_failed),
                Rule(8, "Console errors present",
                     lambda i: i.signals.console_errors),
                Rule(6, "Silent failure: no user feedback on network error",
                     lambda i: i.signals.network_failed
                     and not i.signals.ui_feedback_detected),
            ),
            penalties=(
                Rule(10, "UI feedback detected (suggests not silent)",
                     _ui_feedback),
            ),
        ),
        FindingType.VALIDATION_SILENT_FAILURE.value: TypeRules(
            boosts=(
                Rule(10, "Validation errors in console",
                     lambda i: i.signals.console_errors),
                Rule(8, "Silent validation: errors logged but no visible feedback",
                     lambda i: i.signals.console_errors
                     and not i.signals.ui_feedback_detected),
            ),
            penalties=(
                Rule(10, "Error feedback visible (not silent)", _ui_feedback),
            ),
        ),
        FindingType.MISSING_FEEDBACK_FAILURE.value: TypeRules(
            boosts=(
                Rule(10, "Slow requests detected",
                     lambda i: i.signals.slow_requests),
                Rule(8, "Network activity without user feedback",
                     lambda i: i.network is not None
                     and i.network.total_requests > 0
                     and not i.signals.ui_feedback_detected),
            ),
            penalties=(
                Rule(10, "Loading indicator detected", _ui_feedback),
            ),
        ),
        FindingType.NO_EFFECT_SILENT_FAILURE.value: TypeRules(
            boosts=(
                Rule(10, "Expected URL change did not occur",
                     lambda i: not i.signals.url_changed),
                Rule(6, "DOM state unchanged",
                     lambda i: not i.signals.dom_changed),
                Rule(5, "No visible changes",
                     lambda i: not i.signals.screenshot_changed),
            ),
            penalties=(
                Rule(10, "Network activity detected (potential effect)",
                     lambda i: i.signals.network_failed),
                Rule(8, "UI feedback changed (potential effect)", _ui_feedback),
            ),
        ),
        FindingType.MISSING_NETWORK_ACTION.value: TypeRules(
            boosts=(
                Rule(10, "Code promise verified via source analysis", _proven),
                Rule(8, "Zero network activity despite code promise",
                     _no_network_activity),
                Rule(6, "Console errors may have prevented action",
                     lambda i: i.signals.console_errors),
            ),
            penalties=(
                Rule(15, "Other network requests occurred",
                     lambda i: i.signals.network_failed),
            ),
        ),
        FindingType.MISSING_STATE_ACTION.value: TypeRules(
            boosts=(
                Rule(10, "State mutation proven via cross-file analysis",
                     _proven),
                Rule(8, "DOM unchanged (no state mutation visible)",
                     lambda i: not i.signals.dom_changed),
            ),
            penalties=(
                Rule(10, "Network activity (deferred state update possible)",
                     lambda i: i.signals.network_failed),
                Rule(8, "UI feedback suggests state managed differently",
                     _ui_feedback),
            ),
        ),
        FindingType.NAVIGATION_SILENT_FAILURE.value: TypeRules(
            boosts=(
                Rule(10, "Expected URL change did not occur",
                     lambda i: not i.signals.url_changed),
                Rule(8, "No user-visible feedback on navigation failure",
                     _no_ui_feedback),
                Rule(6, "Navigation errors in console",
                     lambda i: i.signals.console_errors),
            ),
            penalties=(
                Rule(10, "UI feedback detected (suggests navigation feedback provided)",
                     _ui_feedback),
                Rule(5, "URL changed (navigation may have succeeded)",
                     lambda i: i.signals.url_changed),
            ),
        ),
        FindingType.PARTIAL_NAVIGATION_FAILURE.value: TypeRules(
            boosts=(
                Rule(10, "Navigation started but target not reached",
                     lambda i: i.signals.url_changed
                     and not i.signals.ui_feedback_detected),
                Rule(8, "No user-visible feedback on partial navigation",
                     _no_ui_feedback),
            ),
            penalties=(
                Rule(10, "UI feedback detected (suggests navigation feedback provided)",
                     _ui_feedback),
            ),
        ),
    }
)

NO_RULES = TypeRules()


def normalize_finding_type(finding_type: object) -> str:
    """Map 'network-silent-failure' and similar spellings onto table keys."""
    if isinstance(finding_type, FindingType):
        return finding_type.value
    if not isinstance(finding_type, str):
        return ""
    return finding_type.strip().lower().replace("-", "_")


def base_score_for(finding_type: str, strength: PromiseStrength) -> int:
    override = STRENGTH_BASE_SCORES.get(strength)
    if override is not None:
        return override
    return BASE_SCORES.get(finding_type, DEFAULT_BASE_SCORE)


def rules_for(finding_type: str) -> TypeRules:
    return TYPE_RULES.get(finding_type, NO_RULES)
