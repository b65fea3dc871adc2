"""
Standardized finding schema.

Defines the canonical structure used to report a silently broken promise:
a user-facing expectation that an interaction produces an observable
effect, which produced neither the effect nor an error.

This schema is:
- authoritative for the findings report
- immutable once emitted
- evidence-backed (see the Evidence Law in the constitution enforcer)
- confidence-scored

All findings included in a FindingsReport MUST conform to this schema.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, Field

from verdict.app.schemas.shared import ContractModel, SignalModel
from verdict.app.schemas.signals import (
    EvidenceSignals,
    PromiseStrength,
    SensorPresence,
)


# ---------------------------------------------------------------------------
# Enumerations (FROZEN CONTRACTS)
# ---------------------------------------------------------------------------


class FindingStatus(str, Enum):
    """
    Verdict status of a finding.

    Ordering is intentional and MUST remain stable; it is used as a
    canonical sort component.
    """

    CONFIRMED = "CONFIRMED"
    SUSPECTED = "SUSPECTED"
    INFORMATIONAL = "INFORMATIONAL"
    UNPROVEN = "UNPROVEN"
    DROPPED = "DROPPED"


class ConfidenceLevel(str, Enum):
    """
    Discrete confidence level.

    HIGH is reserved for proven promises with complete sensor coverage.
    """

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Severity(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Impact(str, Enum):
    """User-facing impact of the broken promise."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"
    UNKNOWN = "UNKNOWN"


class FindingType(str, Enum):
    """
    Known silent-failure types.

    Finding.type is an open string; unknown types are carried through
    unchanged and scored with the default base.
    """

    NETWORK_SILENT_FAILURE = "network_silent_failure"
    VALIDATION_SILENT_FAILURE = "validation_silent_failure"
    MISSING_FEEDBACK_FAILURE = "missing_feedback_failure"
    NO_EFFECT_SILENT_FAILURE = "no_effect_silent_failure"
    MISSING_NETWORK_ACTION = "missing_network_action"
    MISSING_STATE_ACTION = "missing_state_action"
    NAVIGATION_SILENT_FAILURE = "navigation_silent_failure"
    PARTIAL_NAVIGATION_FAILURE = "partial_navigation_failure"
    FLOW_SILENT_FAILURE = "flow_silent_failure"
    OBSERVED_BREAK = "observed_break"


# ---------------------------------------------------------------------------
# Promise
# ---------------------------------------------------------------------------


class Promise(ContractModel):
    """
    The violated expectation.

    A promise is valid when it names a ``kind`` and ``value``, or a
    ``type`` together with at least one of expected / actual /
    expected_signal.
    """

    kind: Optional[str] = None
    value: Optional[str] = None
    type: Optional[str] = None
    expected: Optional[str] = None
    actual: Optional[str] = None
    expected_signal: Optional[str] = None


# ---------------------------------------------------------------------------
# Evidence (one struct per category)
# ---------------------------------------------------------------------------


class NavigationEvidence(SignalModel):
    url_changed: bool = False
    before_url: Optional[str] = None
    after_url: Optional[str] = None


class DomEvidence(SignalModel):
    dom_changed: bool = False
    changed_selectors: List[str] = Field(default_factory=list)
    diff_summary: Optional[str] = None


class FeedbackEvidence(SignalModel):
    feedback_seen: bool = False
    aria_live: bool = False
    status_message: Optional[str] = None
    success_message: Optional[str] = None


class NetworkEvidence(SignalModel):
    activity: bool = False
    request_count: int = 0
    failed_request_count: int = 0
    requests: List[str] = Field(default_factory=list)
    failed_urls: List[str] = Field(default_factory=list)
    slow_urls: List[str] = Field(default_factory=list)


class ConsoleEvidence(SignalModel):
    error_count: int = 0
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class Evidence(SignalModel):
    """
    Evidence captured for a finding.

    Every field is optional. Evidence is *substantive* iff at least one
    leaf holds a non-default truthy or non-empty value.
    """

    navigation: Optional[NavigationEvidence] = None
    dom: Optional[DomEvidence] = None
    feedback: Optional[FeedbackEvidence] = None
    network: Optional[NetworkEvidence] = None
    console: Optional[ConsoleEvidence] = None
    blocked_writes: List[str] = Field(default_factory=list)
    files: List[str] = Field(default_factory=list)
    other: Dict[str, Any] = Field(
        default_factory=dict,
        description="Substantive signals outside the known categories, kept verbatim",
    )


# ---------------------------------------------------------------------------
# Causes
# ---------------------------------------------------------------------------


class Cause(ContractModel):
    id: str
    statement: str
    evidence_refs: List[str] = Field(
        default_factory=list,
        alias="evidence_refs",
        description="Evidence paths backing this cause, e.g. 'network.failedUrls'",
    )


# ---------------------------------------------------------------------------
# Confidence
# ---------------------------------------------------------------------------


class ConfidenceFactors(ContractModel):
    promise_strength: PromiseStrength
    sensors_present: SensorPresence
    evidence_signals: EvidenceSignals
    boosts: List[str] = Field(default_factory=list)
    penalties: List[str] = Field(default_factory=list)


class ConfidenceExplanation(ContractModel):
    why_this_confidence: List[str] = Field(default_factory=list)
    what_would_increase_confidence: List[str] = Field(default_factory=list)
    what_would_reduce_confidence: List[str] = Field(default_factory=list)


class Confidence(ContractModel):
    score: int = Field(..., ge=0, le=100)
    level: ConfidenceLevel
    explain: List[str] = Field(default_factory=list, max_length=8)
    factors: Optional[ConfidenceFactors] = None
    explanation: Optional[ConfidenceExplanation] = None
    boundary: Optional[str] = Field(
        None,
        description="Set when the score sits near a level threshold or was capped",
    )


# ---------------------------------------------------------------------------
# Finding
# ---------------------------------------------------------------------------


class Finding(ContractModel):
    """
    Canonical silent-failure finding.

    Findings are produced by the constitution enforcer only; raw
    candidate records never reach an artifact directly.
    """

    id: str = Field(..., min_length=1)
    type: str = Field(
        "unknown",
        description="Finding type, see FindingType for known values",
    )
    status: FindingStatus
    severity: Optional[Severity] = None
    promise: Promise
    evidence: Evidence = Field(default_factory=Evidence)
    confidence: Confidence
    impact: Impact = Impact.UNKNOWN
    causes: List[Cause] = Field(default_factory=list)
    source_ref: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("sourceRef", "source_ref", "source"),
        serialization_alias="sourceRef",
    )
    location: Optional[str] = None

    evidence_categories: List[str] = Field(
        default_factory=list,
        description="Evidence categories present, strong before weak",
    )
    ambiguity_reasons: List[str] = Field(
        default_factory=list,
        description="Why the evidence may not prove the claim on its own",
    )
