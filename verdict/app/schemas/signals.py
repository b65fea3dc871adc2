"""
Sensor and correlation signal schemas.

These structures describe what the observation collaborator captured for
a single interaction. Each sensor category is an explicit struct with a
``has_data`` predicate; a sensor is considered present only when it
captured non-trivial data.

IMPORTANT:
- A sensor that is absent or malformed is modelled as ``None``
- Absence is an expected condition and MUST NOT raise
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import Field

from verdict.app.schemas.shared import ContractModel, SignalModel


# ---------------------------------------------------------------------------
# Enumerations (FROZEN CONTRACTS)
# ---------------------------------------------------------------------------


class PromiseStrength(str, Enum):
    """
    How strongly the violated promise is established.

    Ordering is intentional: PROVEN > OBSERVED > WEAK > UNKNOWN.
    """

    PROVEN = "PROVEN"
    OBSERVED = "OBSERVED"
    WEAK = "WEAK"
    UNKNOWN = "UNKNOWN"


# ---------------------------------------------------------------------------
# Promise proof
# ---------------------------------------------------------------------------


class PromiseProof(SignalModel):
    """
    Provenance markers of the promise a finding claims was broken.

    ``kind`` and ``value`` describe the promise itself; the remaining
    fields describe how it was established.
    """

    kind: Optional[str] = None
    value: Optional[str] = None
    proof: Optional[str] = Field(
        None,
        description="Proof marker, e.g. 'PROVEN_EXPECTATION'",
    )
    explicit: bool = False
    source_ref: Optional[str] = None
    source: Optional[str] = None
    expectation_strength: Optional[PromiseStrength] = None

    @property
    def is_empty(self) -> bool:
        return not self.model_fields_set


# ---------------------------------------------------------------------------
# Sensors
# ---------------------------------------------------------------------------


class NetworkSummary(SignalModel):
    total_requests: int = 0
    failed_requests: int = 0
    slow_requests: int = 0
    top_failed_urls: List[str] = Field(default_factory=list)
    top_slow_urls: List[str] = Field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return (
            self.total_requests > 0
            or self.failed_requests > 0
            or self.slow_requests > 0
            or bool(self.top_failed_urls)
            or bool(self.top_slow_urls)
        )


class ConsoleSummary(SignalModel):
    total_messages: int = 0
    errors: int = 0
    warnings: int = 0
    has_errors: bool = False
    entries: List[str] = Field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return (
            self.total_messages > 0
            or self.errors > 0
            or self.warnings > 0
            or bool(self.entries)
        )

    @property
    def reports_errors(self) -> bool:
        return self.has_errors or self.errors > 0


class UiDiff(SignalModel):
    has_any_delta: bool = False
    changed: bool = False
    dom_changed: bool = False
    visible_changed: bool = False
    aria_changed: bool = False
    focus_changed: bool = False
    text_changed: bool = False

    @property
    def has_data(self) -> bool:
        return any(
            (
                self.has_any_delta,
                self.changed,
                self.dom_changed,
                self.visible_changed,
                self.aria_changed,
                self.focus_changed,
                self.text_changed,
            )
        )


class UiSnapshot(SignalModel):
    """User-visible feedback affordances captured before or after an action."""

    has_error_signal: bool = False
    has_loading_indicator: bool = False
    has_status_signal: bool = False
    has_live_region: bool = False
    has_dialog: bool = False
    disabled_elements: List[str] = Field(default_factory=list)

    @property
    def shows_feedback(self) -> bool:
        return (
            self.has_error_signal
            or self.has_loading_indicator
            or self.has_status_signal
            or self.has_live_region
            or self.has_dialog
            or bool(self.disabled_elements)
        )


class UiSignals(SignalModel):
    diff: Optional[UiDiff] = None
    before: Optional[UiSnapshot] = None
    after: Optional[UiSnapshot] = None

    @property
    def has_data(self) -> bool:
        return self.diff is not None and self.diff.has_data

    @property
    def feedback_detected(self) -> bool:
        return any(
            snapshot is not None and snapshot.shows_feedback
            for snapshot in (self.before, self.after)
        )


class SensorSignals(SignalModel):
    """
    The three sensor categories the engine judges.

    Each category is optional; ``None`` means the sensor did not run or
    produced an unusable payload.
    """

    network: Optional[NetworkSummary] = None
    console: Optional[ConsoleSummary] = None
    ui: Optional[UiSignals] = None


class CorrelationMeta(SignalModel):
    """Before/after comparisons and attempt metadata for one interaction."""

    url_changed: bool = False
    dom_changed: bool = False
    visible_changed: bool = False
    repeated: bool = False
    observation_count: int = 1

    @property
    def observed_repeatedly(self) -> bool:
        return self.repeated or self.observation_count > 1


# ---------------------------------------------------------------------------
# Derived signals (emitted inside confidence factors)
# ---------------------------------------------------------------------------


class SensorPresence(ContractModel):
    network: bool = False
    console: bool = False
    ui: bool = False

    @property
    def all_present(self) -> bool:
        return self.network and self.console and self.ui

    @property
    def missing(self) -> List[str]:
        return [
            name
            for name, present in (
                ("network", self.network),
                ("console", self.console),
                ("ui", self.ui),
            )
            if not present
        ]


class EvidenceSignals(ContractModel):
    url_changed: bool = False
    dom_changed: bool = False
    screenshot_changed: bool = False
    network_failed: bool = False
    console_errors: bool = False
    ui_feedback_detected: bool = False
    slow_requests: bool = False
