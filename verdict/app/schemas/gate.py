"""
Gate decision schemas.

Defines the exit code contract, the RunAnalysis snapshot the gate is
evaluated against, and the gate report artifact.

IMPORTANT:
- Exit codes are a FROZEN CONTRACT consumed by CI systems
- Exactly one exit code is emitted per run
- The outcome to exit code mapping is a pure lookup table
"""

from __future__ import annotations

from enum import Enum, IntEnum
from types import MappingProxyType
from typing import Any, Dict, Optional

from pydantic import Field

from verdict.app.schemas.shared import ContractModel


# ---------------------------------------------------------------------------
# Enumerations (FROZEN CONTRACTS)
# ---------------------------------------------------------------------------


class ExitCode(IntEnum):
    SUCCESS = 0
    NEEDS_REVIEW = 10
    FAILURE_CONFIRMED = 20
    INCOMPLETE = 30
    INVARIANT_VIOLATION = 40
    EVIDENCE_VIOLATION = 50
    USAGE_ERROR = 64


class GateOutcome(str, Enum):
    """
    Gate outcomes in decision priority order (first is most severe).
    """

    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    USAGE_ERROR = "USAGE_ERROR"
    EVIDENCE_VIOLATION = "EVIDENCE_VIOLATION"
    INCOMPLETE = "INCOMPLETE"
    FAILURE_CONFIRMED = "FAILURE_CONFIRMED"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    SUCCESS = "SUCCESS"


OUTCOME_EXIT_CODES = MappingProxyType(
    {
        GateOutcome.SUCCESS: ExitCode.SUCCESS,
        GateOutcome.NEEDS_REVIEW: ExitCode.NEEDS_REVIEW,
        GateOutcome.FAILURE_CONFIRMED: ExitCode.FAILURE_CONFIRMED,
        GateOutcome.INCOMPLETE: ExitCode.INCOMPLETE,
        GateOutcome.INVARIANT_VIOLATION: ExitCode.INVARIANT_VIOLATION,
        GateOutcome.EVIDENCE_VIOLATION: ExitCode.EVIDENCE_VIOLATION,
        GateOutcome.USAGE_ERROR: ExitCode.USAGE_ERROR,
    }
)


# ---------------------------------------------------------------------------
# Run analysis (gate input)
# ---------------------------------------------------------------------------


class FindingsCounts(ContractModel):
    high: int = Field(0, ge=0, alias="HIGH")
    medium: int = Field(0, ge=0, alias="MEDIUM")
    low: int = Field(0, ge=0, alias="LOW")
    unknown: int = Field(0, ge=0, alias="UNKNOWN")

    @property
    def actionable(self) -> int:
        return self.high + self.medium + self.low

    @property
    def total(self) -> int:
        return self.actionable + self.unknown


class RunMeta(ContractModel):
    verax_version: str = "unknown"
    url: str = "unknown"
    profile: str = "unknown"
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class RunAnalysis(ContractModel):
    """
    Immutable snapshot of a finished run.

    Only the first four fields participate in the gate decision; the
    remaining side inputs are carried into the gate report unchanged.
    """

    run_exit_code: int
    findings_counts: FindingsCounts = Field(default_factory=FindingsCounts)
    stability_classification: str = "UNKNOWN"
    fail_on_incomplete: bool = True

    run_id: Optional[str] = None
    run_status: str = "UNKNOWN"
    meta: RunMeta = Field(default_factory=RunMeta)
    triage_trust: str = "UNKNOWN"
    diagnostics_timing: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# Gate decision (gate output)
# ---------------------------------------------------------------------------


class GateDecision(ContractModel):
    outcome: GateOutcome
    reason: str
    exit_code: ExitCode


# ---------------------------------------------------------------------------
# Gate report artifact
# ---------------------------------------------------------------------------


class GateReportRun(ContractModel):
    status: str
    exit_code: int
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class GateReportFindings(ContractModel):
    non_suppressed: FindingsCounts
    has_actionable: bool


class GateReportStability(ContractModel):
    classification: str
    available: bool


class GateReportTriage(ContractModel):
    trust_level: str
    available: bool


class GateReportDiagnostics(ContractModel):
    timing: Optional[Dict[str, Any]] = None
    available: bool


class GateReportGate(ContractModel):
    fail_on_incomplete: bool
    decision: GateOutcome
    reason: str
    exit_code: ExitCode


class GateReportMeta(ContractModel):
    verax_version: str
    url: str
    profile: str


class GateReport(ContractModel):
    """
    Canonical gate artifact.

    Contains no generation timestamp; volatile data lives in
    RunDiagnostics and never participates in comparisons.
    """

    gate_version: int = 1
    run_id: Optional[str] = None
    meta: GateReportMeta
    run: GateReportRun
    findings: GateReportFindings
    stability: GateReportStability
    triage: GateReportTriage
    diagnostics: GateReportDiagnostics
    gate: GateReportGate
