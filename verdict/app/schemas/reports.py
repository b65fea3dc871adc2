"""
Top-level report schemas.

FindingsReport is the canonical findings artifact. VerdictResult bundles
every artifact of a single engine invocation together with the volatile
RunDiagnostics structure, which is excluded from canonical serialization.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import Field

from verdict.app.schemas.determinism import DeterminismReport
from verdict.app.schemas.enforcement import CONTRACT_VERSION, EnforcementSnapshot
from verdict.app.schemas.findings import Finding
from verdict.app.schemas.gate import GateDecision, GateReport
from verdict.app.schemas.shared import ContractModel


class FindingsReport(ContractModel):
    contract_version: int = CONTRACT_VERSION
    findings: List[Finding] = Field(default_factory=list)
    outcome_summary: Dict[str, int] = Field(
        default_factory=dict,
        description="Finding count per status",
    )
    promise_summary: Dict[str, int] = Field(
        default_factory=dict,
        description="Finding count per promise kind",
    )
    enforcement: EnforcementSnapshot = Field(default_factory=EnforcementSnapshot)


class RunDiagnostics(ContractModel):
    """
    Volatile, non-canonical data.

    MUST NOT be used for ordering, hashing, or verdicts.
    """

    generated_at: Optional[str] = None
    candidate_count: int = 0
    scored_count: int = 0


class VerdictResult(ContractModel):
    run_id: str
    findings_report: FindingsReport
    findings_digest: str = Field(
        ...,
        description="SHA-256 of the canonical findings report",
    )
    determinism: DeterminismReport
    gate_decision: GateDecision
    gate_report: GateReport
    diagnostics: RunDiagnostics = Field(default_factory=RunDiagnostics)
