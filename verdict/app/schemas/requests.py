"""
Verdict request schema.

A request carries the raw candidate findings produced by the detection
collaborator, the run facts known upstream, and the determinism factors
recorded while the run executed.

Candidates are intentionally untyped: validating them is the job of the
constitution enforcer, which drops malformed records one by one instead
of rejecting the whole request.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from verdict.app.schemas.determinism import DeterminismFactor
from verdict.app.schemas.gate import RunMeta
from verdict.app.schemas.shared import ContractModel


class RunFacts(ContractModel):
    """
    Run-level facts reported by the observation collaborator.

    Unset policy fields fall back to VerdictConfig.
    """

    run_exit_code: Optional[int] = Field(
        None,
        description="Exit code of the scan itself; derived from findings when unset",
    )
    run_status: Optional[str] = None
    stability_classification: str = "UNKNOWN"
    fail_on_incomplete: Optional[bool] = None
    meta: Optional[RunMeta] = None
    triage_trust: str = "UNKNOWN"
    diagnostics_timing: Optional[Dict[str, Any]] = None


class VerdictRequest(ContractModel):
    run_id: Optional[str] = None
    candidates: List[Any] = Field(default_factory=list)
    run: RunFacts = Field(default_factory=RunFacts)
    determinism_factors: List[DeterminismFactor] = Field(default_factory=list)
    generated_at: Optional[str] = Field(
        None,
        description="Volatile; copied into diagnostics only",
    )
