"""
Enforcement records produced by the constitution enforcer.

The enforcement snapshot is embedded verbatim in the findings report so
that every dropped or downgraded candidate remains auditable.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import Field

from verdict.app.schemas.findings import Finding, FindingStatus
from verdict.app.schemas.shared import ContractModel


CONTRACT_VERSION = 1


class DropReason(str, Enum):
    """
    Reasons a candidate is removed entirely.

    Checks run in declaration order; the first failing check is recorded.
    """

    INVALID_FINDING = "invalid_finding"
    INVALID_ID = "invalid_id"
    INVALID_STATUS = "invalid_status"
    INVALID_PROMISE = "invalid_promise"
    INVALID_IMPACT = "invalid_impact"
    INTERNAL_ERROR_MARKER = "internal_error_marker"
    INVALID_CONFIDENCE = "invalid_confidence"


class Downgrade(ContractModel):
    id: str
    reason: str
    original_status: FindingStatus
    downgrade_to_status: FindingStatus


class DroppedFinding(ContractModel):
    id: Optional[str] = None
    reason: DropReason


class EnforcementSnapshot(ContractModel):
    evidence_law_enforced: bool = True
    contract_version: int = CONTRACT_VERSION
    dropped_count: int = 0
    downgraded_count: int = 0
    deduplicated_count: int = 0
    downgrades: List[Downgrade] = Field(default_factory=list)
    dropped: List[DroppedFinding] = Field(default_factory=list)


class EnforcementResult(ContractModel):
    findings: List[Finding] = Field(default_factory=list)
    enforcement: EnforcementSnapshot = Field(default_factory=EnforcementSnapshot)
