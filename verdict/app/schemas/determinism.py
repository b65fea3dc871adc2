"""
Determinism classification schemas.

A run accumulates DeterminismFactor records while it executes. The run's
classification is the most severe factor observed.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from verdict.app.schemas.shared import ContractModel


class DeterminismClassification(str, Enum):
    """
    Reproducibility classification.

    Total order: DETERMINISTIC < CONTROLLED_NON_DETERMINISTIC < NON_DETERMINISTIC.
    """

    DETERMINISTIC = "DETERMINISTIC"
    CONTROLLED_NON_DETERMINISTIC = "CONTROLLED_NON_DETERMINISTIC"
    NON_DETERMINISTIC = "NON_DETERMINISTIC"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {
    DeterminismClassification.DETERMINISTIC: 0,
    DeterminismClassification.CONTROLLED_NON_DETERMINISTIC: 1,
    DeterminismClassification.NON_DETERMINISTIC: 2,
}


class TruthState(str, Enum):
    """Final truth state of a run."""

    SUCCESS = "SUCCESS"
    FINDINGS = "FINDINGS"
    INCOMPLETE = "INCOMPLETE"


class DeterminismFactor(ContractModel):
    classification: DeterminismClassification
    reason: str
    context: Optional[Dict[str, Any]] = None


class DeterminismReport(ContractModel):
    classification: DeterminismClassification
    reproducible: bool
    factors: List[DeterminismFactor] = Field(default_factory=list)
