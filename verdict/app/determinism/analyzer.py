"""
Determinism analyzer.

Accumulates the factors observed while a run executes (timeouts, retries,
adaptive timing changes) and classifies the run's reproducibility.

The classification is the maximum factor under the total order
DETERMINISTIC < CONTROLLED_NON_DETERMINISTIC < NON_DETERMINISTIC.
NON_DETERMINISTIC is absorbing: once recorded, the run can no longer
claim a reproducible SUCCESS or FINDINGS truth state.
"""

from __future__ import annotations

import logging
from functools import reduce
from typing import Any, Dict, List, Optional, Tuple, Union

from verdict.app.schemas.determinism import (
    DeterminismClassification,
    DeterminismFactor,
    DeterminismReport,
    TruthState,
)

logger = logging.getLogger(__name__)


def _max_classification(
    a: DeterminismClassification, b: DeterminismClassification
) -> DeterminismClassification:
    return a if a.rank >= b.rank else b


def classify(factors: Tuple[DeterminismFactor, ...]) -> DeterminismClassification:
    """Order-independent reduction over recorded factors."""
    return reduce(
        _max_classification,
        (factor.classification for factor in factors),
        DeterminismClassification.DETERMINISTIC,
    )


class DeterminismAnalyzer:
    """
    Per-run accumulator of determinism factors.

    One instance per run. The analyzer never reads the clock; callers
    supply any timing data through ``context``.
    """

    def __init__(self) -> None:
        self._factors: List[DeterminismFactor] = []

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_factor(
        self,
        classification: Union[DeterminismClassification, str],
        reason: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> DeterminismFactor:
        try:
            level = DeterminismClassification(classification)
        except ValueError:
            raise ValueError(
                f"Unknown determinism classification '{classification}'. "
                f"Allowed values: {[c.value for c in DeterminismClassification]}"
            ) from None

        factor = DeterminismFactor(
            classification=level,
            reason=reason,
            context=dict(context) if context else None,
        )
        self._factors.append(factor)

        if level is DeterminismClassification.NON_DETERMINISTIC:
            logger.info("Non-deterministic factor recorded: %s", reason)
        else:
            logger.debug("Determinism factor recorded (%s): %s", level.value, reason)

        return factor

    def record_timeout(
        self, phase: str, context: Optional[Dict[str, Any]] = None
    ) -> DeterminismFactor:
        """A timeout makes the outcome depend on machine speed."""
        return self.record_factor(
            DeterminismClassification.NON_DETERMINISTIC,
            f"Timeout during {phase}",
            {"phase": phase, **(context or {})},
        )

    def record_retry(
        self,
        reason: str,
        attempt: int,
        context: Optional[Dict[str, Any]] = None,
    ) -> DeterminismFactor:
        return self.record_factor(
            DeterminismClassification.CONTROLLED_NON_DETERMINISTIC,
            f"Retry attempt {attempt}: {reason}",
            {"attempt": attempt, **(context or {})},
        )

    def record_adaptive_timing(
        self, reason: str, context: Optional[Dict[str, Any]] = None
    ) -> DeterminismFactor:
        """Adaptive stabilization windows are bounded and tracked."""
        return self.record_factor(
            DeterminismClassification.CONTROLLED_NON_DETERMINISTIC,
            f"Adaptive timing: {reason}",
            context,
        )

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    @property
    def factors(self) -> Tuple[DeterminismFactor, ...]:
        return tuple(self._factors)

    def get_classification(self) -> DeterminismClassification:
        return classify(self.factors)

    def should_force_incomplete(self) -> bool:
        return (
            self.get_classification()
            is DeterminismClassification.NON_DETERMINISTIC
        )

    def resolve_truth_state(self, proposed: Union[TruthState, str]) -> TruthState:
        """
        Final truth state for the run.

        SUCCESS and FINDINGS cannot be reported when reproducibility is
        not guaranteed.
        """
        state = TruthState(proposed)
        if self.should_force_incomplete():
            return TruthState.INCOMPLETE
        return state

    def snapshot(self) -> DeterminismReport:
        classification = self.get_classification()
        return DeterminismReport(
            classification=classification,
            reproducible=classification
            is not DeterminismClassification.NON_DETERMINISTIC,
            factors=list(self._factors),
        )
