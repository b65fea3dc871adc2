"""
Gate decision engine.

Combines a finished RunAnalysis snapshot into exactly one explainable
verdict and exit code.

IMPORTANT:
- decide() is referentially transparent: identical snapshots always
  yield identical decisions
- It MUST NOT read artifacts, the environment or the clock
- It never raises; ambiguous or malformed input resolves to the most
  conservative outcome (INVARIANT_VIOLATION)
- Rules are evaluated in strict priority order; the first match wins
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from verdict.app.schemas.gate import (
    OUTCOME_EXIT_CODES,
    ExitCode,
    GateDecision,
    GateOutcome,
    RunAnalysis,
)

logger = logging.getLogger(__name__)


UNSTABLE = "UNSTABLE"

REASON_INVARIANT_VIOLATION = "Underlying scan failed to execute"
REASON_UNRECOGNIZED_EXIT = "Unrecognized run exit code {code}; treating as tool failure"
REASON_MALFORMED_ANALYSIS = "Run analysis snapshot is malformed"
REASON_USAGE_ERROR = "Usage error (scan invocation invalid)"
REASON_EVIDENCE_VIOLATION = "Artifacts failed validation"
REASON_INCOMPLETE = "Run incomplete and gating requires completeness"
REASON_FINDINGS = "Actionable findings detected: HIGH={high} MEDIUM={medium} LOW={low}"
REASON_CONFIRMED_EXIT = "Run reported confirmed findings"
REASON_SUSPECTED = "Suspected findings require review"
REASON_INCOMPLETE_REVIEW = (
    "Run incomplete but fail-on-incomplete=false; manual review required"
)
REASON_UNSTABLE = "Stability classification is UNSTABLE"
REASON_PASS = "All gate checks passed"

_KNOWN_EXIT_CODES = frozenset(code.value for code in ExitCode)


def _decision(outcome: GateOutcome, reason: str) -> GateDecision:
    return GateDecision(
        outcome=outcome,
        reason=reason,
        exit_code=OUTCOME_EXIT_CODES[outcome],
    )


def _coerce_analysis(analysis: Any) -> RunAnalysis | None:
    if isinstance(analysis, RunAnalysis):
        return analysis
    if not isinstance(analysis, Mapping):
        return None
    try:
        return RunAnalysis.model_validate(dict(analysis))
    except ValidationError:
        return None


def decide(analysis: Any) -> GateDecision:
    """
    Decide the gate outcome for one run.

    Accepts a RunAnalysis or a JSON-shaped mapping of one.
    """
    snapshot = _coerce_analysis(analysis)
    if snapshot is None:
        logger.warning("Gate received a malformed run analysis snapshot")
        return _decision(GateOutcome.INVARIANT_VIOLATION, REASON_MALFORMED_ANALYSIS)

    code = snapshot.run_exit_code
    counts = snapshot.findings_counts

    # 1. Tool / invariant failure
    if code == ExitCode.INVARIANT_VIOLATION:
        return _decision(GateOutcome.INVARIANT_VIOLATION, REASON_INVARIANT_VIOLATION)
    if code not in _KNOWN_EXIT_CODES:
        return _decision(
            GateOutcome.INVARIANT_VIOLATION,
            REASON_UNRECOGNIZED_EXIT.format(code=code),
        )

    # 2. Usage error
    if code == ExitCode.USAGE_ERROR:
        return _decision(GateOutcome.USAGE_ERROR, REASON_USAGE_ERROR)

    # 3. Evidence / artifact validation failure
    if code == ExitCode.EVIDENCE_VIOLATION:
        return _decision(GateOutcome.EVIDENCE_VIOLATION, REASON_EVIDENCE_VIOLATION)

    incomplete = code == ExitCode.INCOMPLETE

    # 4. Incomplete run under a completeness policy
    if incomplete and snapshot.fail_on_incomplete:
        return _decision(GateOutcome.INCOMPLETE, REASON_INCOMPLETE)

    # 5. Confirmed-grade findings
    if counts.actionable > 0:
        return _decision(
            GateOutcome.FAILURE_CONFIRMED,
            REASON_FINDINGS.format(
                high=counts.high, medium=counts.medium, low=counts.low
            ),
        )
    if code == ExitCode.FAILURE_CONFIRMED:
        return _decision(GateOutcome.FAILURE_CONFIRMED, REASON_CONFIRMED_EXIT)

    # 6. Suspected-only findings, or tolerated incompleteness
    if code == ExitCode.NEEDS_REVIEW or counts.unknown > 0:
        return _decision(GateOutcome.NEEDS_REVIEW, REASON_SUSPECTED)
    if incomplete:
        return _decision(GateOutcome.NEEDS_REVIEW, REASON_INCOMPLETE_REVIEW)

    # 7. Advisory instability
    if snapshot.stability_classification.upper() == UNSTABLE:
        return _decision(GateOutcome.NEEDS_REVIEW, REASON_UNSTABLE)

    # 8. Clean pass
    return _decision(GateOutcome.SUCCESS, REASON_PASS)
