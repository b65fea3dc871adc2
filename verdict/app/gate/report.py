"""
Run analysis assembly and gate report construction.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from verdict.app.determinism.analyzer import DeterminismAnalyzer
from verdict.app.schemas.findings import ConfidenceLevel, Finding, FindingStatus
from verdict.app.schemas.gate import (
    ExitCode,
    FindingsCounts,
    GateDecision,
    GateReport,
    GateReportDiagnostics,
    GateReportFindings,
    GateReportGate,
    GateReportMeta,
    GateReportRun,
    GateReportStability,
    GateReportTriage,
    RunAnalysis,
    RunMeta,
)

UNKNOWN = "UNKNOWN"

_SUSPECTED_GRADE = frozenset({FindingStatus.SUSPECTED, FindingStatus.UNPROVEN})


def count_findings(findings: Iterable[Finding]) -> FindingsCounts:
    """
    Bucket canonical findings for the gate.

    CONFIRMED findings count under their severity, falling back to their
    confidence level. SUSPECTED and UNPROVEN findings count as UNKNOWN.
    INFORMATIONAL findings are not counted.
    """
    buckets = {"high": 0, "medium": 0, "low": 0, "unknown": 0}

    for finding in findings:
        if finding.status is FindingStatus.CONFIRMED:
            grade = (
                finding.severity.value
                if finding.severity is not None
                else finding.confidence.level.value
            )
            buckets[grade.lower()] += 1
        elif finding.status in _SUSPECTED_GRADE:
            buckets["unknown"] += 1

    return FindingsCounts(**buckets)


def run_exit_code_for(
    counts: FindingsCounts,
    analyzer: Optional[DeterminismAnalyzer] = None,
) -> ExitCode:
    """Run-level exit code implied by the canonical findings."""
    if analyzer is not None and analyzer.should_force_incomplete():
        return ExitCode.INCOMPLETE
    if counts.actionable > 0:
        return ExitCode.FAILURE_CONFIRMED
    if counts.unknown > 0:
        return ExitCode.NEEDS_REVIEW
    return ExitCode.SUCCESS


def build_run_analysis(
    *,
    findings: Iterable[Finding],
    analyzer: Optional[DeterminismAnalyzer] = None,
    run_exit_code: Optional[int] = None,
    stability_classification: str = UNKNOWN,
    fail_on_incomplete: bool = True,
    run_id: Optional[str] = None,
    run_status: Optional[str] = None,
    meta: Optional[RunMeta] = None,
    triage_trust: str = UNKNOWN,
    diagnostics_timing: Optional[Dict[str, Any]] = None,
) -> RunAnalysis:
    """
    Assemble the immutable snapshot the gate is evaluated against.

    When the analyzer reports a non-deterministic run, a run exit code
    that would claim SUCCESS or findings is replaced by INCOMPLETE.
    Failure codes supplied by the caller are never softened.
    """
    counts = count_findings(findings)
    derived = run_exit_code_for(counts, analyzer)

    if run_exit_code is None or (
        derived is ExitCode.INCOMPLETE
        and run_exit_code
        in (ExitCode.SUCCESS, ExitCode.NEEDS_REVIEW, ExitCode.FAILURE_CONFIRMED)
    ):
        run_exit_code = derived

    if run_status is None:
        try:
            run_status = ExitCode(run_exit_code).name
        except ValueError:
            run_status = UNKNOWN

    return RunAnalysis(
        run_exit_code=int(run_exit_code),
        findings_counts=counts,
        stability_classification=stability_classification,
        fail_on_incomplete=fail_on_incomplete,
        run_id=run_id,
        run_status=run_status,
        meta=meta or RunMeta(),
        triage_trust=triage_trust,
        diagnostics_timing=diagnostics_timing,
    )


def build_gate_report(analysis: RunAnalysis, decision: GateDecision) -> GateReport:
    """
    Construct the canonical gate artifact.

    No generation timestamp is included.
    """
    counts = analysis.findings_counts
    return GateReport(
        run_id=analysis.run_id,
        meta=GateReportMeta(
            verax_version=analysis.meta.verax_version,
            url=analysis.meta.url,
            profile=analysis.meta.profile,
        ),
        run=GateReportRun(
            status=analysis.run_status,
            exit_code=analysis.run_exit_code,
            started_at=analysis.meta.started_at,
            completed_at=analysis.meta.completed_at,
        ),
        findings=GateReportFindings(
            non_suppressed=counts,
            has_actionable=counts.actionable > 0,
        ),
        stability=GateReportStability(
            classification=analysis.stability_classification,
            available=analysis.stability_classification != UNKNOWN,
        ),
        triage=GateReportTriage(
            trust_level=analysis.triage_trust,
            available=analysis.triage_trust != UNKNOWN,
        ),
        diagnostics=GateReportDiagnostics(
            timing=analysis.diagnostics_timing,
            available=analysis.diagnostics_timing is not None,
        ),
        gate=GateReportGate(
            fail_on_incomplete=analysis.fail_on_incomplete,
            decision=decision.outcome,
            reason=decision.reason,
            exit_code=decision.exit_code,
        ),
    )
