"""
Findings report construction.

The findings report is a canonical artifact: it contains only
deterministic fields and its findings are already in canonical order.
"""

from __future__ import annotations

from collections import Counter
from typing import Dict, List

from verdict.app.schemas.enforcement import EnforcementSnapshot
from verdict.app.schemas.findings import Finding
from verdict.app.schemas.reports import FindingsReport

UNSPECIFIED_PROMISE = "unspecified"


def _sorted_counts(counter: Counter) -> Dict[str, int]:
    return {key: counter[key] for key in sorted(counter)}


def outcome_summary(findings: List[Finding]) -> Dict[str, int]:
    return _sorted_counts(Counter(f.status.value for f in findings))


def promise_summary(findings: List[Finding]) -> Dict[str, int]:
    return _sorted_counts(
        Counter(
            f.promise.kind or f.promise.type or UNSPECIFIED_PROMISE
            for f in findings
        )
    )


def build_findings_report(
    findings: List[Finding],
    enforcement: EnforcementSnapshot,
    *,
    deduplicated_count: int = 0,
) -> FindingsReport:
    return FindingsReport(
        contract_version=enforcement.contract_version,
        findings=findings,
        outcome_summary=outcome_summary(findings),
        promise_summary=promise_summary(findings),
        enforcement=enforcement.model_copy(
            update={"deduplicated_count": deduplicated_count}
        ),
    )
