"""
Deterministic finding order.

Imposes one canonical, locale-independent total order on findings.

IMPORTANT:
- String comparison is ordinal (Python str ordering by code point)
- Locale-aware collation MUST NOT be used anywhere in this module
- A finding without a source reference sorts after every finding with one
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from verdict.app.canonical.serialization import canonical_json
from verdict.app.schemas.findings import (
    Evidence,
    Finding,
    FindingStatus,
    Promise,
    Severity,
)


_SOURCE_REF = re.compile(r"^(?P<file>.*?):(?P<line>\d+)(?::(?P<column>\d+))?$")

_STATUS_RANK = {status: rank for rank, status in enumerate(FindingStatus)}
_SEVERITY_RANK = {severity: rank for rank, severity in enumerate(Severity)}


def source_ref_key(source_ref: Optional[str]) -> Tuple[int, str, int, int, str]:
    """
    Sort key for a ``file:line[:column]`` reference.

    Line and column compare numerically so that ``a.js:9`` precedes
    ``a.js:10``.
    """
    if not source_ref:
        return (1, "", 0, 0, "")

    match = _SOURCE_REF.match(source_ref)
    if match is None:
        return (0, source_ref, 0, 0, source_ref)

    return (
        0,
        match.group("file"),
        int(match.group("line")),
        int(match.group("column") or 0),
        source_ref,
    )


def _promise_key(promise: Promise) -> Tuple[str, str]:
    kind = promise.kind or promise.type or ""
    value = (
        promise.value
        or promise.expected
        or promise.actual
        or promise.expected_signal
        or ""
    )
    return kind, value


def canonical_sort_key(finding: Finding) -> Tuple[Any, ...]:
    severity_rank = (
        _SEVERITY_RANK[finding.severity]
        if finding.severity is not None
        else len(_SEVERITY_RANK)
    )
    return (
        source_ref_key(finding.source_ref),
        finding.type,
        _STATUS_RANK[finding.status],
        severity_rank,
        _promise_key(finding.promise),
        finding.id,
        finding.location or "",
        canonical_json(finding),
    )


def _list_item_key(item: Any) -> Tuple[str, Any]:
    if isinstance(item, (str, int, float)):
        return type(item).__name__, item
    return type(item).__name__, canonical_json(item)


def _sorted_lists(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _sorted_lists(v) for k, v in value.items()}
    if isinstance(value, list):
        return sorted((_sorted_lists(item) for item in value), key=_list_item_key)
    return value


def canonicalize_evidence(evidence: Evidence) -> Evidence:
    """Return evidence with every list field sorted."""
    dumped: Dict[str, Any] = evidence.model_dump(exclude_none=True)
    return Evidence.model_validate(_sorted_lists(dumped))


def canonicalize_finding(finding: Finding) -> Finding:
    return finding.model_copy(
        update={"evidence": canonicalize_evidence(finding.evidence)}
    )


def sort_findings(findings: Iterable[Finding]) -> List[Finding]:
    """
    Canonically order findings and canonicalize their nested evidence.
    """
    return sorted(
        (canonicalize_finding(finding) for finding in findings),
        key=canonical_sort_key,
    )
