"""
Finding deduplication.

Two findings describe the same observed problem when they share the same
id, location and promise. The first occurrence wins and survivors keep
their relative input order.
"""

from __future__ import annotations

from typing import Iterable, List, Set, Tuple

from verdict.app.canonical.serialization import canonical_json
from verdict.app.schemas.findings import Finding


def dedupe_key(finding: Finding) -> Tuple[str, str, str]:
    promise = finding.promise.model_dump(mode="json", exclude_none=True)
    return finding.id, finding.location or "", canonical_json(promise)


def dedupe(findings: Iterable[Finding]) -> List[Finding]:
    seen: Set[Tuple[str, str, str]] = set()
    unique: List[Finding] = []

    for finding in findings:
        key = dedupe_key(finding)
        if key in seen:
            continue
        seen.add(key)
        unique.append(finding)

    return unique
