"""
Synchronous finding pipeline: score -> enforce -> dedupe -> sort.

Every stage is pure. Running the pipeline twice on identical candidates
yields byte-identical canonical output.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, List, NamedTuple, Tuple

from verdict.app.canonical.dedupe import dedupe
from verdict.app.canonical.ordering import sort_findings
from verdict.app.confidence.engine import score
from verdict.app.constitution.enforcer import enforce
from verdict.app.reports.findings_report import build_findings_report
from verdict.app.schemas.findings import Finding
from verdict.app.schemas.reports import FindingsReport

logger = logging.getLogger(__name__)


class PipelineOutput(NamedTuple):
    findings: List[Finding]
    report: FindingsReport
    candidate_count: int
    scored_count: int


def score_candidate(candidate: Any) -> Tuple[Any, bool]:
    """
    Attach a computed confidence to a candidate carrying ``signals``.

    Candidates without signals keep whatever confidence they were given;
    the enforcer validates it.
    """
    if not isinstance(candidate, Mapping):
        return candidate, False

    signals = candidate.get("signals")
    if not isinstance(signals, Mapping):
        return candidate, False

    proof = signals.get("proof", candidate.get("promise"))
    confidence = score(
        candidate.get("type"),
        proof,
        signals.get("sensors"),
        signals.get("correlation"),
    )

    scored = dict(candidate)
    scored["confidence"] = confidence.model_dump(mode="json", by_alias=True)
    return scored, True


def score_candidates(candidates: Any) -> Tuple[Any, int]:
    if not isinstance(candidates, (list, tuple)):
        return candidates, 0

    scored: List[Any] = []
    count = 0
    for candidate in candidates:
        item, was_scored = score_candidate(candidate)
        scored.append(item)
        count += was_scored
    return scored, count


def run_pipeline(candidates: Any) -> PipelineOutput:
    scored, scored_count = score_candidates(candidates)

    enforced = enforce(scored)
    unique = dedupe(enforced.findings)
    deduplicated_count = len(enforced.findings) - len(unique)
    canonical = sort_findings(unique)

    logger.debug(
        "Pipeline: %d scored, %d dropped, %d downgraded, %d deduplicated",
        scored_count,
        enforced.enforcement.dropped_count,
        enforced.enforcement.downgraded_count,
        deduplicated_count,
    )

    return PipelineOutput(
        findings=canonical,
        report=build_findings_report(
            canonical,
            enforced.enforcement,
            deduplicated_count=deduplicated_count,
        ),
        candidate_count=len(candidates) if isinstance(candidates, (list, tuple)) else 0,
        scored_count=scored_count,
    )
