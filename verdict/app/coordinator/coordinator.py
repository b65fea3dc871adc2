"""
Central verdict coordinator.

IMPORTANT:
The coordinator is a DUMB AUTHORITY.

It MUST NOT:
- interpret findings
- apply heuristics of its own
- read the clock, randomness or environment into a decision

Its sole responsibilities are:
- enforcing stage order (score -> enforce -> dedupe -> sort -> gate)
- enforcing output invariants before anything is returned
- aggregating results into a VerdictResult
- emitting observational events
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from verdict.app.canonical.serialization import canonical_bytes
from verdict.app.config import VerdictConfig
from verdict.app.constitution.enforcer import violations
from verdict.app.coordinator.pipeline import run_pipeline
from verdict.app.determinism.analyzer import DeterminismAnalyzer
from verdict.app.gate.engine import decide
from verdict.app.gate.report import build_gate_report, build_run_analysis
from verdict.app.schemas.gate import RunMeta
from verdict.app.schemas.reports import RunDiagnostics, VerdictResult
from verdict.app.schemas.requests import VerdictRequest
from verdict.app.utils.hashing import compute_artifact_hash, short_digest

# Events (observational only)
from verdict.app.events import (
    VerdictEvent,
    VerdictEventType,
    VerdictEventEmitter,
    NullEventEmitter,
)

logger = logging.getLogger(__name__)


class InvariantViolationError(RuntimeError):
    """Raised when a canonical finding breaks an output invariant."""


class VerdictCoordinator:
    """
    Central verdict coordinator.

    Execution order:
        1. Confidence scoring of candidates carrying signals
        2. Constitution enforcement (Evidence Law, structural checks)
        3. Deduplication and canonical ordering
        4. Output invariant check (hard stop)
        5. Determinism classification
        6. Gate decision and gate report
    """

    def __init__(self, config: VerdictConfig) -> None:
        self._config = config

    @classmethod
    def from_config(cls, config: VerdictConfig) -> "VerdictCoordinator":
        return cls(config=config)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        request: VerdictRequest,
        *,
        emitter: Optional[VerdictEventEmitter] = None,
    ) -> VerdictResult:
        """
        Compute the verdict for one run.

        The emitter is strictly observational:
        - failures must not affect execution
        - events must not influence control flow
        """
        emitter = emitter or NullEventEmitter()
        run_id = request.run_id or self.derive_run_id(request)

        await emitter.emit(
            VerdictEvent(
                run_id=run_id,
                event_type=VerdictEventType.PIPELINE_STARTED,
                details={"candidate_count": len(request.candidates)},
            )
        )

        try:
            # ----------------------------------------------------------
            # 1-3. Finding pipeline (pure)
            # ----------------------------------------------------------
            output = run_pipeline(request.candidates)
            enforcement = output.report.enforcement

            await emitter.emit(
                VerdictEvent(
                    run_id=run_id,
                    event_type=VerdictEventType.CANDIDATES_SCORED,
                    details={"scored_count": output.scored_count},
                )
            )
            await emitter.emit(
                VerdictEvent(
                    run_id=run_id,
                    event_type=VerdictEventType.INVARIANTS_ENFORCED,
                    details={
                        "dropped_count": enforcement.dropped_count,
                        "downgraded_count": enforcement.downgraded_count,
                    },
                )
            )

            # ----------------------------------------------------------
            # 4. Output invariants (HARD STOP)
            # ----------------------------------------------------------
            bad = violations(output.findings)
            if bad:
                raise InvariantViolationError(
                    f"Canonical findings violate output invariants: {bad}"
                )

            await emitter.emit(
                VerdictEvent(
                    run_id=run_id,
                    event_type=VerdictEventType.FINDINGS_CANONICALIZED,
                    details={
                        "findings_count": len(output.findings),
                        "deduplicated_count": enforcement.deduplicated_count,
                    },
                )
            )

            # ----------------------------------------------------------
            # 5. Determinism
            # ----------------------------------------------------------
            analyzer = self._replay_factors(request)

            # ----------------------------------------------------------
            # 6. Gate
            # ----------------------------------------------------------
            facts = request.run
            fail_on_incomplete = (
                facts.fail_on_incomplete
                if facts.fail_on_incomplete is not None
                else self._config.FAIL_ON_INCOMPLETE
            )
            meta = facts.meta or RunMeta(verax_version=self._config.TOOL_VERSION)

            analysis = build_run_analysis(
                findings=output.findings,
                analyzer=analyzer,
                run_exit_code=facts.run_exit_code,
                stability_classification=facts.stability_classification,
                fail_on_incomplete=fail_on_incomplete,
                run_id=run_id,
                run_status=facts.run_status,
                meta=meta,
                triage_trust=facts.triage_trust,
                diagnostics_timing=facts.diagnostics_timing,
            )
            decision = decide(analysis)

            logger.info(
                "Gate decision for run %s: %s (exit %d) - %s",
                run_id,
                decision.outcome.value,
                decision.exit_code,
                decision.reason,
            )

            await emitter.emit(
                VerdictEvent(
                    run_id=run_id,
                    event_type=VerdictEventType.GATE_DECIDED,
                    details={
                        "outcome": decision.outcome.value,
                        "exit_code": int(decision.exit_code),
                    },
                )
            )

            result = VerdictResult(
                run_id=run_id,
                findings_report=output.report,
                findings_digest=compute_artifact_hash(
                    canonical_bytes(output.report)
                ),
                determinism=analyzer.snapshot(),
                gate_decision=decision,
                gate_report=build_gate_report(analysis, decision),
                diagnostics=RunDiagnostics(
                    generated_at=request.generated_at,
                    candidate_count=output.candidate_count,
                    scored_count=output.scored_count,
                ),
            )

            await emitter.emit(
                VerdictEvent(
                    run_id=run_id,
                    event_type=VerdictEventType.PIPELINE_COMPLETED,
                    details={
                        "outcome": decision.outcome.value,
                        "result": result.model_dump(mode="json", by_alias=True),
                    },
                )
            )

            return result

        except Exception as exc:
            await emitter.emit(
                VerdictEvent(
                    run_id=run_id,
                    event_type=VerdictEventType.PIPELINE_FAILED,
                    details={
                        "error": str(exc),
                        "exception_type": type(exc).__name__,
                    },
                )
            )
            raise

    # ------------------------------------------------------------------
    # Structural helpers
    # ------------------------------------------------------------------

    @staticmethod
    def derive_run_id(request: VerdictRequest) -> str:
        """
        Stable run id derived from the request content.

        The volatile generated_at value is excluded.
        """
        material = canonical_bytes(
            request.model_dump(
                mode="json",
                by_alias=True,
                exclude={"generated_at", "run_id"},
            )
        )
        return f"run-{short_digest(material.decode('utf-8'))}"

    @staticmethod
    def _replay_factors(request: VerdictRequest) -> DeterminismAnalyzer:
        analyzer = DeterminismAnalyzer()
        for factor in request.determinism_factors:
            analyzer.record_factor(
                factor.classification, factor.reason, factor.context
            )
        return analyzer


async def run_verdict(
    request: Any,
    *,
    config: Optional[VerdictConfig] = None,
    emitter: Optional[VerdictEventEmitter] = None,
) -> VerdictResult:
    """Convenience wrapper accepting a VerdictRequest or its JSON mapping."""
    if not isinstance(request, VerdictRequest):
        request = VerdictRequest.model_validate(request)
    coordinator = VerdictCoordinator(config=config or VerdictConfig())
    return await coordinator.run(request, emitter=emitter)
