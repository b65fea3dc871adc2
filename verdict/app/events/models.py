from __future__ import annotations

import json
from typing import Any, Dict, Optional
from enum import Enum
from datetime import datetime, timezone
from uuid import uuid4, UUID

from pydantic import BaseModel, Field, ConfigDict


# ----------------------------------------------------------------------
# Event Types (Finite and Versioned)
# ----------------------------------------------------------------------
class VerdictEventType(str, Enum):
    """
    Progression events emitted while a verdict is computed.

    NOTE:
    This enum is finite and versioned.
    New entries must preserve observational semantics.
    """

    # ------------------------------------------------------------------
    # Pipeline Lifecycle
    # ------------------------------------------------------------------
    PIPELINE_STARTED = "pipeline_started"
    PIPELINE_COMPLETED = "pipeline_completed"
    PIPELINE_FAILED = "pipeline_failed"

    # ------------------------------------------------------------------
    # Finding Stages
    # ------------------------------------------------------------------
    CANDIDATES_SCORED = "candidates_scored"
    INVARIANTS_ENFORCED = "invariants_enforced"
    FINDINGS_CANONICALIZED = "findings_canonicalized"

    # ------------------------------------------------------------------
    # Gate
    # ------------------------------------------------------------------
    GATE_DECIDED = "gate_decided"


TERMINAL_EVENT_TYPES = frozenset(
    {
        VerdictEventType.PIPELINE_COMPLETED,
        VerdictEventType.PIPELINE_FAILED,
    }
)


# ----------------------------------------------------------------------
# Event Model
# ----------------------------------------------------------------------
class VerdictEvent(BaseModel):
    """
    An immutable observation of a stage transition.

    Events are:
    - strictly observational
    - transport-agnostic
    - not authoritative
    - never part of a canonical artifact
    """

    event_id: UUID = Field(default_factory=uuid4)
    run_id: str = Field(..., description="The run being judged")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    event_type: VerdictEventType

    # Optional contextual metadata (counts, outcome, etc.)
    details: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )

    def to_sse_payload(self) -> str:
        data = json.dumps(self.model_dump(mode="json"), ensure_ascii=False)
        return f"event: {self.event_type.value}\ndata: {data}\n\n"
