"""
Runtime configuration for the verdict engine service.

This module centralizes environment-driven configuration: gate policy
defaults, resource limits for the HTTP surface, and logging.

Configuration is read-only at runtime. It is consulted only when a
caller leaves a policy input unspecified, and it never varies between
two evaluations of the same snapshot.
"""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, Field, field_validator


class VerdictConfig(BaseModel):
    """
    Runtime configuration for the verdict engine.

    Configuration is environment-driven, read-only at runtime, and must
    not introduce non-deterministic behavior into verdicts.
    """

    # ------------------------------------------------------------------
    # Gate policy defaults
    # ------------------------------------------------------------------

    FAIL_ON_INCOMPLETE: bool = Field(
        True,
        description=(
            "Default gate policy when a run does not state one: "
            "incomplete runs fail the gate"
        ),
    )

    # ------------------------------------------------------------------
    # Safety and resource limits
    # ------------------------------------------------------------------

    MAX_CANDIDATES: int = Field(
        5000,
        description="Maximum number of candidate findings accepted per request",
    )

    # ------------------------------------------------------------------
    # Presentation / observability
    # ------------------------------------------------------------------

    ENABLE_EVENT_STREAMING: bool = Field(
        True,
        description="Expose the streaming (SSE) verdict endpoint",
    )

    TOOL_VERSION: str = Field(
        "0.1.0",
        description="Tool version reported in gate report metadata when unset",
    )

    LOG_LEVEL: str = Field(
        "INFO",
        description="Root log level for the service process",
    )

    # ------------------------------------------------------------------
    # Validators (Pydantic v2)
    # ------------------------------------------------------------------

    @field_validator("MAX_CANDIDATES")
    @classmethod
    def validate_max_candidates(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("MAX_CANDIDATES must be a positive integer.")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if level not in allowed:
            raise ValueError(
                f"Unsupported LOG_LEVEL '{v}'. "
                f"Allowed values: {sorted(allowed)}"
            )
        return level

    @property
    def log_level(self) -> int:
        return logging.getLevelName(self.LOG_LEVEL)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls) -> "VerdictConfig":
        """
        Load configuration from environment variables.

        All values are parsed once at startup and must remain immutable.
        """

        def env_bool(name: str, default: bool) -> bool:
            raw = os.getenv(name)
            if raw is None:
                return default
            return raw.lower() in {"1", "true", "yes", "on"}

        return cls(
            FAIL_ON_INCOMPLETE=env_bool(
                "VERDICT_FAIL_ON_INCOMPLETE", True
            ),
            MAX_CANDIDATES=int(
                os.getenv("VERDICT_MAX_CANDIDATES", "5000")
            ),
            ENABLE_EVENT_STREAMING=env_bool(
                "VERDICT_ENABLE_EVENT_STREAMING", True
            ),
            TOOL_VERSION=os.getenv(
                "VERDICT_TOOL_VERSION", "0.1.0"
            ),
            LOG_LEVEL=os.getenv(
                "VERDICT_LOG_LEVEL", "INFO"
            ),
        )

    model_config = {
        "frozen": True,
    }
