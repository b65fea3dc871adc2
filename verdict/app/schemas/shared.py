"""
Shared model configuration.

Two families of models exist in the engine:

- Contract models: emitted by the engine (findings, reports, decisions).
  These are frozen and reject unknown fields.
- Signal models: received from the observation collaborator. These are
  frozen but tolerate unknown fields, because the collaborator's payloads
  are richer than what the engine judges.

Both accept snake_case attribute names and camelCase JSON aliases, and
are serialized with ``by_alias=True``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ContractModel(BaseModel):
    """Base for every model that is part of an emitted artifact."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SignalModel(BaseModel):
    """Base for collaborator-supplied signal structures."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )
