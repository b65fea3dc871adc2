"""
Canonical JSON serialization.

Every artifact comparison, dedup key and digest in the engine goes
through these helpers so that identical inputs always serialize to
identical bytes.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel


def to_jsonable(value: Any) -> Any:
    """Dump pydantic models using their JSON contract (camelCase aliases)."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return value


def canonical_json(value: Any) -> str:
    """
    Canonicalize a value for stable hashing and comparison.

    Keys are sorted, separators are compact and non-ASCII text is kept
    verbatim.
    """
    return json.dumps(
        to_jsonable(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )


def canonical_bytes(value: Any) -> bytes:
    return canonical_json(value).encode("utf-8")
