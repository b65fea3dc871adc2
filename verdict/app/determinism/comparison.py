"""
Semantic comparison of run artifacts.

Two runs are semantically identical when their artifacts match after
volatile fields (timestamps, run ids, durations) are removed. Elapsed
times that must be kept are quantized into coarse buckets first.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, List, Optional

from verdict.app.canonical.serialization import canonical_bytes, to_jsonable
from verdict.app.schemas.shared import ContractModel
from verdict.app.utils.hashing import compute_artifact_hash


VOLATILE_FIELDS = frozenset(
    {
        "timestamp",
        "runId",
        "run_id",
        "pid",
        "duration",
        "relativeTime",
        "sequence",
    }
)

_VOLATILE_SUFFIXES = ("At", "_at", "Time", "Ms", "_ms")

ELAPSED_BUCKETS = (
    (1_000, "<1s"),
    (5_000, "<5s"),
    (10_000, "<10s"),
    (30_000, "<30s"),
    (60_000, "<1min"),
    (300_000, "<5min"),
)


def is_volatile_field(name: str) -> bool:
    return (
        name in VOLATILE_FIELDS
        or name.endswith(_VOLATILE_SUFFIXES)
        or "timestamp" in name.lower()
    )


def quantize_elapsed_ms(ms: Any) -> str:
    if isinstance(ms, bool) or not isinstance(ms, (int, float)) or ms < 0:
        return "unknown"
    for limit, label in ELAPSED_BUCKETS:
        if ms < limit:
            return label
    return "≥5min"


def normalize_for_comparison(value: Any) -> Any:
    """Recursively drop volatile keys from a JSON-shaped value."""
    value = to_jsonable(value)
    if isinstance(value, Mapping):
        return {
            key: normalize_for_comparison(item)
            for key, item in sorted(value.items())
            if not is_volatile_field(key)
        }
    if isinstance(value, list):
        return [normalize_for_comparison(item) for item in value]
    return value


def semantic_hash(value: Any) -> str:
    return compute_artifact_hash(canonical_bytes(normalize_for_comparison(value)))


# ---------------------------------------------------------------------------
# Differences
# ---------------------------------------------------------------------------


class DifferenceType(str, Enum):
    TYPE_MISMATCH = "type-mismatch"
    VALUE_MISMATCH = "value-mismatch"
    LENGTH_MISMATCH = "length-mismatch"
    MISSING_IN_FIRST = "missing-in-first"
    MISSING_IN_SECOND = "missing-in-second"


class Difference(ContractModel):
    path: str
    type: DifferenceType
    first: Optional[Any] = None
    second: Optional[Any] = None


def _kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


def _diff(first: Any, second: Any, path: str, out: List[Difference]) -> None:
    if _kind(first) != _kind(second):
        out.append(
            Difference(
                path=path,
                type=DifferenceType.TYPE_MISMATCH,
                first=_kind(first),
                second=_kind(second),
            )
        )
        return

    if isinstance(first, list):
        if len(first) != len(second):
            out.append(
                Difference(
                    path=path,
                    type=DifferenceType.LENGTH_MISMATCH,
                    first=len(first),
                    second=len(second),
                )
            )
        for index, (a, b) in enumerate(zip(first, second)):
            _diff(a, b, f"{path}[{index}]", out)
        return

    if isinstance(first, Mapping):
        for key in sorted(set(first) | set(second)):
            child = f"{path}.{key}" if path else key
            if key not in first:
                out.append(
                    Difference(path=child, type=DifferenceType.MISSING_IN_FIRST)
                )
            elif key not in second:
                out.append(
                    Difference(path=child, type=DifferenceType.MISSING_IN_SECOND)
                )
            else:
                _diff(first[key], second[key], child, out)
        return

    if first != second:
        out.append(
            Difference(
                path=path,
                type=DifferenceType.VALUE_MISMATCH,
                first=first,
                second=second,
            )
        )


def find_differences(first: Any, second: Any) -> List[Difference]:
    """
    Semantic differences between two artifacts, in path order.

    Volatile fields are ignored on both sides.
    """
    differences: List[Difference] = []
    _diff(
        normalize_for_comparison(first),
        normalize_for_comparison(second),
        "",
        differences,
    )
    return differences
