import pytest

from verdict.app.determinism.comparison import (
    DifferenceType,
    find_differences,
    is_volatile_field,
    normalize_for_comparison,
    quantize_elapsed_ms,
    semantic_hash,
)


@pytest.mark.parametrize(
    "name",
    ["timestamp", "runId", "generatedAt", "created_at", "startTime",
     "elapsedMs", "duration_ms", "lastTimestampSeen"],
)
def test_volatile_fields(name):
    assert is_volatile_field(name)


@pytest.mark.parametrize("name", ["status", "findings", "attempt", "type"])
def test_stable_fields(name):
    assert not is_volatile_field(name)


@pytest.mark.parametrize(
    "ms, bucket",
    [
        (0, "<1s"),
        (999, "<1s"),
        (1_000, "<5s"),
        (9_999.5, "<10s"),
        (29_999, "<30s"),
        (59_000, "<1min"),
        (299_999, "<5min"),
        (300_000, "≥5min"),
        (-1, "unknown"),
        ("fast", "unknown"),
        (None, "unknown"),
        (True, "unknown"),
    ],
)
def test_elapsed_quantization(ms, bucket):
    assert quantize_elapsed_ms(ms) == bucket


def test_volatile_fields_are_removed_recursively():
    artifact = {
        "runId": "run-1",
        "meta": {"generatedAt": "2026-01-01", "version": "1"},
        "items": [{"timestamp": 1, "id": "a"}],
    }

    assert normalize_for_comparison(artifact) == {
        "items": [{"id": "a"}],
        "meta": {"version": "1"},
    }


def test_runs_differing_only_in_volatile_fields_hash_equal():
    first = {"runId": "run-1", "status": "SUCCESS", "elapsedMs": 120}
    second = {"runId": "run-2", "status": "SUCCESS", "elapsedMs": 4500}

    assert semantic_hash(first) == semantic_hash(second)
    assert semantic_hash(first).startswith("SHA-256:")
    assert find_differences(first, second) == []


def test_differences_are_reported_by_path():
    first = {
        "status": "SUCCESS",
        "counts": {"high": 0},
        "findings": ["a", "b"],
        "only_first": 1,
    }
    second = {
        "status": "FINDINGS",
        "counts": {"high": "0"},
        "findings": ["a"],
        "only_second": True,
    }

    differences = find_differences(first, second)

    assert [(d.path, d.type) for d in differences] == [
        ("counts.high", DifferenceType.TYPE_MISMATCH),
        ("findings", DifferenceType.LENGTH_MISMATCH),
        ("only_first", DifferenceType.MISSING_IN_SECOND),
        ("only_second", DifferenceType.MISSING_IN_FIRST),
        ("status", DifferenceType.VALUE_MISMATCH),
    ]
    assert differences[-1].first == "SUCCESS"
    assert differences[-1].second == "FINDINGS"
