import logging

import pytest
from pydantic import ValidationError

from verdict.app.config import VerdictConfig


def test_defaults(monkeypatch):
    for name in (
        "VERDICT_FAIL_ON_INCOMPLETE",
        "VERDICT_MAX_CANDIDATES",
        "VERDICT_ENABLE_EVENT_STREAMING",
        "VERDICT_TOOL_VERSION",
        "VERDICT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    config = VerdictConfig.from_env()

    assert config.FAIL_ON_INCOMPLETE is True
    assert config.MAX_CANDIDATES == 5000
    assert config.ENABLE_EVENT_STREAMING is True
    assert config.log_level == logging.INFO


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("VERDICT_FAIL_ON_INCOMPLETE", "no")
    monkeypatch.setenv("VERDICT_MAX_CANDIDATES", "10")
    monkeypatch.setenv("VERDICT_TOOL_VERSION", "9.9.9")
    monkeypatch.setenv("VERDICT_LOG_LEVEL", "debug")

    config = VerdictConfig.from_env()

    assert config.FAIL_ON_INCOMPLETE is False
    assert config.MAX_CANDIDATES == 10
    assert config.TOOL_VERSION == "9.9.9"
    assert config.LOG_LEVEL == "DEBUG"
    assert config.log_level == logging.DEBUG


@pytest.mark.parametrize(
    "overrides",
    [{"MAX_CANDIDATES": 0}, {"LOG_LEVEL": "LOUD"}],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        VerdictConfig(**overrides)


def test_config_is_frozen():
    config = VerdictConfig()

    with pytest.raises(ValidationError):
        config.FAIL_ON_INCOMPLETE = False
