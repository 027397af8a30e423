from __future__ import annotations

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

import durable_breaker.settings as settings_mod
from durable_breaker.circuit_breaker import CircuitBreakerConfig
from durable_breaker.retry import RetryBackoffPolicy
from durable_breaker.settings import BreakerSettings


@pytest.fixture(autouse=True)
def _clean_breaker_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.upper().startswith("BREAKER_"):
            monkeypatch.delenv(name)


def test_defaults_build_default_config_and_policy() -> None:
    settings = BreakerSettings()

    assert settings.breaker_config() == CircuitBreakerConfig()
    assert settings.retry_policy() == RetryBackoffPolicy()
    assert settings.storage_dir is None
    assert settings.log_level == "INFO"


def test_values_are_read_from_prefixed_environment(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("BREAKER_FAILURE_THRESHOLD", "3")
    monkeypatch.setenv("BREAKER_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("breaker_storage_dir", str(tmp_path))
    monkeypatch.setenv("BREAKER_RETRY_JITTER", "false")
    monkeypatch.setenv("BREAKER_LOG_LEVEL", "debug")

    settings = BreakerSettings()

    config = settings.breaker_config()
    assert config.failure_threshold == 3
    assert config.timeout_seconds == 12.5
    assert settings.storage_dir == tmp_path
    assert settings.retry_policy().jitter is False
    assert settings.log_level == "DEBUG"


def test_blank_storage_dir_means_in_memory(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BREAKER_STORAGE_DIR", "  ")

    assert BreakerSettings().storage_dir is None


@pytest.mark.parametrize(
    ("field", "value"),
    [
        ("failure_threshold", 0),
        ("success_threshold", 0),
        ("timeout_seconds", -1),
        ("retry_max_attempts", 0),
        ("retry_multiplier", 0.5),
        ("temp_file_max_age_seconds", -5),
        ("log_level", "TRACE"),
        ("storage_error_log_level", "loud"),
    ],
)
def test_invalid_values_are_rejected(field: str, value: object) -> None:
    with pytest.raises(ValidationError):
        BreakerSettings(**{field: value})  # type: ignore[arg-type]


def test_configure_logging_applies_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BREAKER_LOG_LEVEL", "warning")
    seen: list[str] = []
    sentinel = object()

    def _configure(*, log_level: str) -> object:
        seen.append(log_level)
        return sentinel

    monkeypatch.setattr(settings_mod, "configure_structlog", _configure)

    assert BreakerSettings().configure_logging() is sentinel
    assert seen == ["WARNING"]
