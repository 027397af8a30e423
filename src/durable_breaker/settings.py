from __future__ import annotations

from pathlib import Path

import structlog
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from durable_breaker.circuit_breaker.breaker import CircuitBreakerConfig
from durable_breaker.logging import configure_structlog, get_log_level_value
from durable_breaker.retry import RetryBackoffPolicy

ENV_PREFIX = "BREAKER_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class BreakerSettings(BaseSettings):
    """Environment-driven breaker and storage settings (``BREAKER_*``)."""

    model_config = prefixed_settings_config(ENV_PREFIX)

    failure_threshold: int = 5
    success_threshold: int = 2
    timeout_seconds: float = 30.0

    storage_dir: Path | None = None
    temp_file_max_age_seconds: float = 3600.0

    retry_max_attempts: int = 3
    retry_initial_delay_ms: float = 100.0
    retry_multiplier: float = 2.0
    retry_jitter: bool = True

    log_level: str = "INFO"
    storage_success_log_level: str = "debug"
    storage_error_log_level: str = "error"

    @field_validator(
        "log_level",
        "storage_success_log_level",
        "storage_error_log_level",
        mode="after",
    )
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        get_log_level_value(normalized)
        return normalized

    @field_validator("storage_dir", mode="before")
    @classmethod
    def _blank_storage_dir_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _validate_breaker_settings(self) -> BreakerSettings:
        if self.temp_file_max_age_seconds < 0:
            raise ValueError("temp_file_max_age_seconds must be >= 0")
        # Builders raise ValueError on out-of-range values.
        self.breaker_config()
        self.retry_policy()
        return self

    def breaker_config(self) -> CircuitBreakerConfig:
        return CircuitBreakerConfig(
            failure_threshold=self.failure_threshold,
            success_threshold=self.success_threshold,
            timeout_seconds=self.timeout_seconds,
        )

    def retry_policy(self) -> RetryBackoffPolicy:
        return RetryBackoffPolicy(
            max_attempts=self.retry_max_attempts,
            initial_delay_ms=self.retry_initial_delay_ms,
            multiplier=self.retry_multiplier,
            jitter=self.retry_jitter,
        )

    def configure_logging(self) -> structlog.stdlib.BoundLogger:
        """Configure process logging at ``log_level`` and return a bound logger."""
        return configure_structlog(log_level=self.log_level)
