"""Structured-logging breaker listener."""

import structlog

from durable_breaker.logging import (
    Logger,
    log_debug,
    log_error,
    log_info,
    log_warning,
)
from durable_breaker.state import BreakerState, CircuitState


def _state_fields(snapshot: CircuitState) -> dict[str, object]:
    return {
        "service_key": snapshot.service_key,
        "state": snapshot.state.value,
        "failure_count": snapshot.failure_count,
        "success_count": snapshot.success_count,
    }


class LoggingBreakerListener:
    """Log breaker lifecycle signals as structlog events."""

    def __init__(self, logger: Logger | None = None) -> None:
        self._logger: Logger = (
            structlog.get_logger(__name__) if logger is None else logger
        )

    async def on_state_change(
        self, old: BreakerState, new: BreakerState, snapshot: CircuitState
    ) -> None:
        log_info(
            self._logger,
            "circuit_breaker.state_changed",
            from_state=old.value,
            to_state=new.value,
            **_state_fields(snapshot),
        )
        if new is BreakerState.OPEN:
            log_warning(
                self._logger,
                "circuit_breaker.opened",
                last_failure_time=snapshot.last_failure_time,
                **_state_fields(snapshot),
            )

    async def on_call_rejected(
        self, snapshot: CircuitState, retry_after: float
    ) -> None:
        log_warning(
            self._logger,
            "circuit_breaker.call_rejected",
            retry_after=round(retry_after, 3),
            **_state_fields(snapshot),
        )

    async def on_call_succeeded(self, snapshot: CircuitState, elapsed: float) -> None:
        log_debug(
            self._logger,
            "circuit_breaker.call_succeeded",
            elapsed_ms=round(elapsed * 1000, 2),
            **_state_fields(snapshot),
        )

    async def on_call_failed(
        self, snapshot: CircuitState, exc: Exception, elapsed: float
    ) -> None:
        log_error(
            self._logger,
            "circuit_breaker.call_failed",
            error=str(exc),
            error_type=type(exc).__name__,
            elapsed_ms=round(elapsed * 1000, 2),
            **_state_fields(snapshot),
        )

    async def on_fallback_executed(
        self, snapshot: CircuitState, exc: Exception
    ) -> None:
        log_warning(
            self._logger,
            "circuit_breaker.fallback_executed",
            error=str(exc),
            error_type=type(exc).__name__,
            **_state_fields(snapshot),
        )
