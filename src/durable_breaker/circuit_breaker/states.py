"""Per-state breaker behavior.

Each handler is stateless. Every method takes the current ``CircuitState`` and
returns the next one; nothing is mutated in place. ``CircuitBreaker`` owns the
live snapshot, persists whatever a handler returns and reports transitions.

Transition table:
  - CLOSED: success resets ``failure_count``; a failure increments it and opens
    the circuit once ``failure_threshold`` is reached.
  - OPEN: calls are rejected until ``timeout_seconds`` have elapsed since
    ``last_failure_time``; the next call then moves to HALF_OPEN and runs.
  - HALF_OPEN: ``success_threshold`` successes close the circuit with both
    counters reset; any single failure reopens it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from durable_breaker.circuit_breaker.exceptions import CircuitOpenError
from durable_breaker.state import BreakerState, CircuitState

if TYPE_CHECKING:
    from durable_breaker.circuit_breaker.breaker import CircuitBreakerConfig


def _to_epoch_seconds(now: float) -> int:
    return int(now)


class StateHandler(ABC):
    """Behavior of one breaker state."""

    state: BreakerState

    @abstractmethod
    def admit(
        self,
        current: CircuitState,
        *,
        now: float,
        config: CircuitBreakerConfig,
    ) -> CircuitState:
        """Return the snapshot to run a call under, or raise ``CircuitOpenError``."""

    @abstractmethod
    def record_success(
        self,
        current: CircuitState,
        *,
        now: float,
        config: CircuitBreakerConfig,
    ) -> CircuitState:
        """Return the snapshot after a successful call."""

    @abstractmethod
    def record_failure(
        self,
        current: CircuitState,
        *,
        now: float,
        config: CircuitBreakerConfig,
    ) -> CircuitState:
        """Return the snapshot after a failed call."""


def _opened(current: CircuitState, *, failure_count: int, now: float) -> CircuitState:
    return CircuitState(
        service_key=current.service_key,
        state=BreakerState.OPEN,
        failure_count=failure_count,
        success_count=0,
        last_failure_time=_to_epoch_seconds(now),
    )


def _closed(current: CircuitState) -> CircuitState:
    return CircuitState(
        service_key=current.service_key,
        state=BreakerState.CLOSED,
        failure_count=0,
        success_count=0,
        last_failure_time=current.last_failure_time,
    )


class ClosedState(StateHandler):
    state = BreakerState.CLOSED

    def admit(self, current, *, now, config):
        return current

    def record_success(self, current, *, now, config):
        if current.failure_count == 0:
            return current
        return current.with_failure_count(0)

    def record_failure(self, current, *, now, config):
        failure_count = current.failure_count + 1
        if failure_count >= config.failure_threshold:
            return _opened(current, failure_count=failure_count, now=now)
        return CircuitState(
            service_key=current.service_key,
            state=BreakerState.CLOSED,
            failure_count=failure_count,
            success_count=current.success_count,
            last_failure_time=_to_epoch_seconds(now),
        )


class OpenState(StateHandler):
    state = BreakerState.OPEN

    @staticmethod
    def retry_after(current: CircuitState, *, now: float, timeout: float) -> float:
        """Seconds left before a probe is allowed; ``0.0`` once timed out."""
        if current.last_failure_time is None:
            return 0.0
        elapsed = now - current.last_failure_time
        return max(timeout - elapsed, 0.0)

    def admit(self, current, *, now, config):
        retry_after = self.retry_after(current, now=now, timeout=config.timeout_seconds)
        if retry_after > 0:
            raise CircuitOpenError(current.service_key, retry_after=retry_after)
        return CircuitState(
            service_key=current.service_key,
            state=BreakerState.HALF_OPEN,
            failure_count=current.failure_count,
            success_count=0,
            last_failure_time=current.last_failure_time,
        )

    # Outcomes of calls admitted before a concurrent call reopened the circuit.
    def record_success(self, current, *, now, config):
        return current

    def record_failure(self, current, *, now, config):
        return current


class HalfOpenState(StateHandler):
    state = BreakerState.HALF_OPEN

    def admit(self, current, *, now, config):
        return current

    def record_success(self, current, *, now, config):
        success_count = current.success_count + 1
        if success_count >= config.success_threshold:
            return _closed(current)
        return current.with_success_count(success_count)

    def record_failure(self, current, *, now, config):
        return _opened(current, failure_count=current.failure_count + 1, now=now)


_HANDLERS: dict[BreakerState, StateHandler] = {
    BreakerState.CLOSED: ClosedState(),
    BreakerState.OPEN: OpenState(),
    BreakerState.HALF_OPEN: HalfOpenState(),
}


def handler_for(state: BreakerState) -> StateHandler:
    """Return the handler implementing ``state``."""
    return _HANDLERS[state]
