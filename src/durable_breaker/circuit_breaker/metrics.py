"""Observability hooks for circuit breakers."""

from dataclasses import dataclass
from typing import Protocol

from durable_breaker.clock import Clock, SystemClock
from durable_breaker.state import BreakerState, CircuitState


class BreakerListener(Protocol):
    """Listener protocol for circuit breaker events.

    Notes:
        Signals are delivered after the breaker has released its lock and
        persisted the new state. ``snapshot`` is the state after the event.
    """

    async def on_state_change(
        self, old: BreakerState, new: BreakerState, snapshot: CircuitState
    ) -> None:
        """Handle circuit state transitions."""

    async def on_call_rejected(
        self, snapshot: CircuitState, retry_after: float
    ) -> None:
        """Handle call rejection while the circuit is open."""

    async def on_call_succeeded(self, snapshot: CircuitState, elapsed: float) -> None:
        """Handle successful protected call completion."""

    async def on_call_failed(
        self, snapshot: CircuitState, exc: Exception, elapsed: float
    ) -> None:
        """Handle failed protected call completion."""

    async def on_fallback_executed(
        self, snapshot: CircuitState, exc: Exception
    ) -> None:
        """Handle a fallback replacing a failed or rejected call."""


def _percentage(part: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(part / total * 100, 2)


@dataclass(slots=True)
class CircuitMetrics:
    """Call and transition counters for one service.

    Attributes:
        total_calls: Calls attempted or rejected.
        successful_calls: Calls that completed without a counted failure.
        failed_calls: Calls that raised a counted failure.
        rejected_calls: Calls refused while the circuit was open.
        fallback_calls: Fallbacks executed in place of the primary operation.
        state_transitions: Number of state changes observed.
        last_success_time: Epoch seconds of the last success, if any.
        last_failure_time: Epoch seconds of the last failure, if any.
        last_state_change_time: Epoch seconds of the last transition, if any.
    """

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    fallback_calls: int = 0
    state_transitions: int = 0
    last_success_time: float | None = None
    last_failure_time: float | None = None
    last_state_change_time: float | None = None

    @property
    def success_rate(self) -> float:
        return _percentage(self.successful_calls, self.total_calls)

    @property
    def failure_rate(self) -> float:
        return _percentage(self.failed_calls, self.total_calls)

    @property
    def rejection_rate(self) -> float:
        return _percentage(self.rejected_calls, self.total_calls)

    def to_dict(self) -> dict[str, object]:
        return {
            "total_calls": self.total_calls,
            "successful_calls": self.successful_calls,
            "failed_calls": self.failed_calls,
            "rejected_calls": self.rejected_calls,
            "fallback_calls": self.fallback_calls,
            "state_transitions": self.state_transitions,
            "success_rate": self.success_rate,
            "failure_rate": self.failure_rate,
            "rejection_rate": self.rejection_rate,
            "last_success_time": self.last_success_time,
            "last_failure_time": self.last_failure_time,
            "last_state_change_time": self.last_state_change_time,
        }


class MetricsListener:
    """Listener aggregating ``CircuitMetrics`` per service key."""

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = SystemClock() if clock is None else clock
        self._metrics: dict[str, CircuitMetrics] = {}

    def metrics_for(self, service_key: str) -> CircuitMetrics:
        """Return the live metrics for ``service_key``, creating empty ones."""
        return self._metrics.setdefault(service_key, CircuitMetrics())

    def all(self) -> dict[str, CircuitMetrics]:
        return dict(self._metrics)

    def reset(self, service_key: str | None = None) -> None:
        if service_key is None:
            self._metrics.clear()
        else:
            self._metrics.pop(service_key, None)

    async def on_state_change(
        self, old: BreakerState, new: BreakerState, snapshot: CircuitState
    ) -> None:
        metrics = self.metrics_for(snapshot.service_key)
        metrics.state_transitions += 1
        metrics.last_state_change_time = self._clock.now()

    async def on_call_rejected(
        self, snapshot: CircuitState, retry_after: float
    ) -> None:
        metrics = self.metrics_for(snapshot.service_key)
        metrics.total_calls += 1
        metrics.rejected_calls += 1

    async def on_call_succeeded(self, snapshot: CircuitState, elapsed: float) -> None:
        metrics = self.metrics_for(snapshot.service_key)
        metrics.total_calls += 1
        metrics.successful_calls += 1
        metrics.last_success_time = self._clock.now()

    async def on_call_failed(
        self, snapshot: CircuitState, exc: Exception, elapsed: float
    ) -> None:
        metrics = self.metrics_for(snapshot.service_key)
        metrics.total_calls += 1
        metrics.failed_calls += 1
        metrics.last_failure_time = self._clock.now()

    async def on_fallback_executed(
        self, snapshot: CircuitState, exc: Exception
    ) -> None:
        self.metrics_for(snapshot.service_key).fallback_calls += 1
