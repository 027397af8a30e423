"""Framework-agnostic async circuit breaker with durable state.

Key behavior notes:
  - Every state change is written through a ``CircuitStateRepository`` before
    the call returns, so a restarted process resumes where it stopped.
  - ``HALF_OPEN`` is persisted like any other state. Probe calls are not
    limited to one at a time; each outcome is recorded under the breaker lock.
  - Excluded exceptions propagate without touching counters or storage.
  - Listener failures are logged and never change a call's outcome.
"""

from durable_breaker.circuit_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from durable_breaker.circuit_breaker.exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
)
from durable_breaker.circuit_breaker.health import HealthReport, HealthStatus
from durable_breaker.circuit_breaker.listeners import LoggingBreakerListener
from durable_breaker.circuit_breaker.metrics import (
    BreakerListener,
    CircuitMetrics,
    MetricsListener,
)
from durable_breaker.circuit_breaker.registry import BreakerRegistry
from durable_breaker.circuit_breaker.states import (
    ClosedState,
    HalfOpenState,
    OpenState,
    handler_for,
)
from durable_breaker.state import BreakerState, CircuitState

__all__ = [
    "BreakerListener",
    "BreakerRegistry",
    "BreakerState",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitMetrics",
    "CircuitOpenError",
    "CircuitState",
    "ClosedState",
    "HalfOpenState",
    "HealthReport",
    "HealthStatus",
    "LoggingBreakerListener",
    "MetricsListener",
    "OpenState",
    "handler_for",
]
