"""Circuit breaker state primitives."""

from dataclasses import dataclass, replace
from enum import StrEnum


class BreakerState(StrEnum):
    """Circuit breaker state values, using their persisted wire names."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


@dataclass(frozen=True, slots=True)
class CircuitState:
    """Point-in-time view of one breaker, as persisted and reported.

    Attributes:
        service_key: Stable identity of the protected service.
        state: Current breaker state.
        failure_count: Failures counted since the last reset.
        success_count: Successful probes while ``HALF_OPEN``.
        last_failure_time: Epoch seconds of the last counted failure, if any.
    """

    service_key: str
    state: BreakerState = BreakerState.CLOSED
    failure_count: int = 0
    success_count: int = 0
    last_failure_time: int | None = None

    def __post_init__(self) -> None:
        if self.failure_count < 0:
            raise ValueError("failure_count must be >= 0")
        if self.success_count < 0:
            raise ValueError("success_count must be >= 0")

    @classmethod
    def initial(cls, service_key: str) -> "CircuitState":
        """Return the healthy ``CLOSED`` state for a never-seen service."""
        return cls(service_key=service_key)

    def with_failure_count(self, failure_count: int) -> "CircuitState":
        return replace(self, failure_count=failure_count)

    def with_success_count(self, success_count: int) -> "CircuitState":
        return replace(self, success_count=success_count)
