"""Health reporting derived from breaker state."""

from dataclasses import dataclass
from enum import StrEnum

from durable_breaker.state import BreakerState, CircuitState


class HealthStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


def status_for(snapshot: CircuitState) -> HealthStatus:
    """Classify a snapshot: open is unhealthy, recovering or failing is degraded."""
    if snapshot.state is BreakerState.OPEN:
        return HealthStatus.UNHEALTHY
    if snapshot.state is BreakerState.HALF_OPEN:
        return HealthStatus.DEGRADED
    if snapshot.failure_count > 0:
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


@dataclass(frozen=True, slots=True)
class HealthReport:
    """Health of one protected service."""

    service_key: str
    status: HealthStatus
    state: BreakerState
    failure_count: int
    success_count: int
    last_failure_time: int | None
    failure_threshold: int
    success_threshold: int
    retry_after: float | None = None

    @property
    def is_healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, object]:
        return {
            "service_key": self.service_key,
            "status": self.status.value,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "last_failure_time": self.last_failure_time,
            "failure_threshold": self.failure_threshold,
            "success_threshold": self.success_threshold,
            "retry_after": self.retry_after,
        }
