"""Circuit state (de)serialization."""

from typing import Protocol

from pydantic import BaseModel, ConfigDict, NonNegativeInt, ValidationError

from durable_breaker.state import BreakerState, CircuitState
from durable_breaker.storage.exceptions import StorageDecodeError


class StorageSerializer(Protocol):
    """Convert ``CircuitState`` values to and from bytes."""

    def serialize(self, state: CircuitState) -> bytes:
        """Encode ``state``. The service key is not part of the payload."""

    def deserialize(self, service_key: str, data: bytes) -> CircuitState:
        """Decode ``data`` stored for ``service_key``.

        Raises:
            StorageDecodeError: If ``data`` is malformed.
        """


class _CircuitStatePayload(BaseModel):
    """Wire shape of a persisted circuit state.

    ``last_failure_time == 0`` encodes "no failure recorded".
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    state: BreakerState = BreakerState.CLOSED
    failure_count: NonNegativeInt = 0
    success_count: NonNegativeInt = 0
    last_failure_time: NonNegativeInt = 0


class JsonStorageSerializer:
    """JSON serializer for circuit state."""

    def serialize(self, state: CircuitState) -> bytes:
        payload = _CircuitStatePayload(
            state=state.state,
            failure_count=state.failure_count,
            success_count=state.success_count,
            last_failure_time=state.last_failure_time or 0,
        )
        return payload.model_dump_json().encode("utf-8")

    def deserialize(self, service_key: str, data: bytes) -> CircuitState:
        try:
            payload = _CircuitStatePayload.model_validate_json(data)
        except ValidationError as error:
            raise StorageDecodeError(
                f"failed to decode circuit state for '{service_key}': "
                f"{error.error_count()} validation error(s)",
                path=service_key,
            ) from error
        return CircuitState(
            service_key=service_key,
            state=payload.state,
            failure_count=payload.failure_count,
            success_count=payload.success_count,
            last_failure_time=payload.last_failure_time or None,
        )
