import json

import pytest

from durable_breaker.state import BreakerState, CircuitState
from durable_breaker.storage.exceptions import (
    StorageDecodeError,
    StorageErrorReason,
    StorageReadError,
)
from durable_breaker.storage.serializer import JsonStorageSerializer

SERIALIZER = JsonStorageSerializer()


def test_serialize_uses_wire_names_and_zero_for_no_failure() -> None:
    data = SERIALIZER.serialize(
        CircuitState("svc", BreakerState.HALF_OPEN, failure_count=2, success_count=1)
    )

    assert json.loads(data) == {
        "state": "half-open",
        "failure_count": 2,
        "success_count": 1,
        "last_failure_time": 0,
    }


def test_deserialize_maps_zero_failure_time_to_none() -> None:
    state = SERIALIZER.deserialize(
        "svc",
        b'{"state": "open", "failure_count": 5, "success_count": 0, '
        b'"last_failure_time": 0}',
    )

    assert state == CircuitState("svc", BreakerState.OPEN, failure_count=5)


def test_missing_fields_decode_to_defaults_and_extras_are_ignored() -> None:
    state = SERIALIZER.deserialize("svc", b'{"failure_count": 1, "extra": true}')

    assert state == CircuitState("svc", failure_count=1)


@pytest.mark.parametrize(
    "data",
    [
        b"not json",
        b"[]",
        b'{"state": "sideways"}',
        b'{"failure_count": -1}',
        b'{"success_count": "many"}',
    ],
)
def test_malformed_payloads_raise_decode_error(data: bytes) -> None:
    with pytest.raises(StorageDecodeError) as exc_info:
        SERIALIZER.deserialize("svc", data)

    assert isinstance(exc_info.value, StorageReadError)
    assert exc_info.value.reason is StorageErrorReason.CORRUPTED_DATA
    assert "svc" in str(exc_info.value)
