import pytest

from durable_breaker.storage.decorators import LoggingStorageDecorator
from durable_breaker.storage.memory import InMemoryStorageAdapter
from tests.durable_breaker.support.fakes import FakeLogger, FlakyAdapter

pytestmark = pytest.mark.asyncio


async def test_successful_operations_log_outcome_facts(
    fake_logger: FakeLogger,
) -> None:
    decorator = LoggingStorageDecorator(InMemoryStorageAdapter(), fake_logger)

    await decorator.write("k", b"value", ttl=5)
    await decorator.read("k")
    await decorator.read("missing")
    await decorator.exists("k")

    assert [(level, event) for level, event, _ in fake_logger.calls] == [
        ("debug", "storage.write.succeeded"),
        ("debug", "storage.read.succeeded"),
        ("debug", "storage.read.succeeded"),
        ("debug", "storage.exists.succeeded"),
    ]
    write_fields = fake_logger.calls[0][2]
    assert write_fields["key"] == "k"
    assert write_fields["adapter"] == "memory"
    assert write_fields["value_length"] == 5
    assert write_fields["ttl"] == 5
    assert isinstance(write_fields["duration_ms"], float)
    assert fake_logger.calls[1][2]["found"] is True
    assert fake_logger.calls[2][2]["found"] is False
    assert fake_logger.calls[3][2]["exists"] is True


async def test_failures_are_logged_and_reraised(fake_logger: FakeLogger) -> None:
    inner = FlakyAdapter("disk")
    inner.broken = True
    decorator = LoggingStorageDecorator(inner, fake_logger, error_level="warning")

    with pytest.raises(RuntimeError, match="disk unavailable"):
        await decorator.delete("k")

    level, event, fields = fake_logger.calls[0]
    assert (level, event) == ("warning", "storage.delete.failed")
    assert fields["error"] == "disk unavailable"
    assert fields["error_type"] == "RuntimeError"
    assert fields["key"] == "k"


async def test_clear_logs_without_key(fake_logger: FakeLogger) -> None:
    decorator = LoggingStorageDecorator(
        InMemoryStorageAdapter(), fake_logger, success_level="info"
    )

    await decorator.clear()

    level, event, fields = fake_logger.calls[0]
    assert (level, event) == ("info", "storage.clear.succeeded")
    assert "key" not in fields


async def test_unknown_level_is_rejected(fake_logger: FakeLogger) -> None:
    with pytest.raises(ValueError):
        LoggingStorageDecorator(
            InMemoryStorageAdapter(), fake_logger, success_level="loud"
        )


async def test_name_and_root_adapter(fake_logger: FakeLogger) -> None:
    inner = InMemoryStorageAdapter()
    decorator = LoggingStorageDecorator(inner, fake_logger)

    assert decorator.name == "logging(memory)"
    assert decorator.inner_adapter is inner
    assert decorator.root_adapter is inner
