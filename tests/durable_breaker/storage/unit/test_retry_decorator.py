import pytest

from durable_breaker.retry import RetryBackoffPolicy
from durable_breaker.storage.decorators import RetryStorageDecorator
from tests.durable_breaker.support.fakes import FakeLogger, FlakyAdapter

pytestmark = pytest.mark.asyncio


class _RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def _decorator(
    inner: FlakyAdapter,
    sleep: _RecordingSleep,
    logger: FakeLogger,
    max_attempts: int = 3,
) -> RetryStorageDecorator:
    policy = RetryBackoffPolicy(
        max_attempts=max_attempts,
        initial_delay_ms=100,
        multiplier=2.0,
        jitter=False,
    )
    return RetryStorageDecorator(inner, policy, sleep=sleep, logger=logger)


async def test_transient_failures_are_retried_with_backoff(
    flaky_adapter: FlakyAdapter,
    fake_logger: FakeLogger,
) -> None:
    sleep = _RecordingSleep()
    decorator = _decorator(flaky_adapter, sleep, fake_logger)
    flaky_adapter.fail_next(2)

    await decorator.write("k", b"v")

    assert flaky_adapter.calls == ["write", "write", "write"]
    assert sleep.delays == pytest.approx([0.1, 0.2])
    assert await flaky_adapter.read("k") == b"v"
    retries = fake_logger.find("storage.retry.scheduled")
    assert [fields["attempt"] for _, fields in retries] == [1, 2]
    assert retries[0][1]["operation"] == "write"
    assert retries[0][1]["error_type"] == "RuntimeError"


async def test_exhausted_retries_reraise_last_error(
    flaky_adapter: FlakyAdapter,
    fake_logger: FakeLogger,
) -> None:
    sleep = _RecordingSleep()
    decorator = _decorator(flaky_adapter, sleep, fake_logger)
    flaky_adapter.broken = True

    with pytest.raises(RuntimeError, match="flaky unavailable"):
        await decorator.read("k")

    assert flaky_adapter.calls == ["read", "read", "read"]
    assert len(sleep.delays) == 2


async def test_single_attempt_policy_does_not_retry(
    flaky_adapter: FlakyAdapter,
    fake_logger: FakeLogger,
) -> None:
    sleep = _RecordingSleep()
    decorator = _decorator(flaky_adapter, sleep, fake_logger, max_attempts=1)
    flaky_adapter.fail_next(1)

    with pytest.raises(RuntimeError):
        await decorator.exists("k")

    assert sleep.delays == []
    assert await decorator.exists("k") is False


async def test_results_pass_through(
    flaky_adapter: FlakyAdapter,
    fake_logger: FakeLogger,
) -> None:
    decorator = _decorator(flaky_adapter, _RecordingSleep(), fake_logger)
    await flaky_adapter.write("k", b"v")
    flaky_adapter.fail_next(1)

    assert await decorator.read("k") == b"v"
    await decorator.delete("k")
    await decorator.clear()
    assert decorator.name == "retry(flaky)"
    assert decorator.policy.max_attempts == 3
