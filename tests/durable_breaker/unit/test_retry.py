from __future__ import annotations

from types import SimpleNamespace
from typing import cast

import pytest
from tenacity import AsyncRetrying, RetryCallState
from tenacity.retry import retry_if_exception_type

from durable_breaker.retry import (
    ExponentialBackoffWait,
    RetryBackoffPolicy,
    build_backoff_retrying,
)

pytestmark = pytest.mark.asyncio


def _state(attempt_number: int) -> RetryCallState:
    return cast(RetryCallState, SimpleNamespace(attempt_number=attempt_number))


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"max_attempts": 0}, "max_attempts must be >= 1"),
        ({"initial_delay_ms": -1}, "initial_delay_ms must be >= 0"),
        ({"multiplier": 0.5}, "multiplier must be >= 1.0"),
    ],
)
async def test_retry_backoff_policy_validation(
    overrides: dict[str, float],
    message: str,
) -> None:
    with pytest.raises(ValueError, match=message):
        RetryBackoffPolicy(**overrides)  # type: ignore[arg-type]


async def test_delay_for_attempt_grows_exponentially() -> None:
    policy = RetryBackoffPolicy(initial_delay_ms=100, multiplier=3.0)

    assert policy.delay_for_attempt(1) == pytest.approx(0.1)
    assert policy.delay_for_attempt(2) == pytest.approx(0.3)
    assert policy.delay_for_attempt(3) == pytest.approx(0.9)
    with pytest.raises(ValueError):
        policy.delay_for_attempt(0)


async def test_wait_applies_bounded_jitter() -> None:
    policy = RetryBackoffPolicy(initial_delay_ms=200, multiplier=2.0, jitter=True)
    highest = ExponentialBackoffWait(policy, uniform=lambda low, high: high)
    lowest = ExponentialBackoffWait(policy, uniform=lambda low, high: low)

    assert highest(_state(2)) == pytest.approx(0.5)
    assert lowest(_state(2)) == pytest.approx(0.3)


async def test_wait_without_jitter_is_exact() -> None:
    policy = RetryBackoffPolicy(initial_delay_ms=50, jitter=False)

    assert ExponentialBackoffWait(policy)(_state(3)) == pytest.approx(0.2)


async def test_build_retrying_without_optional_hooks() -> None:
    retrying = build_backoff_retrying(policy=RetryBackoffPolicy(max_attempts=2))

    assert isinstance(retrying, AsyncRetrying)


async def test_build_retrying_reraises_last_error_after_hooks() -> None:
    before_sleep_calls: list[int] = []
    sleep_calls: list[float] = []

    def _before_sleep(state: RetryCallState) -> None:
        before_sleep_calls.append(state.attempt_number)

    async def _sleep(delay: float) -> None:
        sleep_calls.append(delay)

    retrying = build_backoff_retrying(
        policy=RetryBackoffPolicy(max_attempts=3, initial_delay_ms=10, jitter=False),
        sleep=_sleep,
        before_sleep=_before_sleep,
    )

    attempts = 0
    with pytest.raises(ValueError, match="boom 3"):
        async for attempt in retrying:
            with attempt:
                attempts += 1
                raise ValueError(f"boom {attempts}")

    assert attempts == 3
    assert before_sleep_calls == [1, 2]
    assert sleep_calls == pytest.approx([0.01, 0.02])


async def test_build_retrying_honours_custom_retry_predicate() -> None:
    async def _sleep(delay: float) -> None:
        return None

    retrying = build_backoff_retrying(
        policy=RetryBackoffPolicy(max_attempts=5),
        retry=retry_if_exception_type(ValueError),
        sleep=_sleep,
    )

    attempts = 0
    with pytest.raises(KeyError):
        async for attempt in retrying:
            with attempt:
                attempts += 1
                raise KeyError("not retried")

    assert attempts == 1
