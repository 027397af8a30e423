from __future__ import annotations

import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)
from tenacity.retry import retry_base
from tenacity.wait import wait_base

JITTER_RATIO = 0.25


@dataclass(frozen=True)
class RetryBackoffPolicy:
    """Configuration for retry attempt count and exponential backoff."""

    max_attempts: int = 3
    initial_delay_ms: float = 100.0
    multiplier: float = 2.0
    jitter: bool = True

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.initial_delay_ms < 0:
            raise ValueError("initial_delay_ms must be >= 0")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")

    def delay_for_attempt(self, attempt: int) -> float:
        """Return the un-jittered delay in seconds after failed ``attempt``."""
        if attempt < 1:
            raise ValueError("attempt must be >= 1")
        return (self.initial_delay_ms * self.multiplier ** (attempt - 1)) / 1000.0


class ExponentialBackoffWait(wait_base):
    """Tenacity wait strategy following ``RetryBackoffPolicy`` semantics."""

    def __init__(
        self,
        policy: RetryBackoffPolicy,
        *,
        uniform: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self._policy = policy
        self._uniform = uniform

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self._policy.delay_for_attempt(max(retry_state.attempt_number, 1))
        if self._policy.jitter and delay > 0:
            spread = delay * JITTER_RATIO
            delay += self._uniform(-spread, spread)
        return max(delay, 0.0)


def build_backoff_retrying(
    *,
    policy: RetryBackoffPolicy,
    retry: retry_base | None = None,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    before_sleep: Callable[[RetryCallState], None] | None = None,
) -> AsyncRetrying:
    """Build an ``AsyncRetrying`` that re-raises the last failure verbatim."""
    options: dict[str, Any] = {}
    if sleep is not None:
        options["sleep"] = sleep
    if before_sleep is not None:
        options["before_sleep"] = before_sleep
    return AsyncRetrying(
        retry=retry_if_exception_type(Exception) if retry is None else retry,
        wait=ExponentialBackoffWait(policy),
        stop=stop_after_attempt(policy.max_attempts),
        reraise=True,
        **options,
    )
