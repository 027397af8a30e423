"""Exponential-backoff retries around storage operations."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from tenacity import RetryCallState

from durable_breaker.logging import Logger, log_warning
from durable_breaker.retry import RetryBackoffPolicy, build_backoff_retrying
from durable_breaker.storage.base import StorageAdapter
from durable_breaker.storage.decorators.base import StorageAdapterDecorator

T = TypeVar("T")


class RetryStorageDecorator(StorageAdapterDecorator):
    """Retry failed storage operations with exponential backoff.

    The delay after attempt ``n`` is ``initial_delay_ms * multiplier ** (n - 1)``,
    optionally jittered by +/-25%. No sleep follows the final attempt, and the
    final attempt's exception propagates unchanged.
    """

    def __init__(
        self,
        adapter: StorageAdapter,
        policy: RetryBackoffPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Wrap ``adapter`` with retries.

        Args:
            adapter: Adapter to decorate.
            policy: Attempt count and backoff. Defaults to
                ``RetryBackoffPolicy()``.
            sleep: Awaitable sleep used between attempts; ``asyncio.sleep``
                semantics by default.
            logger: Logger receiving ``storage.retry.scheduled`` events.
        """
        super().__init__(adapter)
        self._policy = RetryBackoffPolicy() if policy is None else policy
        self._sleep = sleep
        self._logger: Logger = (
            structlog.get_logger(__name__) if logger is None else logger
        )

    @property
    def name(self) -> str:
        return f"retry({self._adapter.name})"

    @property
    def policy(self) -> RetryBackoffPolicy:
        return self._policy

    def _before_sleep(self, operation: str) -> Callable[[RetryCallState], None]:
        def _log_retry(state: RetryCallState) -> None:
            error = state.outcome.exception() if state.outcome is not None else None
            delay = state.next_action.sleep if state.next_action is not None else 0.0
            log_warning(
                self._logger,
                "storage.retry.scheduled",
                adapter=self._adapter.name,
                operation=operation,
                attempt=state.attempt_number,
                max_attempts=self._policy.max_attempts,
                delay_seconds=round(delay, 4),
                error_type=type(error).__name__ if error is not None else None,
            )

        return _log_retry

    async def _retry(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        retrying = build_backoff_retrying(
            policy=self._policy,
            sleep=self._sleep,
            before_sleep=self._before_sleep(operation),
        )
        async for attempt in retrying:
            with attempt:
                result = await call()
        return result

    async def read(self, key: str) -> bytes | None:
        return await self._retry("read", lambda: self._adapter.read(key))

    async def write(self, key: str, value: bytes, ttl: float | None = None) -> None:
        await self._retry("write", lambda: self._adapter.write(key, value, ttl))

    async def exists(self, key: str) -> bool:
        return await self._retry("exists", lambda: self._adapter.exists(key))

    async def delete(self, key: str) -> None:
        await self._retry("delete", lambda: self._adapter.delete(key))

    async def clear(self) -> None:
        await self._retry("clear", self._adapter.clear)
