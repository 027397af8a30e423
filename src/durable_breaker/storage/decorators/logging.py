"""Structured logging around storage operations."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from durable_breaker.logging import Logger, log_at, normalize_log_level
from durable_breaker.storage.base import StorageAdapter
from durable_breaker.storage.decorators.base import StorageAdapterDecorator

T = TypeVar("T")


def _elapsed_ms(start: float) -> float:
    return round(max(time.monotonic() - start, 0.0) * 1000, 2)


class LoggingStorageDecorator(StorageAdapterDecorator):
    """Log every storage operation with its duration and outcome.

    Failures are logged at ``error_level`` and re-raised unchanged.
    """

    def __init__(
        self,
        adapter: StorageAdapter,
        logger: Logger | None = None,
        *,
        success_level: str = "debug",
        error_level: str = "error",
    ) -> None:
        """Wrap ``adapter`` with logging.

        Args:
            adapter: Adapter to decorate.
            logger: structlog or stdlib logger. Defaults to this module's
                structlog logger.
            success_level: Severity name for successful operations.
            error_level: Severity name for failed operations.

        Raises:
            ValueError: If either level is not a known severity name.
        """
        super().__init__(adapter)
        self._logger: Logger = (
            structlog.get_logger(__name__) if logger is None else logger
        )
        self._success_level = normalize_log_level(success_level)
        self._error_level = normalize_log_level(error_level)

    @property
    def name(self) -> str:
        return f"logging({self._adapter.name})"

    async def _logged(
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
        describe: Callable[[T], dict[str, object]],
        **fields: object,
    ) -> T:
        start = time.monotonic()
        try:
            result = await call()
        except Exception as error:
            log_at(
                self._logger,
                self._error_level,
                f"storage.{operation}.failed",
                adapter=self._adapter.name,
                error=str(error),
                error_type=type(error).__name__,
                duration_ms=_elapsed_ms(start),
                **fields,
            )
            raise
        log_at(
            self._logger,
            self._success_level,
            f"storage.{operation}.succeeded",
            adapter=self._adapter.name,
            duration_ms=_elapsed_ms(start),
            **fields,
            **describe(result),
        )
        return result

    async def read(self, key: str) -> bytes | None:
        return await self._logged(
            "read",
            lambda: self._adapter.read(key),
            lambda value: {"found": value is not None},
            key=key,
        )

    async def write(self, key: str, value: bytes, ttl: float | None = None) -> None:
        await self._logged(
            "write",
            lambda: self._adapter.write(key, value, ttl),
            lambda _: {"value_length": len(value), "ttl": ttl},
            key=key,
        )

    async def exists(self, key: str) -> bool:
        return await self._logged(
            "exists",
            lambda: self._adapter.exists(key),
            lambda found: {"exists": found},
            key=key,
        )

    async def delete(self, key: str) -> None:
        await self._logged(
            "delete",
            lambda: self._adapter.delete(key),
            lambda _: {},
            key=key,
        )

    async def clear(self) -> None:
        await self._logged("clear", self._adapter.clear, lambda _: {})
