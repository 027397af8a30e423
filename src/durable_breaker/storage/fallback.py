"""Priority chain of storage adapters for high availability.

Reads return the first adapter's answer (a genuine miss included) and only fall
through on errors. Writes, deletes and clears are broadcast to every adapter
and succeed when at least one adapter succeeds. Writes are not transactional:
adapters are written independently, in priority order.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence

import structlog

from durable_breaker.logging import Logger, log_warning
from durable_breaker.storage.base import StorageAdapter
from durable_breaker.storage.exceptions import StorageAggregateError


class FallbackStorageAdapter(StorageAdapter):
    """Compose adapters into a first-success-read, broadcast-write chain."""

    def __init__(
        self,
        adapters: Sequence[StorageAdapter],
        logger: Logger | None = None,
    ) -> None:
        """Build a fallback chain.

        Args:
            adapters: Adapters in priority order, highest first.
            logger: Logger receiving ``storage.fallback.adapter_failed`` events.

        Raises:
            ValueError: If ``adapters`` is empty.
        """
        if not adapters:
            raise ValueError("at least one storage adapter is required")
        self._adapters = tuple(adapters)
        self._logger: Logger = (
            structlog.get_logger(__name__) if logger is None else logger
        )

    @property
    def name(self) -> str:
        names = ",".join(adapter.name for adapter in self._adapters)
        return f"fallback({names})"

    @property
    def adapters(self) -> tuple[StorageAdapter, ...]:
        return self._adapters

    def _log_failure(
        self,
        operation: str,
        index: int,
        adapter: StorageAdapter,
        error: Exception,
    ) -> None:
        log_warning(
            self._logger,
            "storage.fallback.adapter_failed",
            operation=operation,
            index=index,
            adapter=adapter.name,
            error=str(error),
            error_type=type(error).__name__,
        )

    async def read(self, key: str) -> bytes | None:
        failures: list[tuple[str, Exception]] = []
        for index, adapter in enumerate(self._adapters):
            try:
                return await adapter.read(key)
            except Exception as error:
                self._log_failure("read", index, adapter, error)
                failures.append((adapter.name, error))
        raise StorageAggregateError("read", failures) from failures[-1][1]

    async def exists(self, key: str) -> bool:
        failures: list[tuple[str, Exception]] = []
        for index, adapter in enumerate(self._adapters):
            try:
                if await adapter.exists(key):
                    return True
            except Exception as error:
                self._log_failure("exists", index, adapter, error)
                failures.append((adapter.name, error))
        if len(failures) == len(self._adapters):
            raise StorageAggregateError("exists", failures) from failures[-1][1]
        return False

    async def _broadcast(
        self,
        operation: str,
        call: Callable[[StorageAdapter], Awaitable[None]],
    ) -> None:
        failures: list[tuple[str, Exception]] = []
        for index, adapter in enumerate(self._adapters):
            try:
                await call(adapter)
            except Exception as error:
                self._log_failure(operation, index, adapter, error)
                failures.append((adapter.name, error))
        if len(failures) == len(self._adapters):
            raise StorageAggregateError(operation, failures) from failures[-1][1]

    async def write(self, key: str, value: bytes, ttl: float | None = None) -> None:
        await self._broadcast("write", lambda adapter: adapter.write(key, value, ttl))

    async def delete(self, key: str) -> None:
        await self._broadcast("delete", lambda adapter: adapter.delete(key))

    async def clear(self) -> None:
        await self._broadcast("clear", lambda adapter: adapter.clear())
