"""Fluent composition of storage adapters and decorators."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING

from durable_breaker.logging import Logger
from durable_breaker.retry import RetryBackoffPolicy
from durable_breaker.storage.base import StorageAdapter
from durable_breaker.storage.decorators.logging import LoggingStorageDecorator
from durable_breaker.storage.decorators.metrics import (
    MetricsStorageDecorator,
    StorageMetricsCollector,
)
from durable_breaker.storage.decorators.retry import RetryStorageDecorator
from durable_breaker.storage.fallback import FallbackStorageAdapter
from durable_breaker.storage.file import FileStorageAdapter
from durable_breaker.storage.memory import InMemoryStorageAdapter
from durable_breaker.storage.repository import (
    CircuitStateRepository,
    DefaultCircuitStateRepository,
)
from durable_breaker.storage.serializer import StorageSerializer

if TYPE_CHECKING:
    from durable_breaker.settings import BreakerSettings

_Wrap = Callable[[StorageAdapter], StorageAdapter]


class StorageBuilder:
    """Wrap an adapter in decorators, in the order they are added.

    The first decorator added sits closest to the adapter, so
    ``StorageBuilder(a).with_retry().with_logging()`` logs each retried
    operation once, after retries are exhausted.
    """

    def __init__(self, adapter: StorageAdapter) -> None:
        self._adapter = adapter
        self._wraps: list[_Wrap] = []

    def with_logging(
        self,
        logger: Logger | None = None,
        *,
        success_level: str = "debug",
        error_level: str = "error",
    ) -> StorageBuilder:
        self._wraps.append(
            lambda adapter: LoggingStorageDecorator(
                adapter,
                logger,
                success_level=success_level,
                error_level=error_level,
            )
        )
        return self

    def with_metrics(self, collector: StorageMetricsCollector) -> StorageBuilder:
        self._wraps.append(lambda adapter: MetricsStorageDecorator(adapter, collector))
        return self

    def with_retry(
        self,
        policy: RetryBackoffPolicy | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] | None = None,
        logger: Logger | None = None,
    ) -> StorageBuilder:
        self._wraps.append(
            lambda adapter: RetryStorageDecorator(
                adapter, policy, sleep=sleep, logger=logger
            )
        )
        return self

    def build(self) -> StorageAdapter:
        adapter = self._adapter
        for wrap in self._wraps:
            adapter = wrap(adapter)
        return adapter

    def build_repository(
        self,
        serializer: StorageSerializer | None = None,
        *,
        ttl: float | None = None,
    ) -> CircuitStateRepository:
        return DefaultCircuitStateRepository(self.build(), serializer, ttl=ttl)

    @classmethod
    def from_settings(
        cls,
        settings: BreakerSettings,
        *,
        logger: Logger | None = None,
        collector: StorageMetricsCollector | None = None,
    ) -> StorageBuilder:
        """Build the standard stack described by ``settings``.

        With ``storage_dir`` set, the base adapter is a file adapter falling
        back to memory, wrapped in retry and then logging. Without it, the base
        is an in-memory adapter with logging only.
        """
        if settings.storage_dir is None:
            builder = cls(InMemoryStorageAdapter())
        else:
            primary = (
                StorageBuilder(
                    FileStorageAdapter(
                        settings.storage_dir,
                        temp_file_max_age=settings.temp_file_max_age_seconds,
                    )
                )
                .with_retry(settings.retry_policy(), logger=logger)
                .build()
            )
            builder = cls(
                FallbackStorageAdapter([primary, InMemoryStorageAdapter()], logger)
            )
        if collector is not None:
            builder.with_metrics(collector)
        return builder.with_logging(
            logger,
            success_level=settings.storage_success_log_level,
            error_level=settings.storage_error_log_level,
        )


def create_repository(
    directory: str | Path | None = None,
    *,
    logger: Logger | None = None,
    retry: RetryBackoffPolicy | None = None,
    ttl: float | None = None,
) -> CircuitStateRepository:
    """Shortcut for a logged repository over files, or memory without a directory."""
    if directory is None:
        builder = StorageBuilder(InMemoryStorageAdapter())
    else:
        builder = StorageBuilder(FileStorageAdapter(directory)).with_retry(
            retry, logger=logger
        )
    return builder.with_logging(logger).build_repository(ttl=ttl)
