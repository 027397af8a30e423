"""Operation metrics around storage adapters."""

from __future__ import annotations

import threading
import time
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from durable_breaker.storage.base import StorageAdapter
from durable_breaker.storage.decorators.base import StorageAdapterDecorator


class StorageMetricsCollector(Protocol):
    """Sink for storage operation metrics (Prometheus, StatsD, in-memory...)."""

    def record_operation(
        self,
        operation: str,
        adapter: str,
        duration_ms: float,
        success: bool,
        tags: Mapping[str, object],
    ) -> None:
        """Record one completed storage operation."""

    def increment(
        self,
        metric: str,
        value: int = 1,
        tags: Mapping[str, object] | None = None,
    ) -> None:
        """Increment a named counter."""


@dataclass(frozen=True, slots=True)
class OperationRecord:
    """One storage operation as seen by ``InMemoryStorageMetricsCollector``."""

    operation: str
    adapter: str
    duration_ms: float
    success: bool
    tags: Mapping[str, object] = field(default_factory=dict)


class InMemoryStorageMetricsCollector:
    """Collector keeping records in memory, for tests and introspection."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[OperationRecord] = []
        self._counters: Counter[str] = Counter()

    @property
    def records(self) -> tuple[OperationRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def counter(self, metric: str) -> int:
        with self._lock:
            return self._counters[metric]

    def record_operation(
        self,
        operation: str,
        adapter: str,
        duration_ms: float,
        success: bool,
        tags: Mapping[str, object],
    ) -> None:
        record = OperationRecord(
            operation=operation,
            adapter=adapter,
            duration_ms=duration_ms,
            success=success,
            tags=dict(tags),
        )
        with self._lock:
            self._records.append(record)
            self._counters[f"storage.{operation}.total"] += 1
            if not success:
                self._counters[f"storage.{operation}.errors"] += 1

    def increment(
        self,
        metric: str,
        value: int = 1,
        tags: Mapping[str, object] | None = None,
    ) -> None:
        del tags
        with self._lock:
            self._counters[metric] += value

    def reset(self) -> None:
        with self._lock:
            self._records.clear()
            self._counters.clear()


class MetricsStorageDecorator(StorageAdapterDecorator):
    """Report every storage operation to a ``StorageMetricsCollector``.

    Metrics are recorded in a ``finally`` block, so failed operations are
    reported too; the original exception still propagates.
    """

    def __init__(
        self,
        adapter: StorageAdapter,
        collector: StorageMetricsCollector,
    ) -> None:
        super().__init__(adapter)
        self._collector = collector

    @property
    def name(self) -> str:
        return f"metrics({self._adapter.name})"

    def _record(
        self,
        operation: str,
        start: float,
        success: bool,
        tags: Mapping[str, object] | None = None,
    ) -> None:
        self._collector.record_operation(
            operation=operation,
            adapter=self._adapter.name,
            duration_ms=max(time.monotonic() - start, 0.0) * 1000,
            success=success,
            tags={} if tags is None else tags,
        )

    async def read(self, key: str) -> bytes | None:
        start = time.monotonic()
        success = False
        tags: dict[str, object] = {}
        try:
            result = await self._adapter.read(key)
            success = True
            tags["found"] = result is not None
            return result
        finally:
            self._record("read", start, success, tags)

    async def write(self, key: str, value: bytes, ttl: float | None = None) -> None:
        start = time.monotonic()
        success = False
        try:
            await self._adapter.write(key, value, ttl)
            success = True
        finally:
            self._record(
                "write",
                start,
                success,
                {"value_size": len(value), "has_ttl": ttl is not None},
            )

    async def exists(self, key: str) -> bool:
        start = time.monotonic()
        success = False
        try:
            result = await self._adapter.exists(key)
            success = True
            return result
        finally:
            self._record("exists", start, success)

    async def delete(self, key: str) -> None:
        start = time.monotonic()
        success = False
        try:
            await self._adapter.delete(key)
            success = True
        finally:
            self._record("delete", start, success)

    async def clear(self) -> None:
        start = time.monotonic()
        success = False
        try:
            await self._adapter.clear()
            success = True
        finally:
            self._record("clear", start, success)
