"""In-process storage adapters."""

import threading
from dataclasses import dataclass

from durable_breaker.clock import Clock, SystemClock
from durable_breaker.storage.base import StorageAdapter


@dataclass(frozen=True, slots=True)
class _Entry:
    value: bytes
    expires_at: float | None


class InMemoryStorageAdapter(StorageAdapter):
    """Process-local storage with TTL support.

    Data is lost when the process exits. Suitable for tests, short-lived
    processes and as the last link of a fallback chain.
    """

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = SystemClock() if clock is None else clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "memory"

    def _is_expired(self, entry: _Entry) -> bool:
        return entry.expires_at is not None and self._clock.now() >= entry.expires_at

    def _live_entry(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            del self._entries[key]
            return None
        return entry

    async def read(self, key: str) -> bytes | None:
        with self._lock:
            entry = self._live_entry(key)
            return None if entry is None else entry.value

    async def write(self, key: str, value: bytes, ttl: float | None = None) -> None:
        expires_at = None if ttl is None else self._clock.now() + ttl
        with self._lock:
            self._entries[key] = _Entry(value=bytes(value), expires_at=expires_at)

    async def exists(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    async def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def cleanup_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            expired = [
                key for key, entry in self._entries.items() if self._is_expired(entry)
            ]
            for key in expired:
                del self._entries[key]
            return len(expired)


class NullStorageAdapter(StorageAdapter):
    """No-op adapter: never fails, never remembers anything."""

    @property
    def name(self) -> str:
        return "null"

    async def read(self, key: str) -> bytes | None:
        return None

    async def write(self, key: str, value: bytes, ttl: float | None = None) -> None:
        return None

    async def exists(self, key: str) -> bool:
        return False

    async def delete(self, key: str) -> None:
        return None

    async def clear(self) -> None:
        return None
