"""Raw key/value storage interface.

Adapters know nothing about circuit semantics. They persist opaque byte strings
under keys supplied by ``CircuitStateRepository`` (already hashed), optionally
with a time-to-live.
"""

from abc import ABC, abstractmethod


class StorageAdapter(ABC):
    """Abstract storage adapter interface.

    Every operation may raise a ``StorageError`` subtype. ``write``, ``delete``
    and ``clear`` must be safe to call redundantly.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Adapter identifier used in logs and metrics (e.g. ``"file"``)."""

    @abstractmethod
    async def read(self, key: str) -> bytes | None:
        """Return the stored bytes for ``key``, or ``None`` if absent."""

    @abstractmethod
    async def write(self, key: str, value: bytes, ttl: float | None = None) -> None:
        """Store ``value`` under ``key``, expiring after ``ttl`` seconds if set."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return whether a live value is stored under ``key``."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every value managed by this adapter."""
