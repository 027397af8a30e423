"""Domain-level persistence for circuit state."""

import hashlib
from abc import ABC, abstractmethod

from durable_breaker.state import CircuitState
from durable_breaker.storage.base import StorageAdapter
from durable_breaker.storage.serializer import JsonStorageSerializer, StorageSerializer

STORAGE_KEY_PREFIX = "cb_"


def storage_key(service_key: str) -> str:
    """Map a service key to a collision-resistant, filesystem-safe storage key."""
    digest = hashlib.sha256(service_key.encode("utf-8")).hexdigest()
    return f"{STORAGE_KEY_PREFIX}{digest}"


class CircuitStateRepository(ABC):
    """Abstract circuit state repository."""

    @abstractmethod
    async def find(self, service_key: str) -> CircuitState | None:
        """Return the persisted state for ``service_key``, if any."""

    @abstractmethod
    async def save(self, state: CircuitState) -> None:
        """Persist ``state`` under its service key."""

    @abstractmethod
    async def delete(self, service_key: str) -> None:
        """Remove the persisted state for ``service_key``."""

    @abstractmethod
    async def exists(self, service_key: str) -> bool:
        """Return whether state is persisted for ``service_key``."""


class DefaultCircuitStateRepository(CircuitStateRepository):
    """Repository backed by a ``StorageAdapter`` and a ``StorageSerializer``."""

    def __init__(
        self,
        adapter: StorageAdapter,
        serializer: StorageSerializer | None = None,
        *,
        ttl: float | None = None,
    ) -> None:
        """Build a repository.

        Args:
            adapter: Raw storage backend; may be decorated or a fallback chain.
            serializer: State encoder. Defaults to ``JsonStorageSerializer``.
            ttl: Optional expiry, in seconds, applied to every saved state.
        """
        self._adapter = adapter
        self._serializer = JsonStorageSerializer() if serializer is None else serializer
        self._ttl = ttl

    @property
    def adapter(self) -> StorageAdapter:
        return self._adapter

    async def find(self, service_key: str) -> CircuitState | None:
        data = await self._adapter.read(storage_key(service_key))
        if data is None:
            return None
        return self._serializer.deserialize(service_key, data)

    async def save(self, state: CircuitState) -> None:
        data = self._serializer.serialize(state)
        await self._adapter.write(storage_key(state.service_key), data, self._ttl)

    async def delete(self, service_key: str) -> None:
        await self._adapter.delete(storage_key(service_key))

    async def exists(self, service_key: str) -> bool:
        return await self._adapter.exists(storage_key(service_key))
