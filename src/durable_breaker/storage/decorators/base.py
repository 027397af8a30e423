"""Base class for transparent storage adapter wrappers."""

from durable_breaker.storage.base import StorageAdapter


class StorageAdapterDecorator(StorageAdapter):
    """Delegate every operation to exactly one wrapped adapter.

    Subclasses override the operations they add behavior to. Chains are
    linear: each decorator owns its inner adapter exclusively.
    """

    def __init__(self, adapter: StorageAdapter) -> None:
        self._adapter = adapter

    @property
    def name(self) -> str:
        return self._adapter.name

    @property
    def inner_adapter(self) -> StorageAdapter:
        """Adapter wrapped directly by this decorator."""
        return self._adapter

    @property
    def root_adapter(self) -> StorageAdapter:
        """Innermost adapter, with every decorator layer unwrapped."""
        adapter = self._adapter
        while isinstance(adapter, StorageAdapterDecorator):
            adapter = adapter.inner_adapter
        return adapter

    async def read(self, key: str) -> bytes | None:
        return await self._adapter.read(key)

    async def write(self, key: str, value: bytes, ttl: float | None = None) -> None:
        await self._adapter.write(key, value, ttl)

    async def exists(self, key: str) -> bool:
        return await self._adapter.exists(key)

    async def delete(self, key: str) -> None:
        await self._adapter.delete(key)

    async def clear(self) -> None:
        await self._adapter.clear()
