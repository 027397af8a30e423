"""Durable persistence for circuit state.

Layers, innermost first:
  - ``StorageAdapter`` implementations store raw bytes under a key.
  - Decorators add logging, metrics or retries without changing the contract.
  - ``FallbackStorageAdapter`` chains adapters by priority.
  - ``CircuitStateRepository`` maps service keys and ``CircuitState`` onto an
    adapter.
"""

from durable_breaker.storage.base import StorageAdapter
from durable_breaker.storage.builder import StorageBuilder, create_repository
from durable_breaker.storage.exceptions import (
    StorageAggregateError,
    StorageDecodeError,
    StorageError,
    StorageErrorReason,
    StorageReadError,
    StorageWriteError,
)
from durable_breaker.storage.fallback import FallbackStorageAdapter
from durable_breaker.storage.file import FileStorageAdapter
from durable_breaker.storage.memory import InMemoryStorageAdapter, NullStorageAdapter
from durable_breaker.storage.repository import (
    CircuitStateRepository,
    DefaultCircuitStateRepository,
    storage_key,
)
from durable_breaker.storage.serializer import JsonStorageSerializer, StorageSerializer

__all__ = [
    "CircuitStateRepository",
    "DefaultCircuitStateRepository",
    "FallbackStorageAdapter",
    "FileStorageAdapter",
    "InMemoryStorageAdapter",
    "JsonStorageSerializer",
    "NullStorageAdapter",
    "StorageAdapter",
    "StorageAggregateError",
    "StorageBuilder",
    "StorageDecodeError",
    "StorageError",
    "StorageErrorReason",
    "StorageReadError",
    "StorageSerializer",
    "StorageWriteError",
    "create_repository",
    "storage_key",
]
