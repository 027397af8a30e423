"""Transparent ``StorageAdapter`` wrappers."""

from durable_breaker.storage.decorators.base import StorageAdapterDecorator
from durable_breaker.storage.decorators.logging import LoggingStorageDecorator
from durable_breaker.storage.decorators.metrics import (
    InMemoryStorageMetricsCollector,
    MetricsStorageDecorator,
    OperationRecord,
    StorageMetricsCollector,
)
from durable_breaker.storage.decorators.retry import RetryStorageDecorator

__all__ = [
    "InMemoryStorageMetricsCollector",
    "LoggingStorageDecorator",
    "MetricsStorageDecorator",
    "OperationRecord",
    "RetryStorageDecorator",
    "StorageAdapterDecorator",
    "StorageMetricsCollector",
]
