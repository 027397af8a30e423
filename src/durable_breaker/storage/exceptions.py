"""Storage exceptions.

Callers can distinguish between:
  - Storage being unreachable or failing I/O (``StorageReadError`` /
    ``StorageWriteError``).
  - Stored data being unreadable (``StorageDecodeError``).
  - Every member of a fallback chain failing (``StorageAggregateError``).

A missing key is never an error: reads return ``None``.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum


class StorageErrorReason(StrEnum):
    """Classification of storage failures."""

    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    CORRUPTED_DATA = "corrupted_data"
    DISK_FULL = "disk_full"
    READ_FAILED = "read_failed"
    WRITE_FAILED = "write_failed"
    DELETE_FAILED = "delete_failed"
    ALL_ADAPTERS_FAILED = "all_adapters_failed"


class StorageError(Exception):
    """Base exception for storage failures.

    Attributes:
        reason: Failure classification.
        path: File, key or resource the failure relates to, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        reason: StorageErrorReason = StorageErrorReason.READ_FAILED,
        path: str | None = None,
    ) -> None:
        self.reason = reason
        self.path = path
        super().__init__(message)


class StorageReadError(StorageError):
    """Raised when reading from storage fails."""

    @classmethod
    def permission_denied(cls, path: str) -> StorageReadError:
        return cls(
            f"permission denied reading from '{path}'",
            reason=StorageErrorReason.PERMISSION_DENIED,
            path=path,
        )

    @classmethod
    def file_not_found(cls, path: str) -> StorageReadError:
        return cls(
            f"file not found: '{path}'",
            reason=StorageErrorReason.NOT_FOUND,
            path=path,
        )

    @classmethod
    def corrupted_data(cls, path: str, detail: str = "") -> StorageReadError:
        suffix = f": {detail}" if detail else ""
        return cls(
            f"corrupted or invalid data in '{path}'{suffix}",
            reason=StorageErrorReason.CORRUPTED_DATA,
            path=path,
        )

    @classmethod
    def read_failed(cls, path: str) -> StorageReadError:
        return cls(
            f"failed to read from '{path}'",
            reason=StorageErrorReason.READ_FAILED,
            path=path,
        )


class StorageDecodeError(StorageReadError):
    """Raised when persisted bytes cannot be decoded into a circuit state."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(
            message,
            reason=StorageErrorReason.CORRUPTED_DATA,
            path=path,
        )


class StorageWriteError(StorageError):
    """Raised when writing to or deleting from storage fails."""

    @classmethod
    def permission_denied(cls, path: str) -> StorageWriteError:
        return cls(
            f"permission denied writing to '{path}'",
            reason=StorageErrorReason.PERMISSION_DENIED,
            path=path,
        )

    @classmethod
    def disk_full(cls, path: str) -> StorageWriteError:
        return cls(
            f"disk full, cannot write to '{path}'",
            reason=StorageErrorReason.DISK_FULL,
            path=path,
        )

    @classmethod
    def write_failed(cls, path: str) -> StorageWriteError:
        return cls(
            f"failed to write to '{path}'",
            reason=StorageErrorReason.WRITE_FAILED,
            path=path,
        )

    @classmethod
    def delete_failed(cls, path: str) -> StorageWriteError:
        return cls(
            f"failed to delete '{path}'",
            reason=StorageErrorReason.DELETE_FAILED,
            path=path,
        )


class StorageAggregateError(StorageError):
    """Raised by a fallback chain when every member adapter failed.

    Attributes:
        operation: Storage operation that failed everywhere.
        failures: ``(adapter_name, error)`` pairs in priority order.
    """

    def __init__(
        self,
        operation: str,
        failures: Sequence[tuple[str, Exception]],
    ) -> None:
        self.operation = operation
        self.failures = tuple(failures)
        details = "; ".join(
            f"{name}: {type(error).__name__}: {error}" for name, error in self.failures
        )
        super().__init__(
            f"all storage adapters failed for {operation}: {details}",
            reason=StorageErrorReason.ALL_ADAPTERS_FAILED,
        )
