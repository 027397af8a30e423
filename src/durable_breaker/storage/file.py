"""Filesystem storage adapter with atomic, lock-protected writes.

Layout inside the configured directory:
  - ``<key>.dat``: committed value (header + payload).
  - ``<key>.lock``: advisory lock serializing writers of the same key.
  - ``.<key>.<random>.tmp``: in-progress write, renamed over ``<key>.dat``.

Readers never take the lock to read. The committed file stays valid until the
rename replaces it, so a reader sees either the old or the new value in full.
Removing an expired file takes the lock and re-checks the expiry first.
"""

from __future__ import annotations

import asyncio
import errno
import fcntl
import os
import re
import struct
import tempfile
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager, suppress
from functools import partial
from pathlib import Path
from typing import TypeVar

from durable_breaker.clock import Clock, SystemClock
from durable_breaker.storage.base import StorageAdapter
from durable_breaker.storage.exceptions import (
    StorageError,
    StorageErrorReason,
    StorageReadError,
    StorageWriteError,
)

T = TypeVar("T")

FILE_EXTENSION = ".dat"
LOCK_EXTENSION = ".lock"
TEMP_EXTENSION = ".tmp"
FILE_PERMISSIONS = 0o644

_MAGIC = b"DBRK"
_HEADER = struct.Struct(">4sd")
_VALID_KEY = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]*$")
_PERMISSION_ERRNOS = frozenset({errno.EACCES, errno.EPERM})
_DISK_FULL_ERRNOS = frozenset({errno.ENOSPC, errno.EDQUOT})


def _write_error(path: Path, error: OSError) -> StorageWriteError:
    if error.errno in _PERMISSION_ERRNOS:
        return StorageWriteError.permission_denied(str(path))
    if error.errno in _DISK_FULL_ERRNOS:
        return StorageWriteError.disk_full(str(path))
    return StorageWriteError.write_failed(str(path))


class FileStorageAdapter(StorageAdapter):
    """Store one file per key under ``directory``."""

    def __init__(
        self,
        directory: str | os.PathLike[str],
        *,
        temp_file_max_age: float = 3600.0,
        clock: Clock | None = None,
    ) -> None:
        """Create the storage directory and sweep orphaned temp files.

        Args:
            directory: Root directory; created with parents when missing.
            temp_file_max_age: Seconds after which a ``*.tmp`` file is treated
                as left behind by a crashed write.
            clock: Time source used for TTL expiry.

        Raises:
            StorageWriteError: If the directory cannot be created or written.
            StorageError: For any other directory setup failure.
        """
        if temp_file_max_age < 0:
            raise ValueError("temp_file_max_age must be >= 0")
        self._directory = Path(directory)
        self._temp_file_max_age = temp_file_max_age
        self._clock = SystemClock() if clock is None else clock
        self._ensure_directory()
        self.cleanup_orphaned_temp_files()

    @property
    def name(self) -> str:
        return "file"

    @property
    def directory(self) -> Path:
        return self._directory

    def _ensure_directory(self) -> None:
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
        except PermissionError as error:
            raise StorageWriteError.permission_denied(str(self._directory)) from error
        except OSError as error:
            raise StorageError(
                f"failed to create storage directory: '{self._directory}'",
                reason=StorageErrorReason.WRITE_FAILED,
                path=str(self._directory),
            ) from error
        if not os.access(self._directory, os.W_OK | os.X_OK):
            raise StorageWriteError.permission_denied(str(self._directory))

    def path_for(self, key: str) -> Path:
        """Return the committed file path for ``key``."""
        if not _VALID_KEY.match(key):
            raise ValueError(f"invalid storage key: {key!r}")
        return self._directory / f"{key}{FILE_EXTENSION}"

    async def _run(self, func: Callable[..., T], *args: object) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args))

    async def read(self, key: str) -> bytes | None:
        return await self._run(self._read_sync, key)

    async def write(self, key: str, value: bytes, ttl: float | None = None) -> None:
        await self._run(self._write_sync, key, value, ttl)

    async def exists(self, key: str) -> bool:
        return await self._run(self._exists_sync, key)

    async def delete(self, key: str) -> None:
        await self._run(self._delete_sync, key)

    async def clear(self) -> None:
        """Remove every committed ``<key>.dat`` file.

        Per-key ``<key>.lock`` files are left in place, since another process
        may be holding one, so the directory is not empty afterwards.
        """
        await self._run(self._clear_sync)

    def _read_sync(self, key: str) -> bytes | None:
        path = self.path_for(key)
        try:
            content = path.read_bytes()
        except FileNotFoundError:
            return None
        except PermissionError as error:
            raise StorageReadError.permission_denied(str(path)) from error
        except OSError as error:
            raise StorageReadError.read_failed(str(path)) from error

        expires_at, payload = self._decode(path, content)
        if expires_at and self._clock.now() >= expires_at:
            # Best effort; a failed removal still reads as missing.
            with suppress(StorageError):
                self._remove_if_expired(key, path)
            return None
        return payload

    def _remove_if_expired(self, key: str, path: Path) -> None:
        with self._write_lock(key, path):
            try:
                content = path.read_bytes()
            except FileNotFoundError:
                return
            except OSError as error:
                raise StorageReadError.read_failed(str(path)) from error
            expires_at, _ = self._decode(path, content)
            if not (expires_at and self._clock.now() >= expires_at):
                return
            try:
                path.unlink(missing_ok=True)
            except OSError as error:
                raise StorageWriteError.delete_failed(str(path)) from error

    def _write_sync(self, key: str, value: bytes, ttl: float | None) -> None:
        path = self.path_for(key)
        expires_at = 0.0 if ttl is None else self._clock.now() + ttl
        content = _HEADER.pack(_MAGIC, expires_at) + bytes(value)

        try:
            fd, temp_name = tempfile.mkstemp(
                dir=self._directory,
                prefix=f".{key}.",
                suffix=TEMP_EXTENSION,
            )
        except OSError as error:
            raise _write_error(path, error) from error

        temp_path = Path(temp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            os.chmod(temp_path, FILE_PERMISSIONS)
        except OSError as error:
            self._discard(temp_path)
            raise _write_error(temp_path, error) from error

        try:
            with self._write_lock(key, path):
                os.replace(temp_path, path)
        except StorageWriteError:
            self._discard(temp_path)
            raise
        except OSError as error:
            self._discard(temp_path)
            raise _write_error(path, error) from error

    def _exists_sync(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            with path.open("rb") as handle:
                header = handle.read(_HEADER.size)
        except FileNotFoundError:
            return False
        except PermissionError as error:
            raise StorageReadError.permission_denied(str(path)) from error
        except OSError as error:
            raise StorageReadError.read_failed(str(path)) from error

        if len(header) < _HEADER.size:
            return True
        magic, expires_at = _HEADER.unpack(header)
        if magic != _MAGIC:
            return True
        return not (expires_at and self._clock.now() >= expires_at)

    def _delete_sync(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as error:
            raise StorageWriteError.delete_failed(str(path)) from error

    def _clear_sync(self) -> None:
        for path in self._directory.glob(f"*{FILE_EXTENSION}"):
            try:
                path.unlink(missing_ok=True)
            except OSError as error:
                raise StorageWriteError.delete_failed(str(path)) from error

    def cleanup_orphaned_temp_files(self) -> int:
        """Remove temp files older than the configured max age.

        Best-effort: files that vanish or cannot be removed are skipped.

        Returns:
            Number of temp files removed.
        """
        removed = 0
        now = time.time()
        for temp_path in self._directory.glob(f".*{TEMP_EXTENSION}"):
            try:
                age = now - temp_path.stat().st_mtime
                if age < self._temp_file_max_age:
                    continue
                temp_path.unlink()
            except OSError:
                continue
            removed += 1
        return removed

    @staticmethod
    def _decode(path: Path, content: bytes) -> tuple[float, bytes]:
        if len(content) < _HEADER.size:
            raise StorageReadError.corrupted_data(str(path), "truncated header")
        magic, expires_at = _HEADER.unpack_from(content)
        if magic != _MAGIC:
            raise StorageReadError.corrupted_data(str(path), "unknown file format")
        return expires_at, content[_HEADER.size :]

    @staticmethod
    def _discard(temp_path: Path) -> None:
        with suppress(OSError):
            temp_path.unlink()

    @contextmanager
    def _write_lock(self, key: str, path: Path) -> Iterator[None]:
        lock_path = self._directory / f"{key}{LOCK_EXTENSION}"
        try:
            lock_fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, FILE_PERMISSIONS)
        except OSError as error:
            raise _write_error(lock_path, error) from error
        try:
            try:
                fcntl.flock(lock_fd, fcntl.LOCK_EX)
            except OSError as error:
                raise StorageWriteError.write_failed(str(path)) from error
            try:
                yield
            finally:
                fcntl.flock(lock_fd, fcntl.LOCK_UN)
        finally:
            os.close(lock_fd)
