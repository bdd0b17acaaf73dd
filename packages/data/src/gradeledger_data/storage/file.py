"""File-based implementation of KeyValueStorage."""

from __future__ import annotations

import asyncio
import errno
import json
import logging
import os
import platform
import tempfile
import time
from pathlib import Path
from typing import Any

from ..exceptions import StorageFullError

logger = logging.getLogger(__name__)

_FULL_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class FileLock:
    """Cross-platform inter-process lock on a sibling ``.lock`` file."""

    def __init__(self, filepath: str):
        self.filepath = filepath
        self.lockfile = filepath + ".lock"
        self.lock_handle = None

    def acquire(self) -> None:
        if platform.system() == "Windows":
            import msvcrt

            while True:
                try:
                    self.lock_handle = open(self.lockfile, "wb")
                    msvcrt.locking(self.lock_handle.fileno(), msvcrt.LK_NBLCK, 1)
                    break
                except OSError:
                    if self.lock_handle:
                        self.lock_handle.close()
                        self.lock_handle = None
                    time.sleep(0.01)
        else:
            import fcntl

            self.lock_handle = open(self.lockfile, "wb")
            fcntl.lockf(self.lock_handle, fcntl.LOCK_EX)

    def release(self) -> None:
        if self.lock_handle is None:
            return
        if platform.system() == "Windows":
            import msvcrt

            try:
                msvcrt.locking(self.lock_handle.fileno(), msvcrt.LK_UNLCK, 1)
            except OSError:
                pass
        self.lock_handle.close()
        self.lock_handle = None

    def __enter__(self) -> FileLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()


class FileStorage:
    """Key/value storage kept in a single JSON object file.

    Every write loads the file, replaces one key and writes the whole
    object to a temporary file that is then moved over the original with
    ``os.replace``. A failed write therefore never leaves a partially
    written file behind. A missing, empty or corrupt file reads as empty.

    Example:
        ```python
        storage = FileStorage("~/.gradeledger/storage.json")
        await storage.initialize()
        await storage.set("grading_records_v2", "[]")
        ```
    """

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()
        self._lock = asyncio.Lock()
        self._file_lock = FileLock(str(self.path))

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> FileStorage:
        return cls(config.get("path", "gradeledger_storage.json"))

    async def initialize(self) -> None:
        """Create the parent directory if needed."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

    async def close(self) -> None:
        """Nothing is held open between calls."""

    def _load(self, set_aside: bool = False) -> dict[str, str]:
        """Read the stored object.

        With ``set_aside`` an unreadable file is renamed to ``*.corrupt``
        before the caller overwrites it, so its contents can be recovered.
        """
        if not self.path.exists() or self.path.stat().st_size == 0:
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring unreadable storage file %s", self.path)
            return self._set_aside() if set_aside else {}
        if not isinstance(data, dict):
            logger.warning("Ignoring storage file %s with non-object root", self.path)
            return self._set_aside() if set_aside else {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _set_aside(self) -> dict[str, str]:
        target = self.path.with_name(f"{self.path.name}.corrupt")
        counter = 1
        while target.exists():
            target = self.path.with_name(f"{self.path.name}.corrupt.{counter}")
            counter += 1
        os.replace(self.path, target)
        logger.warning("Moved unreadable storage file to %s", target)
        return {}

    def _save(self, data: dict[str, str], key: str) -> None:
        temp_fd, temp_path = tempfile.mkstemp(dir=str(self.path.parent))
        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(temp_path, self.path)
        except OSError as e:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            if e.errno in _FULL_ERRNOS:
                raise StorageFullError(key, str(e)) from e
            raise

    async def get(self, key: str) -> str | None:
        async with self._lock:
            with self._file_lock:
                return self._load().get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            with self._file_lock:
                data = self._load(set_aside=True)
                data[key] = value
                self._save(data, key)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            with self._file_lock:
                data = self._load(set_aside=True)
                if key not in data:
                    return False
                del data[key]
                self._save(data, key)
                return True

    async def keys(self) -> list[str]:
        async with self._lock:
            with self._file_lock:
                return list(self._load())
