"""In-memory implementation of KeyValueStorage."""

from __future__ import annotations

import asyncio
from typing import Any

from ..exceptions import StorageFullError


class InMemoryStorage:
    """Dict-backed key/value storage.

    An optional ``quota_bytes`` limits the total UTF-8 size of keys and
    values, mimicking the browser's storage quota. Thread-safety is
    provided via asyncio.Lock.

    Example:
        ```python
        storage = InMemoryStorage(quota_bytes=5 * 1024 * 1024)
        await storage.set("grading_records_v2", "[]")
        ```
    """

    def __init__(self, quota_bytes: int | None = None) -> None:
        self._data: dict[str, str] = {}
        self._lock = asyncio.Lock()
        self.quota_bytes = quota_bytes

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> InMemoryStorage:
        return cls(quota_bytes=config.get("quota_bytes"))

    async def initialize(self) -> None:
        """No-op for in-memory storage."""

    async def close(self) -> None:
        """No-op; data survives until the instance is discarded."""

    def _size_with(self, key: str, value: str) -> int:
        size = len(key.encode()) + len(value.encode())
        for other_key, other_value in self._data.items():
            if other_key != key:
                size += len(other_key.encode()) + len(other_value.encode())
        return size

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            if self.quota_bytes is not None and self._size_with(key, value) > self.quota_bytes:
                raise StorageFullError(key, f"quota of {self.quota_bytes} bytes exceeded")
            self._data[key] = value

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._data.pop(key, None) is not None

    async def keys(self) -> list[str]:
        async with self._lock:
            return list(self._data)
