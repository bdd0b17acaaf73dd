"""Key/value storage protocol for local persistence."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class KeyValueStorage(Protocol):
    """Protocol for string key/value storage backends.

    Models the local storage primitive of the grading client: whole string
    values under string keys, no partial updates. A write either replaces
    the previous value completely or leaves it intact.

    Implementations:
    - InMemoryStorage: dict storage with an optional byte quota (tests)
    - FileStorage: a single JSON file with atomic replacement

    Example:
        ```python
        storage = InMemoryStorage()
        await storage.initialize()
        await storage.set("records_last_sync", "1700000000000")
        value = await storage.get("records_last_sync")
        await storage.close()
        ```
    """

    async def initialize(self) -> None:
        """Prepare the backend for use. Should be idempotent."""
        ...

    async def close(self) -> None:
        """Release any resources held by the backend."""
        ...

    async def get(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None if absent."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Replace the value stored under ``key``.

        Raises:
            StorageFullError: If the write exceeds the available quota.
                The previous value is left intact.
        """
        ...

    async def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True if it existed."""
        ...

    async def keys(self) -> list[str]:
        """Return all stored keys."""
        ...
