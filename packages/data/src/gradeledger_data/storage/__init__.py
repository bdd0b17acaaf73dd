"""Local key/value storage backends."""

from __future__ import annotations

from typing import Any

from ..exceptions import BackendNotFoundError
from .backend import KeyValueStorage
from .file import FileLock, FileStorage
from .memory import InMemoryStorage

_BACKENDS: dict[str, type] = {
    "memory": InMemoryStorage,
    "file": FileStorage,
}


def create_storage(backend_type: str = "memory", config: dict[str, Any] | None = None) -> KeyValueStorage:
    """Create a storage backend by type.

    Args:
        backend_type: ``"memory"`` or ``"file"``
        config: Backend-specific options (``quota_bytes`` or ``path``)

    Raises:
        BackendNotFoundError: If ``backend_type`` is not registered
    """
    backend_cls = _BACKENDS.get(backend_type.lower())
    if backend_cls is None:
        raise BackendNotFoundError("storage", backend_type, sorted(_BACKENDS))
    return backend_cls.from_config(config or {})


__all__ = [
    "FileLock",
    "FileStorage",
    "InMemoryStorage",
    "KeyValueStorage",
    "create_storage",
]
