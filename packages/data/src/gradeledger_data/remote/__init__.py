"""Remote record stores."""

from __future__ import annotations

from typing import Any

from ..exceptions import BackendNotFoundError
from .backend import RemoteRecordStore
from .http_backend import HTTPRemoteRecordStore
from .memory import InMemoryRemoteStore
from .models import RecordPage

_BACKENDS: dict[str, type] = {
    "memory": InMemoryRemoteStore,
    "http": HTTPRemoteRecordStore,
}


def create_remote_store(
    backend_type: str = "http", config: dict[str, Any] | None = None
) -> RemoteRecordStore:
    """Create a remote record store by type.

    Args:
        backend_type: ``"memory"`` or ``"http"``
        config: Backend options; ``http`` requires ``base_url``

    Raises:
        BackendNotFoundError: If ``backend_type`` is not registered
    """
    backend_cls = _BACKENDS.get(backend_type.lower())
    if backend_cls is None:
        raise BackendNotFoundError("remote", backend_type, sorted(_BACKENDS))
    return backend_cls.from_config(config or {})


__all__ = [
    "HTTPRemoteRecordStore",
    "InMemoryRemoteStore",
    "RecordPage",
    "RemoteRecordStore",
    "create_remote_store",
]
