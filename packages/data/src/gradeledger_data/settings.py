"""Settings for the local record store and the sync engine."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from gradeledger_common import ConfigurationError, load_config

MAX_BATCH_SIZE = 100
"""Largest batch the remote store accepts in one create call."""

MAX_PAGE_LIMIT = 100
"""Largest page the remote store returns."""


@dataclass
class SyncSettings:
    """Configuration for record storage and synchronization.

    Attributes:
        base_url: Root URL of the grading service
        timeout: Per-request timeout in seconds
        page_limit: Records requested per pull page
        max_batch_size: Records pushed per create call
        dedup_bucket_ms: Width of the duplicate-detection time bucket
        records_key: Storage key of the canonical record collection
        legacy_key: Storage key of the pre-migration collection
        last_sync_key: Storage key of the last successful sync time
        migration_key: Storage key recording that migration ran
        storage: Storage backend config (``type`` plus backend options)
        remote: Remote store config (``type`` plus backend options)
    """

    base_url: str = "http://localhost:3000"
    timeout: float = 30.0
    page_limit: int = MAX_PAGE_LIMIT
    max_batch_size: int = MAX_BATCH_SIZE
    dedup_bucket_ms: int = 1000
    records_key: str = "grading_records_v2"
    legacy_key: str = "grading_history"
    last_sync_key: str = "records_last_sync"
    migration_key: str = "grading_records_migrated"
    storage: dict[str, Any] = field(default_factory=lambda: {"type": "memory"})
    remote: dict[str, Any] = field(default_factory=lambda: {"type": "http"})

    def __post_init__(self) -> None:
        if not 1 <= self.page_limit <= MAX_PAGE_LIMIT:
            raise ConfigurationError(
                f"page_limit must be between 1 and {MAX_PAGE_LIMIT}",
                context={"page_limit": self.page_limit},
            )
        if not 1 <= self.max_batch_size <= MAX_BATCH_SIZE:
            raise ConfigurationError(
                f"max_batch_size must be between 1 and {MAX_BATCH_SIZE}",
                context={"max_batch_size": self.max_batch_size},
            )
        if self.dedup_bucket_ms <= 0:
            raise ConfigurationError(
                "dedup_bucket_ms must be positive",
                context={"dedup_bucket_ms": self.dedup_bucket_ms},
            )

    def remote_config(self) -> dict[str, Any]:
        """Remote store config with ``base_url`` and ``timeout`` filled in."""
        config = {"base_url": self.base_url, "timeout": self.timeout}
        config.update(self.remote)
        return config

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncSettings:
        """Build settings from a mapping, ignoring unknown keys.

        A nested ``sync`` section is used when present, so a whole
        application config can be passed directly.
        """
        section = data.get("sync", data)
        if not isinstance(section, dict):
            raise ConfigurationError("sync settings must be a mapping")
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in section.items() if k in known})

    @classmethod
    def from_file(cls, path: str | Path) -> SyncSettings:
        """Load settings from a YAML or JSON file with ``${VAR}`` substitution."""
        return cls.from_dict(load_config(path))
