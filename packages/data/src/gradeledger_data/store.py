"""Local record store over key/value storage.

The store owns the canonical record collection. Every mutation reads the
full collection, computes the next one in memory and writes it back with a
single storage call, so a failed write leaves the previous collection in
place.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Iterable

from .dedup import mark_duplicates
from .exceptions import RecordFormatError
from .models import GradingRecord, RecordStats, has_record_id, legacy_record_id
from .settings import SyncSettings
from .storage import KeyValueStorage

logger = logging.getLogger(__name__)

ALL = None
"""Group filter matching every record."""


class LocalRecordStore:
    """Durable, append-only log of grading records.

    Records are never removed by synchronization; duplicates are hidden.
    Hard deletion only happens through ``delete_question`` and
    ``purge_hidden``.

    Example:
        ```python
        store = LocalRecordStore(InMemoryStorage())
        await store.migrate_legacy()
        await store.append(GradingRecord.create("Alice", 8, 10, question_key="q1"))
        visible = await store.visible("q1")
        ```
    """

    def __init__(self, storage: KeyValueStorage, settings: SyncSettings | None = None):
        self.storage = storage
        self.settings = settings or SyncSettings()
        self._lock = asyncio.Lock()

    def _decode(self, raw: str | None, key: str) -> list[GradingRecord]:
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored value under '%s' is not valid JSON; treating as empty", key)
            return []
        if not isinstance(data, list):
            logger.warning("Stored value under '%s' is not a list; treating as empty", key)
            return []

        records = []
        repeats: dict[str, int] = {}
        for entry in data:
            ordinal = 0
            if isinstance(entry, dict) and not has_record_id(entry):
                base_id = legacy_record_id(entry)
                ordinal = repeats.get(base_id, 0)
                repeats[base_id] = ordinal + 1
            try:
                records.append(GradingRecord.from_dict(entry, ordinal))
            except RecordFormatError as e:
                logger.warning("Skipping malformed entry under '%s': %s", key, e)
        return records

    async def get_all(self) -> list[GradingRecord]:
        """Return the full collection in insertion order, hidden records included."""
        raw = await self.storage.get(self.settings.records_key)
        return self._decode(raw, self.settings.records_key)

    async def save_all(self, records: Iterable[GradingRecord]) -> None:
        """Replace the whole collection.

        Raises:
            StorageFullError: If storage is out of quota; the prior
                collection is left intact
        """
        payload = json.dumps([record.to_dict() for record in records], ensure_ascii=False)
        await self.storage.set(self.settings.records_key, payload)

    async def update(
        self, mutate: Callable[[list[GradingRecord]], list[GradingRecord]]
    ) -> list[GradingRecord]:
        """Read the collection, apply ``mutate`` and write the result back.

        Calls are serialized, so concurrent writers never lose updates.
        """
        async with self._lock:
            records = mutate(await self.get_all())
            await self.save_all(records)
            return records

    async def migrate_legacy(self) -> int:
        """Copy legacy records into the canonical collection once.

        Runs only when the canonical collection is empty and migration has
        not been recorded. The legacy value is never modified. Holds the
        writer lock throughout, so records appended meanwhile are kept.

        Returns:
            Number of records migrated (0 when nothing was done)
        """
        async with self._lock:
            if await self.storage.get(self.settings.migration_key):
                return 0
            if await self.get_all():
                return 0

            raw = await self.storage.get(self.settings.legacy_key)
            if raw is None:
                return 0

            legacy = self._decode(raw, self.settings.legacy_key)
            if legacy:
                await self.save_all(legacy)
            await self.storage.set(self.settings.migration_key, "1")
        logger.info("Migrated %d legacy grading records", len(legacy))
        return len(legacy)

    async def append(self, record: GradingRecord) -> GradingRecord:
        """Add a new grading event."""
        await self.update(lambda records: records + [record])
        logger.debug("Appended record %s", record.id)
        return record

    async def hide(self, ids: Iterable[str]) -> int:
        """Soft-delete records by id. Returns the number newly hidden."""
        targets = set(ids)
        hidden = 0

        def mutate(records: list[GradingRecord]) -> list[GradingRecord]:
            nonlocal hidden
            result = []
            for record in records:
                if record.id in targets and not record.is_hidden:
                    record = record.hidden()
                    hidden += 1
                result.append(record)
            return result

        await self.update(mutate)
        return hidden

    async def hide_duplicates(self, group_key: str | None = ALL) -> int:
        """Hide same-bucket duplicates, keeping the newest. Returns the count hidden."""
        hidden = 0

        def mutate(records: list[GradingRecord]) -> list[GradingRecord]:
            nonlocal hidden
            report = mark_duplicates(
                records, group_key=group_key, bucket_ms=self.settings.dedup_bucket_ms
            )
            hidden = report.hidden_count
            return report.records

        await self.update(mutate)
        if hidden:
            logger.info("Hid %d duplicate records", hidden)
        return hidden

    async def delete_question(self, group_key: str) -> int:
        """Permanently remove every record of a question.

        Pass ``UNCATEGORIZED`` to remove records with no question.
        """
        removed = 0

        def mutate(records: list[GradingRecord]) -> list[GradingRecord]:
            nonlocal removed
            kept = [r for r in records if not r.in_group(group_key)]
            removed = len(records) - len(kept)
            return kept

        await self.update(mutate)
        logger.info("Deleted %d records of question '%s'", removed, group_key)
        return removed

    async def purge_hidden(self) -> int:
        """Permanently remove hidden records to free storage."""
        removed = 0

        def mutate(records: list[GradingRecord]) -> list[GradingRecord]:
            nonlocal removed
            kept = [r for r in records if not r.is_hidden]
            removed = len(records) - len(kept)
            return kept

        await self.update(mutate)
        logger.info("Purged %d hidden records", removed)
        return removed

    async def visible(self, group_key: str | None = ALL) -> list[GradingRecord]:
        """Records shown to the user: hidden ones excluded."""
        return [r for r in await self.get_all() if not r.is_hidden and r.in_group(group_key)]

    async def for_export(self, group_key: str | None = ALL) -> list[GradingRecord]:
        """Records included in exports: hidden ones too."""
        return [r for r in await self.get_all() if r.in_group(group_key)]

    async def summarize(self, group_key: str | None = ALL) -> RecordStats:
        return RecordStats.from_records(await self.visible(group_key))

    async def get_last_sync_time(self) -> int | None:
        raw = await self.storage.get(self.settings.last_sync_key)
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring unreadable last sync time %r", raw)
            return None

    async def set_last_sync_time(self, timestamp_ms: int) -> int:
        """Record a successful sync; the stored time never moves backward.

        Returns:
            The stored last sync time after the call
        """
        current = await self.get_last_sync_time()
        if current is not None and current >= timestamp_ms:
            return current
        await self.storage.set(self.settings.last_sync_key, str(timestamp_ms))
        return timestamp_ms
