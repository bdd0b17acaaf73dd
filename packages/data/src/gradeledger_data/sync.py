"""Sync engine reconciling the local record store with the remote store.

A sync attempt for one identity runs in four steps:

1. push every unsynced local record in batches, each carrying an
   idempotency key so a retried batch is not created twice
2. pull every page of the identity's remote records
3. merge them into the local collection by id and hide same-bucket
   duplicates
4. persist the merged collection and advance the last sync time

Only one attempt per identity is in flight at a time; a second trigger
awaits the running one and receives its result.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections.abc import Callable
from dataclasses import dataclass

from gradeledger_common import TransitionValidator

from .dedup import mark_duplicates
from .entitlement import EntitlementGate, HTTPQuotaGate
from .exceptions import NetworkError, StorageFullError
from .models import (
    UNCATEGORIZED,
    GradingRecord,
    Identity,
    SyncResult,
    SyncState,
    SyncStatus,
    now_ms,
)
from .remote import RemoteRecordStore, create_remote_store
from .settings import SyncSettings
from .storage import create_storage
from .store import LocalRecordStore

logger = logging.getLogger(__name__)

StatusListener = Callable[[SyncStatus, str], None]

SYNC_TRANSITIONS: dict[str, set[str]] = {
    SyncStatus.IDLE.value: {SyncStatus.SYNCING.value},
    SyncStatus.SYNCING.value: {SyncStatus.SUCCESS.value, SyncStatus.ERROR.value},
    SyncStatus.SUCCESS.value: {SyncStatus.SYNCING.value},
    SyncStatus.ERROR.value: {SyncStatus.SYNCING.value},
}


@dataclass
class QuestionDeleteResult:
    """Outcome of deleting all records of a question.

    Attributes:
        local_deleted: Records removed from the local store
        remote_deleted: Records removed remotely (0 when not attempted)
        error: Remote failure, if any; the local deletion stands regardless
    """

    local_deleted: int = 0
    remote_deleted: int = 0
    error: Exception | None = None


def batch_idempotency_key(
    batch: list[GradingRecord], base_key: str | None = None, index: int = 0
) -> str:
    """Idempotency key for one push batch.

    With ``base_key`` the first batch uses it as is and later batches get a
    ``:<index>`` suffix. Without one the key is derived from the batch's
    record ids, so retrying the same unsynced set reuses the same key.
    """
    if base_key is not None:
        return base_key if index == 0 else f"{base_key}:{index}"
    digest = hashlib.sha256("|".join(record.id for record in batch).encode()).hexdigest()
    return f"sync-{digest[:32]}"


class SyncEngine:
    """Reconciles a LocalRecordStore with a RemoteRecordStore.

    Args:
        store: The local record store
        remote: The remote record store
        gate: Decides which identities may sync
        settings: Batch and page sizes, dedup bucket width

    Example:
        ```python
        engine = SyncEngine(store, remote, StaticEntitlementGate())
        engine.add_listener(lambda status, message: print(status.value, message))
        result = await engine.sync(Identity("dev-1", "CODE-123"))
        print(result.pushed, result.pulled, result.duplicates_hidden)
        ```
    """

    def __init__(
        self,
        store: LocalRecordStore,
        remote: RemoteRecordStore,
        gate: EntitlementGate,
        settings: SyncSettings | None = None,
    ) -> None:
        self.store = store
        self.remote = remote
        self.gate = gate
        self.settings = settings or store.settings
        self._validator = TransitionValidator("sync_status", SYNC_TRANSITIONS)
        self._states: dict[str, SyncState] = {}
        self._in_flight: dict[str, asyncio.Task[SyncResult]] = {}
        self._listeners: list[StatusListener] = []

    @classmethod
    def from_settings(
        cls, settings: SyncSettings, gate: EntitlementGate | None = None
    ) -> SyncEngine:
        """Build an engine whose backends come from ``settings``.

        The storage backend is chosen by ``settings.storage["type"]`` and the
        remote store by ``settings.remote["type"]``. Without ``gate`` the
        service's quota endpoint decides entitlement.
        """
        storage_config = dict(settings.storage)
        storage = create_storage(storage_config.pop("type", "memory"), storage_config)
        remote_config = settings.remote_config()
        remote = create_remote_store(remote_config.pop("type", "http"), remote_config)
        if gate is None:
            gate = HTTPQuotaGate.from_config(remote_config)
        return cls(LocalRecordStore(storage, settings), remote, gate, settings)

    def _components(self) -> list[object]:
        return [self.store.storage, self.remote, self.gate]

    async def initialize(self) -> None:
        """Initialize storage, remote store and gate where they need it."""
        for component in self._components():
            initialize = getattr(component, "initialize", None)
            if initialize is not None:
                await initialize()

    async def close(self) -> None:
        for component in reversed(self._components()):
            close = getattr(component, "close", None)
            if close is not None:
                await close()

    def add_listener(self, listener: StatusListener) -> None:
        """Register a callback receiving ``(status, message)`` on every transition."""
        self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def state_for(self, identity: Identity) -> SyncState:
        """Current sync state of ``identity``."""
        return self._states.setdefault(identity.key, SyncState())

    def is_syncing(self, identity: Identity) -> bool:
        task = self._in_flight.get(identity.key)
        return task is not None and not task.done()

    async def sync(self, identity: Identity, idempotency_key: str | None = None) -> SyncResult:
        """Run one sync attempt, or join the attempt already running.

        Args:
            identity: Whose records to reconcile
            idempotency_key: Base key for the push batches; derived from the
                record ids when omitted

        Returns:
            The attempt's result. Network and storage failures are reported
            with ``status == ERROR`` rather than raised.
        """
        key = identity.key
        task = self._in_flight.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(self._run(identity, idempotency_key))
            self._in_flight[key] = task
            task.add_done_callback(lambda done, k=key: self._forget(k, done))
        else:
            logger.debug("Sync already in flight for %s; joining it", key)
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Task[SyncResult]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]

    def _transition(self, identity: Identity, status: SyncStatus, message: str) -> None:
        state = self.state_for(identity)
        self._validator.validate(state.status, status)
        state.status = status
        state.message = message
        logger.info("Sync %s for %s: %s", status.value, identity.key, message)
        for listener in list(self._listeners):
            try:
                listener(status, message)
            except Exception:
                logger.exception("Sync status listener failed")

    async def _run(self, identity: Identity, idempotency_key: str | None) -> SyncResult:
        state = self.state_for(identity)
        if state.last_sync_time is None:
            state.last_sync_time = await self.store.get_last_sync_time()

        try:
            entitled = await self.gate.is_entitled(identity)
        except NetworkError as e:
            logger.warning("Entitlement check failed for %s: %s", identity.key, e)
            return SyncResult(status=state.status, skipped=True, message=str(e), error=e)
        if not entitled:
            logger.debug("Identity %s is not entitled to sync", identity.key)
            return SyncResult(status=state.status, skipped=True, message="not entitled to sync")

        self._transition(identity, SyncStatus.SYNCING, "syncing")
        result = SyncResult(status=SyncStatus.SYNCING)
        try:
            result.pushed = await self._push(identity, idempotency_key)
            remote_records = await self._pull(identity)
            result.pulled = len(remote_records)
            result.total, result.duplicates_hidden = await self._merge(remote_records)
            state.last_sync_time = await self.store.set_last_sync_time(now_ms())
        except (NetworkError, StorageFullError) as e:
            result.status = SyncStatus.ERROR
            result.error = e
            result.message = f"Sync failed, local records are unchanged and can be synced again: {e}"
            self._transition(identity, SyncStatus.ERROR, result.message)
            return result
        except Exception as e:
            self._transition(identity, SyncStatus.ERROR, f"Sync failed: {e}")
            raise

        result.status = SyncStatus.SUCCESS
        result.message = (
            f"pushed {result.pushed}, pulled {result.pulled}, "
            f"hid {result.duplicates_hidden} duplicates"
        )
        self._transition(identity, SyncStatus.SUCCESS, result.message)
        return result

    async def _push(self, identity: Identity, idempotency_key: str | None) -> int:
        unsynced = [record for record in await self.store.get_all() if not record.synced]
        if not unsynced:
            return 0

        size = self.settings.max_batch_size
        created = 0
        for index, start in enumerate(range(0, len(unsynced), size)):
            batch = unsynced[start : start + size]
            key = batch_idempotency_key(batch, idempotency_key, index)
            created += await self.remote.create_batch(identity, batch, key)

            pushed_ids = {record.id for record in batch}
            await self.store.update(
                lambda records, ids=pushed_ids: [
                    r.mark_synced() if r.id in ids and not r.synced else r for r in records
                ]
            )
            logger.debug("Pushed batch %d (%d records) with key %s", index, len(batch), key)
        return created

    async def _pull(self, identity: Identity) -> list[GradingRecord]:
        pulled: list[GradingRecord] = []
        page = 1
        while True:
            result = await self.remote.fetch_page(identity, page=page, limit=self.settings.page_limit)
            pulled.extend(result.records)
            if not result.records or not result.has_more:
                return pulled
            page += 1

    async def _merge(self, remote_records: list[GradingRecord]) -> tuple[int, int]:
        hidden = 0

        def mutate(local: list[GradingRecord]) -> list[GradingRecord]:
            nonlocal hidden
            merged = list(local)
            positions = {record.id: i for i, record in enumerate(merged)}
            for remote in remote_records:
                i = positions.get(remote.id)
                if i is None:
                    positions[remote.id] = len(merged)
                    merged.append(remote)
                elif not merged[i].synced:
                    merged[i] = merged[i].mark_synced()
            report = mark_duplicates(merged, bucket_ms=self.settings.dedup_bucket_ms)
            hidden = report.hidden_count
            return report.records

        merged = await self.store.update(mutate)
        return len(merged), hidden

    async def delete_question(self, identity: Identity, group_key: str) -> QuestionDeleteResult:
        """Hard-delete a question's records locally and, when entitled, remotely.

        A remote failure is logged and returned; the local deletion stands.
        Uncategorized records are only deleted locally.
        """
        by_key = any(r.question_key == group_key for r in await self.store.get_all())
        result = QuestionDeleteResult(local_deleted=await self.store.delete_question(group_key))
        if group_key == UNCATEGORIZED:
            return result

        try:
            if not await self.gate.is_entitled(identity):
                return result
            if by_key:
                result.remote_deleted = await self.remote.delete_by_filter(
                    identity, question_key=group_key
                )
            else:
                result.remote_deleted = await self.remote.delete_by_filter(
                    identity, question_no=group_key
                )
        except NetworkError as e:
            logger.warning("Remote delete of question '%s' failed: %s", group_key, e)
            result.error = e
        return result
