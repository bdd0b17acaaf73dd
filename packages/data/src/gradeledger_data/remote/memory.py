"""In-memory implementation of RemoteRecordStore."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any

from gradeledger_common import ValidationError

from ..exceptions import NetworkError
from ..models import GradingRecord, Identity
from ..settings import MAX_BATCH_SIZE, MAX_PAGE_LIMIT
from .models import RecordPage

logger = logging.getLogger(__name__)


class InMemoryRemoteStore:
    """Dict-backed remote store.

    Keeps one record list per identity key and remembers every accepted
    idempotency key, so a replayed batch creates nothing. Faults can be
    queued per operation to exercise failure handling:

    - ``"fail"``: the call raises ``NetworkError`` without side effects
    - ``"lost_response"``: the call takes effect, then raises
      ``NetworkError`` as if the response never arrived

    Thread-safety is provided via asyncio.Lock.

    Example:
        ```python
        remote = InMemoryRemoteStore()
        remote.inject_fault("create_batch", "lost_response")
        ```
    """

    FAULTS = ("fail", "lost_response")

    def __init__(self) -> None:
        self._records: dict[str, list[dict[str, Any]]] = {}
        self._idempotency_keys: dict[str, dict[str, int]] = {}
        self._faults: dict[str, list[str]] = {}
        self._lock = asyncio.Lock()
        self.calls: list[str] = []

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> InMemoryRemoteStore:
        return cls()

    async def initialize(self) -> None:
        """No-op for the in-memory store."""

    async def close(self) -> None:
        """No-op; data survives until the instance is discarded."""

    def inject_fault(self, operation: str, mode: str = "fail", times: int = 1) -> None:
        """Queue ``times`` faults for the next calls of ``operation``."""
        if mode not in self.FAULTS:
            raise ValueError(f"Unknown fault mode '{mode}'. Available: {', '.join(self.FAULTS)}")
        self._faults.setdefault(operation, []).extend([mode] * times)

    def _next_fault(self, operation: str) -> str | None:
        self.calls.append(operation)
        queue = self._faults.get(operation)
        return queue.pop(0) if queue else None

    def records_for(self, identity: Identity) -> list[GradingRecord]:
        """Snapshot of the identity's remote records."""
        return [GradingRecord.from_remote(item) for item in self._records.get(identity.key, [])]

    def seed(self, identity: Identity, records: list[GradingRecord]) -> None:
        """Place records remotely as if another device had pushed them."""
        self._records.setdefault(identity.key, []).extend(r.to_remote_input() for r in records)

    async def create_batch(
        self,
        identity: Identity,
        records: list[GradingRecord],
        idempotency_key: str,
    ) -> int:
        if len(records) > MAX_BATCH_SIZE:
            raise ValidationError(
                f"At most {MAX_BATCH_SIZE} records per batch",
                context={"count": len(records)},
            )
        fault = self._next_fault("create_batch")
        if fault == "fail":
            raise NetworkError("create_batch", "injected failure")

        async with self._lock:
            seen = self._idempotency_keys.setdefault(identity.key, {})
            if idempotency_key in seen:
                logger.debug("Replayed idempotency key %s", idempotency_key)
                created = 0
            else:
                stored = self._records.setdefault(identity.key, [])
                stored.extend(record.to_remote_input() for record in records)
                created = len(records)
                seen[idempotency_key] = created

        if fault == "lost_response":
            raise NetworkError("create_batch", "response lost")
        return created

    async def fetch_page(
        self,
        identity: Identity,
        page: int = 1,
        limit: int = 100,
        question_no: str | None = None,
        question_key: str | None = None,
    ) -> RecordPage:
        limit = max(1, min(limit, MAX_PAGE_LIMIT))
        page = max(1, page)
        fault = self._next_fault("fetch_page")
        if fault is not None:
            raise NetworkError("fetch_page", "injected failure")

        async with self._lock:
            matching = [
                item
                for item in self._records.get(identity.key, [])
                if (question_no is None or item.get("questionNo") == question_no)
                and (question_key is None or item.get("questionKey") == question_key)
            ]

        start = (page - 1) * limit
        return RecordPage(
            records=[GradingRecord.from_remote(item) for item in matching[start : start + limit]],
            total=len(matching),
            page=page,
            limit=limit,
            total_pages=math.ceil(len(matching) / limit),
        )

    async def delete_by_filter(
        self,
        identity: Identity,
        question_key: str | None = None,
        question_no: str | None = None,
    ) -> int:
        if question_key is None and question_no is None:
            raise ValidationError("delete_by_filter requires question_key or question_no")
        fault = self._next_fault("delete_by_filter")
        if fault is not None:
            raise NetworkError("delete_by_filter", "injected failure")

        async with self._lock:
            stored = self._records.get(identity.key, [])
            kept = [
                item
                for item in stored
                if not (
                    (question_key is not None and item.get("questionKey") == question_key)
                    or (question_no is not None and item.get("questionNo") == question_no)
                )
            ]
            self._records[identity.key] = kept
            return len(stored) - len(kept)
