"""Remote record store protocol."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ..models import GradingRecord, Identity
    from .models import RecordPage


@runtime_checkable
class RemoteRecordStore(Protocol):
    """Protocol for the per-identity remote record collection.

    Implementations:
    - InMemoryRemoteStore: dict storage honouring idempotency keys (tests)
    - HTTPRemoteRecordStore: the grading service's ``/api/sync/records`` API

    A batch create carrying an idempotency key the store has already
    accepted for the same identity must not create records again.
    """

    async def initialize(self) -> None:
        """Initialize the store. Should be idempotent."""
        ...

    async def close(self) -> None:
        ...

    async def create_batch(
        self,
        identity: Identity,
        records: list[GradingRecord],
        idempotency_key: str,
    ) -> int:
        """Create ``records`` remotely.

        Args:
            identity: Owner of the records
            records: At most 100 records
            idempotency_key: Key identifying this batch across retries

        Returns:
            Number of records created (0 for a replayed key)

        Raises:
            NetworkError: If the round trip fails
        """
        ...

    async def fetch_page(
        self,
        identity: Identity,
        page: int = 1,
        limit: int = 100,
        question_no: str | None = None,
        question_key: str | None = None,
    ) -> RecordPage:
        """Fetch one page of the identity's records (``page`` is 1-based)."""
        ...

    async def delete_by_filter(
        self,
        identity: Identity,
        question_key: str | None = None,
        question_no: str | None = None,
    ) -> int:
        """Delete the identity's records of one question. Returns the count deleted."""
        ...
