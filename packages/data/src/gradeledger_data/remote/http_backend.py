"""HTTP remote record store for the grading service."""

from __future__ import annotations

import logging
from typing import Any

from gradeledger_common import ValidationError

from ..http import GradingServiceClient
from ..models import GradingRecord, Identity
from ..settings import MAX_BATCH_SIZE, MAX_PAGE_LIMIT
from .models import RecordPage

logger = logging.getLogger(__name__)


class HTTPRemoteRecordStore(GradingServiceClient):
    """Remote record store backed by the grading service REST API.

    The expected API contract (responses wrapped in ``{success, data, message}``):
    - POST /api/sync/records - body ``{records}``, ``idempotency-key`` header, returns ``{created}``
    - GET /api/sync/records?page&limit&questionNo&questionKey - returns
      ``{records, total, page, limit, totalPages}``
    - DELETE /api/sync/records?questionKey|questionNo - returns ``{deleted}``

    Requests identify the device with ``x-device-id`` and, when activated,
    ``x-activation-code``.

    Example:
        ```python
        remote = HTTPRemoteRecordStore(base_url="https://grading.example.com")
        await remote.initialize()
        page = await remote.fetch_page(Identity("dev-1", "CODE-123"))
        await remote.close()
        ```
    """

    RECORDS_PATH = "/api/sync/records"

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> HTTPRemoteRecordStore:
        """Create the store from a dict with ``base_url``, ``timeout`` and ``verify_ssl``."""
        return cls(
            base_url=config["base_url"],
            timeout=config.get("timeout", 30.0),
            verify_ssl=config.get("verify_ssl", True),
        )

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
        data = await self.request(
            "create_batch",
            "POST",
            self.RECORDS_PATH,
            identity=identity,
            json={"records": [record.to_remote_input() for record in records]},
            headers={"idempotency-key": idempotency_key},
        )
        created = int((data or {}).get("created", 0))
        logger.debug("Pushed %d records, %d created", len(records), created)
        return created

    async def fetch_page(
        self,
        identity: Identity,
        page: int = 1,
        limit: int = 100,
        question_no: str | None = None,
        question_key: str | None = None,
    ) -> RecordPage:
        data = await self.request(
            "fetch_page",
            "GET",
            self.RECORDS_PATH,
            identity=identity,
            params={
                "page": page,
                "limit": min(limit, MAX_PAGE_LIMIT),
                "questionNo": question_no,
                "questionKey": question_key,
            },
        )
        return RecordPage.from_dict(data or {})

    async def delete_by_filter(
        self,
        identity: Identity,
        question_key: str | None = None,
        question_no: str | None = None,
    ) -> int:
        if question_key is None and question_no is None:
            raise ValidationError("delete_by_filter requires question_key or question_no")
        data = await self.request(
            "delete_by_filter",
            "DELETE",
            self.RECORDS_PATH,
            identity=identity,
            params={"questionKey": question_key, "questionNo": question_no},
        )
        return int((data or {}).get("deleted", 0))
