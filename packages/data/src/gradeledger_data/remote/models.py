"""Remote record store data models."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from ..models import GradingRecord


@dataclass
class RecordPage:
    """One page of records pulled from the remote store.

    Attributes:
        records: Records on this page, already marked synced
        total: Total matching records across all pages
        page: 1-based page number
        limit: Requested page size
        total_pages: Number of pages at this page size
    """

    records: list[GradingRecord] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 100
    total_pages: int = 0

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RecordPage:
        """Parse the ``data`` payload of a list response."""
        limit = int(data.get("limit", 100) or 100)
        total = int(data.get("total", 0) or 0)
        total_pages = data.get("totalPages")
        return cls(
            records=[GradingRecord.from_remote(item) for item in data.get("records") or []],
            total=total,
            page=int(data.get("page", 1) or 1),
            limit=limit,
            total_pages=int(total_pages) if total_pages is not None else math.ceil(total / limit),
        )
