"""Duplicate detection for grading records.

The grading client can fire the same grading event more than once within a
second (double submission, retried messages). Records of the same question
whose timestamps fall in the same bucket are treated as one event: the
newest stays visible and the rest are hidden. Nothing is ever removed, so
hidden duplicates remain available for export.

Example:
    >>> report = mark_duplicates(records)
    >>> len(report.records) == len(records)
    True
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .models import GradingRecord

logger = logging.getLogger(__name__)


@dataclass
class DedupReport:
    """Result of a duplicate pass.

    Attributes:
        records: The full collection, with duplicates marked hidden
        hidden_ids: Ids hidden by this pass, in collection order
    """

    records: list[GradingRecord]
    hidden_ids: list[str] = field(default_factory=list)

    @property
    def hidden_count(self) -> int:
        return len(self.hidden_ids)


def find_duplicate_positions(
    records: list[GradingRecord],
    group_key: str | None = None,
    bucket_ms: int = 1000,
) -> list[int]:
    """Return the positions of visible records that duplicate a newer one.

    Records are bucketed by ``(group_key, timestamp // bucket_ms)``. Within
    a bucket the record with the largest timestamp is canonical; on a tie
    the one that comes first in ``records`` wins. Hidden records take no
    part. Uncategorized records form a group of their own.

    Positions rather than ids identify the records, so entries sharing an
    id still leave exactly one of them visible per bucket.

    Args:
        records: Collection in sequence order
        group_key: Restrict the pass to one question (None for all)
        bucket_ms: Bucket width in milliseconds
    """
    canonical: dict[tuple[str, int], int] = {}
    duplicates: set[int] = set()

    for position, record in enumerate(records):
        if record.is_hidden or not record.in_group(group_key):
            continue
        key = (record.group_key, record.bucket(bucket_ms))
        current = canonical.get(key)
        if current is None:
            canonical[key] = position
        elif record.timestamp > records[current].timestamp:
            duplicates.add(current)
            canonical[key] = position
        else:
            duplicates.add(position)

    return sorted(duplicates)


def find_duplicate_ids(
    records: list[GradingRecord],
    group_key: str | None = None,
    bucket_ms: int = 1000,
) -> list[str]:
    """Ids of the records ``find_duplicate_positions`` selects, in collection order."""
    return [
        records[position].id
        for position in find_duplicate_positions(records, group_key=group_key, bucket_ms=bucket_ms)
    ]


def mark_duplicates(
    records: list[GradingRecord],
    group_key: str | None = None,
    bucket_ms: int = 1000,
) -> DedupReport:
    """Return a copy of ``records`` with duplicates hidden."""
    positions = find_duplicate_positions(records, group_key=group_key, bucket_ms=bucket_ms)
    if not positions:
        return DedupReport(records=list(records))

    to_hide = set(positions)
    result = [
        record.hidden() if position in to_hide else record
        for position, record in enumerate(records)
    ]
    logger.debug("Hid %d duplicate records", len(positions))
    return DedupReport(records=result, hidden_ids=[records[p].id for p in positions])
