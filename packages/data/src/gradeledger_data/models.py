"""Grading record and sync state models.

Records are stored as JSON using the camelCase keys the grading client has
always written (``questionKey``, ``maxScore``, ``isHidden``...). Keys this
module does not recognise are kept in ``GradingRecord.extra`` and written
back unchanged.
"""

from __future__ import annotations

import hashlib
import json
import math
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from .exceptions import RecordFormatError

UNCATEGORIZED = "__uncategorized__"
"""Group key shared by records with neither ``questionKey`` nor ``questionNo``."""

_KNOWN_KEYS = frozenset(
    {
        "id",
        "questionKey",
        "questionNo",
        "studentName",
        "name",
        "examNo",
        "score",
        "maxScore",
        "comment",
        "breakdown",
        "timestamp",
        "createdAt",
        "isHidden",
        "synced",
    }
)


def now_ms() -> int:
    """Current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def _number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            parsed = float(value)
        except ValueError:
            return default
        if not math.isfinite(parsed):
            return default
        return int(parsed) if parsed.is_integer() else parsed
    return default


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_timestamp(data: dict[str, Any]) -> int:
    value = data.get("timestamp")
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        return int(value)
    created_at = data.get("createdAt")
    if isinstance(created_at, str) and created_at:
        try:
            return int(datetime.fromisoformat(created_at.replace("Z", "+00:00")).timestamp() * 1000)
        except ValueError:
            pass
    return 0


def has_record_id(data: Any) -> bool:
    return isinstance(data, dict) and _optional_text(data.get("id")) is not None


def legacy_record_id(data: dict[str, Any], ordinal: int = 0) -> str:
    """Content-derived id for a stored entry that has none.

    Identical entries of one collection (a double-fired grading event)
    must still get distinct ids, so the n-th repeat passes ``ordinal=n``.
    """
    payload = json.dumps(data, sort_keys=True, default=str)
    if ordinal:
        payload = f"{payload}#{ordinal}"
    digest = hashlib.sha256(payload.encode()).hexdigest()
    return f"legacy_{digest[:16]}"


@dataclass
class BreakdownItem:
    """One line of a score breakdown."""

    label: str
    score: float
    max: float
    comment: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"label": self.label, "score": self.score, "max": self.max}
        if self.comment is not None:
            result["comment"] = self.comment
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BreakdownItem:
        return cls(
            label=str(data.get("label", "")),
            score=_number(data.get("score")),
            max=_number(data.get("max", data.get("maxScore"))),
            comment=data.get("comment"),
        )


def _parse_breakdown(raw: Any) -> list[BreakdownItem]:
    if isinstance(raw, list):
        return [BreakdownItem.from_dict(item) for item in raw if isinstance(item, dict)]
    if isinstance(raw, dict):
        # Older clients stored {label: score} or {label: {score, max}}
        items = []
        for label, value in raw.items():
            if isinstance(value, dict):
                items.append(BreakdownItem.from_dict({"label": label, **value}))
            else:
                items.append(BreakdownItem(label=str(label), score=_number(value), max=0))
        return items
    return []


@dataclass
class GradingRecord:
    """A single grading event.

    Attributes:
        id: Globally unique identifier, never changes
        question_key: Optional grouping key (may be composite ``platform:...:key``)
        question_no: Optional question number
        student_name: Name of the graded student
        score: Awarded score
        max_score: Maximum achievable score
        comment: Grader comment
        breakdown: Ordered per-criterion scores
        timestamp: Creation instant in milliseconds since the epoch
        exam_no: Optional exam number
        is_hidden: Soft-delete flag; hidden records are kept for export
        synced: True once the record is known to exist remotely
        extra: Unrecognised fields preserved across load/save
    """

    id: str
    student_name: str = ""
    score: float = 0
    max_score: float = 0
    timestamp: int = 0
    question_key: str | None = None
    question_no: str | None = None
    comment: str = ""
    breakdown: list[BreakdownItem] = field(default_factory=list)
    exam_no: str | None = None
    is_hidden: bool = False
    synced: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        student_name: str,
        score: float,
        max_score: float,
        question_key: str | None = None,
        question_no: str | None = None,
        comment: str = "",
        breakdown: list[BreakdownItem] | None = None,
        exam_no: str | None = None,
        timestamp: int | None = None,
    ) -> GradingRecord:
        """Create a new local record with a fresh id and timestamp."""
        return cls(
            id=f"rec_{uuid.uuid4().hex}",
            student_name=student_name,
            score=score,
            max_score=max_score,
            timestamp=timestamp if timestamp is not None else now_ms(),
            question_key=question_key,
            question_no=question_no,
            comment=comment,
            breakdown=list(breakdown or []),
            exam_no=exam_no,
        )

    @property
    def group_key(self) -> str:
        """Question the record belongs to, or ``UNCATEGORIZED``."""
        return self.question_key or self.question_no or UNCATEGORIZED

    @property
    def is_uncategorized(self) -> bool:
        return self.group_key == UNCATEGORIZED

    def in_group(self, group_key: str | None) -> bool:
        """Return True if the record matches ``group_key`` (``None`` matches all)."""
        if group_key is None:
            return True
        if group_key == UNCATEGORIZED:
            return self.is_uncategorized
        return group_key in (self.question_key, self.question_no)

    def bucket(self, width_ms: int = 1000) -> int:
        """Timestamp bucket used for duplicate detection."""
        return self.timestamp // width_ms

    def hidden(self) -> GradingRecord:
        """Return a copy marked hidden."""
        return replace(self, is_hidden=True)

    def mark_synced(self) -> GradingRecord:
        """Return a copy marked as existing remotely."""
        return replace(self, synced=True)

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the client's camelCase storage keys."""
        data: dict[str, Any] = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "studentName": self.student_name,
                "score": self.score,
                "maxScore": self.max_score,
                "comment": self.comment,
                "breakdown": [item.to_dict() for item in self.breakdown],
                "timestamp": self.timestamp,
                "isHidden": self.is_hidden,
                "synced": self.synced,
            }
        )
        if self.question_key is not None:
            data["questionKey"] = self.question_key
        if self.question_no is not None:
            data["questionNo"] = self.question_no
        if self.exam_no is not None:
            data["examNo"] = self.exam_no
        return data

    def to_remote_input(self) -> dict[str, Any]:
        """Payload sent to the remote batch-create endpoint."""
        return {
            "id": self.id,
            "questionKey": self.question_key,
            "questionNo": self.question_no,
            "studentName": self.student_name,
            "examNo": self.exam_no,
            "score": self.score,
            "maxScore": self.max_score,
            "comment": self.comment,
            "breakdown": [item.to_dict() for item in self.breakdown],
            "timestamp": self.timestamp,
            "isHidden": self.is_hidden,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], ordinal: int = 0) -> GradingRecord:
        """Deserialize a stored or received record.

        Legacy records without an ``id`` get a stable id derived from their
        content, so repeated loads agree on the identity. ``ordinal`` tells
        apart identical legacy entries of one collection; see
        ``legacy_record_id``.

        Raises:
            RecordFormatError: If ``data`` is not a mapping
        """
        if not isinstance(data, dict):
            raise RecordFormatError(f"expected an object, got {type(data).__name__}")

        record_id = _optional_text(data.get("id"))
        if record_id is None:
            record_id = legacy_record_id(data, ordinal)

        return cls(
            id=record_id,
            student_name=str(data.get("studentName") or data.get("name") or ""),
            score=_number(data.get("score")),
            max_score=_number(data.get("maxScore")),
            timestamp=_parse_timestamp(data),
            question_key=_optional_text(data.get("questionKey")),
            question_no=_optional_text(data.get("questionNo")),
            comment=str(data.get("comment") or ""),
            breakdown=_parse_breakdown(data.get("breakdown")),
            exam_no=_optional_text(data.get("examNo")),
            is_hidden=bool(data.get("isHidden", False)),
            synced=bool(data.get("synced", False)),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )

    @classmethod
    def from_remote(cls, data: dict[str, Any]) -> GradingRecord:
        """Deserialize a record pulled from the remote store."""
        record = cls.from_dict(data)
        record.synced = True
        return record


class SyncStatus(str, Enum):
    """Lifecycle of a sync attempt."""

    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class SyncState:
    """Observable sync state for one identity.

    Attributes:
        status: Current lifecycle status
        last_sync_time: Epoch ms of the last successful reconciliation
        message: Human-readable detail for the current status
    """

    status: SyncStatus = SyncStatus.IDLE
    last_sync_time: int | None = None
    message: str = ""


@dataclass
class SyncResult:
    """Outcome of one sync attempt.

    Attributes:
        status: Final status of the attempt
        pushed: Number of records the remote reported as created
        pulled: Number of records received from the remote
        duplicates_hidden: Duplicates resolved by hiding (informational)
        total: Size of the local collection after the merge
        skipped: True when the identity is not entitled to sync
        message: Human-readable summary
        error: The failure, when ``status`` is ``ERROR``
    """

    status: SyncStatus
    pushed: int = 0
    pulled: int = 0
    duplicates_hidden: int = 0
    total: int = 0
    skipped: bool = False
    message: str = ""
    error: Exception | None = None

    @property
    def success(self) -> bool:
        return self.status == SyncStatus.SUCCESS


@dataclass
class RecordStats:
    """Summary figures over the visible records of a question.

    Attributes:
        count: Number of visible records
        average_score: Mean awarded score (0 when empty)
        score_rate: Total awarded over total achievable (0 when unknown)
    """

    count: int = 0
    average_score: float = 0.0
    score_rate: float = 0.0

    @classmethod
    def from_records(cls, records: list[GradingRecord]) -> RecordStats:
        if not records:
            return cls()
        total_score = sum(r.score for r in records)
        total_max = sum(r.max_score for r in records)
        return cls(
            count=len(records),
            average_score=total_score / len(records),
            score_rate=total_score / total_max if total_max > 0 else 0.0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "averageScore": round(self.average_score, 2),
            "scoreRate": round(self.score_rate, 4),
        }


@dataclass(frozen=True)
class Identity:
    """Who a sync runs for.

    Attributes:
        device_id: Stable id of the installation
        activation_code: License activation code, when the device is activated
    """

    device_id: str
    activation_code: str | None = None

    @property
    def key(self) -> str:
        """Key under which per-identity sync state is tracked."""
        return self.activation_code or f"device:{self.device_id}"

    def headers(self) -> dict[str, str]:
        """HTTP headers identifying this device to the grading service."""
        headers = {"x-device-id": self.device_id}
        if self.activation_code:
            headers["x-activation-code"] = self.activation_code
        return headers
