"""Local grading record storage and synchronization.

- **Models**: GradingRecord, Identity, sync state and results
- **Storage**: key/value backends (memory, file)
- **Store**: LocalRecordStore with soft delete and legacy migration
- **Remote**: remote record stores (memory, HTTP)
- **Sync**: SyncEngine with idempotent push, paginated pull and dedup merge
"""

from gradeledger_data.dedup import (
    DedupReport,
    find_duplicate_ids,
    find_duplicate_positions,
    mark_duplicates,
)
from gradeledger_data.entitlement import (
    EntitlementGate,
    HTTPQuotaGate,
    QuotaInfo,
    StaticEntitlementGate,
)
from gradeledger_data.exceptions import (
    BackendNotFoundError,
    NetworkError,
    RecordFormatError,
    StorageFullError,
)
from gradeledger_data.http import GradingServiceClient
from gradeledger_data.models import (
    UNCATEGORIZED,
    BreakdownItem,
    GradingRecord,
    Identity,
    RecordStats,
    SyncResult,
    SyncState,
    SyncStatus,
)
from gradeledger_data.remote import (
    HTTPRemoteRecordStore,
    InMemoryRemoteStore,
    RecordPage,
    RemoteRecordStore,
    create_remote_store,
)
from gradeledger_data.settings import MAX_BATCH_SIZE, MAX_PAGE_LIMIT, SyncSettings
from gradeledger_data.storage import (
    FileStorage,
    InMemoryStorage,
    KeyValueStorage,
    create_storage,
)
from gradeledger_data.store import ALL, LocalRecordStore
from gradeledger_data.sync import QuestionDeleteResult, SyncEngine, batch_idempotency_key

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Models
    "UNCATEGORIZED",
    "BreakdownItem",
    "GradingRecord",
    "Identity",
    "RecordStats",
    "SyncResult",
    "SyncState",
    "SyncStatus",
    # Exceptions
    "BackendNotFoundError",
    "NetworkError",
    "RecordFormatError",
    "StorageFullError",
    # Storage
    "FileStorage",
    "InMemoryStorage",
    "KeyValueStorage",
    "create_storage",
    # Store and dedup
    "ALL",
    "LocalRecordStore",
    "DedupReport",
    "find_duplicate_ids",
    "find_duplicate_positions",
    "mark_duplicates",
    # Remote
    "GradingServiceClient",
    "HTTPRemoteRecordStore",
    "InMemoryRemoteStore",
    "RecordPage",
    "RemoteRecordStore",
    "create_remote_store",
    # Entitlement
    "EntitlementGate",
    "HTTPQuotaGate",
    "QuotaInfo",
    "StaticEntitlementGate",
    # Sync
    "MAX_BATCH_SIZE",
    "MAX_PAGE_LIMIT",
    "QuestionDeleteResult",
    "SyncEngine",
    "SyncSettings",
    "batch_idempotency_key",
]
