"""Custom exceptions for the gradeledger_data package.

Built on the common exception framework from gradeledger_common.
Duplicate records are not an error: they are resolved by hiding and
reported as a count.
"""

from __future__ import annotations

from gradeledger_common import (
    ConfigurationError as BaseConfigurationError,
    OperationError,
    ResourceError,
    SerializationError,
)


class StorageFullError(ResourceError):
    """Raised when local persistence runs out of quota.

    Recoverable: the previous value under ``key`` is left intact, and the
    caller may purge hidden records and retry.
    """

    REMEDIATION = "purge hidden records and retry"

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(
            f"Storage full while writing '{key}'" + (f": {message}" if message else ""),
            context={"key": key, "remediation": self.REMEDIATION},
        )


class NetworkError(OperationError):
    """Raised when a push, pull or delete round trip fails.

    Local data is never modified by the failing operation, so the caller
    can surface a retry affordance.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        status: int | None = None,
        retryable: bool = True,
    ):
        self.operation = operation
        self.status = status
        self.retryable = retryable
        prefix = f"HTTP {status} during" if status is not None else "Network failure during"
        super().__init__(
            f"{prefix} '{operation}': {message}",
            context={"operation": operation, "status": status, "retryable": retryable},
        )


class RecordFormatError(SerializationError):
    """Raised when a stored or received record cannot be interpreted."""

    def __init__(self, message: str, record_id: str | None = None):
        self.record_id = record_id
        super().__init__(
            f"Record format error: {message}",
            context={"record_id": record_id} if record_id else None,
        )


class BackendNotFoundError(BaseConfigurationError):
    """Raised when a factory is asked for an unknown backend type."""

    def __init__(self, kind: str, backend: str, available: list[str]):
        self.backend = backend
        self.available = available
        super().__init__(
            f"Unknown {kind} backend '{backend}'. Available backends: {', '.join(available)}",
            context={"backend": backend, "available": available},
        )
