"""Common exception hierarchy for all gradeledger packages.

Every error raised by the record store, the sync engine and the rubric
tools derives from ``GradeledgerError`` and carries an optional context
dictionary with the identifiers needed to act on it (record ids, storage
keys, HTTP status codes, ...).

Example:
    ```python
    from gradeledger_common.exceptions import GradeledgerError, ResourceError

    try:
        await store.save_all(records)
    except ResourceError as e:
        logger.error("Save failed: %s", e)
        if e.context:
            logger.error("Context: %s", e.context)
    ```

Package-Specific Extensions:
    ```python
    class StorageFullError(ResourceError):
        def __init__(self, key: str):
            super().__init__(
                f"Storage quota exceeded writing '{key}'",
                context={"key": key},
            )
    ```
"""

from typing import Any, Dict


class GradeledgerError(Exception):
    """Base exception for all gradeledger packages.

    Attributes:
        context: Dictionary containing contextual information about the error
        details: Alias for context

    Args:
        message: Human-readable error message
        context: Optional dictionary with error context (record ids, keys, etc.)
        details: Alternative to context (both are supported)

    Example:
        ```python
        error = GradeledgerError(
            "Push failed",
            context={"operation": "create_batch", "records": 12}
        )
        str(error)
        # 'Push failed'
        error.context
        # {'operation': 'create_batch', 'records': 12}
        ```
    """

    def __init__(
        self,
        message: str,
        context: Dict[str, Any] | None = None,
        details: Dict[str, Any] | None = None,
    ):
        super().__init__(message)
        # Details takes precedence if both are provided
        self.context = details or context or {}
        self.details = self.context


class ValidationError(GradeledgerError):
    """Raised when data fails validation checks.

    Example:
        ```python
        raise ValidationError(
            "Score must be numeric",
            context={"field": "score", "value": "n/a"}
        )
        ```
    """

    pass


class ConfigurationError(GradeledgerError):
    """Raised when configuration is invalid or missing.

    Example:
        ```python
        raise ConfigurationError(
            "Unknown storage backend",
            context={"backend": "redis", "available": ["memory", "file"]}
        )
        ```
    """

    pass


class ResourceError(GradeledgerError):
    """Raised when a local resource (storage, file, lock) cannot be used."""

    pass


class NotFoundError(GradeledgerError):
    """Raised when a requested item is not found."""

    pass


class OperationError(GradeledgerError):
    """Raised when an operation fails.

    Covers network round trips, rejected status transitions and other
    failures that leave the caller free to retry.
    """

    pass


class SerializationError(GradeledgerError):
    """Raised when serialization or deserialization fails.

    Example:
        ```python
        raise SerializationError(
            "Stored records are not a JSON array",
            context={"key": "grading_records_v2"}
        )
        ```
    """

    pass


__all__ = [
    "GradeledgerError",
    "ValidationError",
    "ConfigurationError",
    "ResourceError",
    "NotFoundError",
    "OperationError",
    "SerializationError",
]
