"""Validation of status changes against a declared graph.

The sync lifecycle moves ``idle -> syncing -> success | error`` and back to
``syncing`` on the next attempt. ``TransitionValidator`` holds only the
graph; the caller keeps the current status and asks before changing it.
Statuses may be given as plain strings or as ``str`` enum members.

Example:
    ```python
    validator = TransitionValidator("sync_status", {
        "idle": {"syncing"},
        "syncing": {"success", "error"},
        "success": {"syncing"},
        "error": {"syncing"},
    })
    validator.validate(SyncStatus.IDLE, SyncStatus.SYNCING)
    validator.validate("idle", "success")  # raises InvalidTransitionError
    ```
"""

from __future__ import annotations

import logging
from enum import Enum

from gradeledger_common.exceptions import OperationError

logger = logging.getLogger(__name__)

Status = str | Enum


def _status_name(status: Status) -> str:
    return status.value if isinstance(status, Enum) else status


class InvalidTransitionError(OperationError):
    """A status change the graph does not permit.

    Attributes:
        entity: Name of the graph, e.g. ``"sync_status"``
        current_status: Status being left
        target_status: Rejected status
        allowed: Permitted targets, or ``None`` when ``current_status``
            is not part of the graph
    """

    def __init__(
        self,
        entity: str,
        current_status: str,
        target_status: str,
        allowed: set[str] | None = None,
    ) -> None:
        self.entity = entity
        self.current_status = current_status
        self.target_status = target_status
        self.allowed = allowed

        if allowed is None:
            message = f"{entity}: unknown current status '{current_status}'"
        else:
            targets = ", ".join(sorted(allowed)) or "(none, terminal)"
            message = (
                f"{entity}: '{current_status}' cannot move to '{target_status}'; "
                f"allowed: {targets}"
            )

        super().__init__(
            message,
            context={
                "entity": entity,
                "current_status": current_status,
                "target_status": target_status,
                "allowed": sorted(allowed or ()),
            },
        )


class TransitionValidator:
    """Checks status changes against ``transitions``.

    Args:
        name: Graph name used in error messages
        transitions: Each status mapped to the statuses it may move to.
            A status that only appears as a target is terminal.
    """

    def __init__(self, name: str, transitions: dict[str, set[str]]) -> None:
        self.name = name
        self._graph = {source: set(targets) for source, targets in transitions.items()}

    def validate(self, current_status: Status | None, target_status: Status) -> None:
        """Raise unless ``current_status -> target_status`` is permitted.

        A ``current_status`` of ``None`` is not checked.

        Raises:
            InvalidTransitionError: If the change is not permitted
        """
        if current_status is None:
            return
        current = _status_name(current_status)
        target = _status_name(target_status)

        allowed = self._graph.get(current)
        if allowed is None:
            raise InvalidTransitionError(self.name, current, target)
        if target not in allowed:
            logger.debug("%s: rejected %s -> %s", self.name, current, target)
            raise InvalidTransitionError(self.name, current, target, allowed)

    def __repr__(self) -> str:
        return f"TransitionValidator({self.name!r}, {len(self._graph)} sources)"
