"""Garrison errors — typed failures of city queue operations.

Every operation either commits completely or raises one of these before
any write. Callers classify failures by type (or by the stable ``code``)
instead of matching on message strings:

- NotFound         : city or queue task no longer exists. Not fatal.
- InvalidReference : a task names a unit missing from the catalog.
- Conflict         : another writer touched the city first. Retryable.
- ActionRejected   : a request failed validation (queue full, too poor, ...).
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Dict, Mapping, Optional


class ErrorCode(IntEnum):
    """Stable error codes for garrison exceptions."""
    GENERIC           = 1000
    NOT_FOUND         = 1001
    INVALID_REFERENCE = 1002
    CONFLICT          = 1003
    REJECTED          = 1004


class GarrisonError(Exception):
    """Base class for garrison exceptions.

    Args:
        message: Human-readable description.
        context: Optional structured fields (small dict), safe to log.
    """

    code: ErrorCode = ErrorCode.GENERIC

    def __init__(self, message: str, *, context: Optional[Mapping[str, Any]] = None) -> None:
        super().__init__(message)
        self.message: str = message
        self.context: Dict[str, Any] = dict(context) if context else {}

    def __str__(self) -> str:
        tail = f" context={self.context}" if self.context else ""
        return f"[{int(self.code)}] {self.message}{tail}"

    def to_dict(self) -> Dict[str, Any]:
        """Structured view suitable for logs or JSON responses."""
        out: Dict[str, Any] = {
            "code": int(self.code),
            "error": self.message,
        }
        if self.context:
            out["context"] = dict(self.context)
        return out


class NotFound(GarrisonError):
    code = ErrorCode.NOT_FOUND


class CityNotFound(NotFound):
    def __init__(self, cid: int) -> None:
        super().__init__(f"City {cid} not found", context={"cid": cid})
        self.cid = cid


class TaskNotFound(NotFound):
    def __init__(self, cid: int, queue: str, task_id: str) -> None:
        super().__init__(
            f"Task {task_id} not found in {queue} queue",
            context={"cid": cid, "queue": queue, "task_id": task_id},
        )
        self.task_id = task_id


class InvalidReference(GarrisonError):
    """A queue task references a unit that is not in the catalog."""

    code = ErrorCode.INVALID_REFERENCE

    def __init__(self, unit_iid: str) -> None:
        super().__init__(f"Unknown unit: {unit_iid}", context={"unit_iid": unit_iid})
        self.unit_iid = unit_iid


class Conflict(GarrisonError):
    code = ErrorCode.CONFLICT


class TransactionConflict(Conflict):
    """The city changed between the transaction's read and its write."""

    def __init__(self, cid: int, version: int) -> None:
        super().__init__(
            f"City {cid} was modified concurrently",
            context={"cid": cid, "version": version},
        )
        self.cid = cid


class ActionRejected(GarrisonError):
    code = ErrorCode.REJECTED
