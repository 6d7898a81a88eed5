"""Data models for per-repository status tracking."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RepoStatus(str, Enum):
    """Closed set of states a tracked repository can be in."""

    PENDING = "pending"
    CHECKING = "checking"
    CLONING = "cloning"
    PULLING = "pulling"
    DELETING = "deleting"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    UNCOMMITTED = "uncommitted"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return self not in TERMINAL_STATUSES

    @property
    def is_transient(self) -> bool:
        """True for the in-progress states shown while work is running."""

        return self in TRANSIENT_STATUSES


TERMINAL_STATUSES = frozenset(
    {RepoStatus.SUCCESS, RepoStatus.FAILED, RepoStatus.SKIPPED, RepoStatus.UNCOMMITTED}
)
TRANSIENT_STATUSES = frozenset(
    {RepoStatus.CHECKING, RepoStatus.CLONING, RepoStatus.PULLING, RepoStatus.DELETING}
)


@dataclass(slots=True)
class RepoTask:
    """Mutable status record for one repository."""

    name: str
    status: RepoStatus
    message: str
    start_time: float
    end_time: float | None = None
    error_number: int | None = None

    def elapsed(self, now: float) -> float:
        """Seconds spent on this item; frozen once a terminal status is reached."""

        if self.status.is_terminal and self.end_time is not None:
            return max(0.0, self.end_time - self.start_time)
        return max(0.0, now - self.start_time)


@dataclass(slots=True, frozen=True)
class ErrorRecord:
    number: int
    item_name: str
    message: str


@dataclass(slots=True)
class ExecutionResult:
    """Outcome reported by an operation for a single item."""

    success: bool
    kind: str
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, kind: str, **details: Any) -> "ExecutionResult":
        return cls(success=True, kind=kind, details=details)

    @classmethod
    def failure(cls, kind: str, error: str, **details: Any) -> "ExecutionResult":
        return cls(success=False, kind=kind, error=error, details=details)


__all__ = [
    "ErrorRecord",
    "ExecutionResult",
    "RepoStatus",
    "RepoTask",
    "TERMINAL_STATUSES",
    "TRANSIENT_STATUSES",
]
