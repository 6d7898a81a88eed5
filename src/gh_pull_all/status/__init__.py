"""Status records shared by the scheduler and the display."""

from .models import ErrorRecord, ExecutionResult, RepoStatus, RepoTask
from .store import StatusReporter, TaskStore

__all__ = [
    "ErrorRecord",
    "ExecutionResult",
    "RepoStatus",
    "RepoTask",
    "StatusReporter",
    "TaskStore",
]
