"""Git CLI orchestration utilities."""

from .operations import RepoOperations, SyncOptions
from .runner import GitCommandError, GitExecutionResult, GitNotFoundError, GitRunner, GitRunnerError

__all__ = [
    "GitCommandError",
    "GitExecutionResult",
    "GitNotFoundError",
    "GitRunner",
    "GitRunnerError",
    "RepoOperations",
    "SyncOptions",
]
