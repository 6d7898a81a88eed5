"""In-memory store of repository status records."""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import replace
from typing import Callable

from .models import ErrorRecord, RepoStatus, RepoTask

logger = logging.getLogger(__name__)

StatusListener = Callable[[RepoTask, RepoStatus], None]


class StatusReporter:
    """Status update capability bound to a single repository."""

    __slots__ = ("_store", "name")

    def __init__(self, store: "TaskStore", name: str) -> None:
        self._store = store
        self.name = name

    def __call__(self, status: RepoStatus | str, message: str = "") -> None:
        self._store.update(self.name, status, message)

    def __repr__(self) -> str:
        return f"StatusReporter({self.name!r})"


class TaskStore:
    """Ordered mapping from repository name to its status record.

    ``update`` is the single mutation path. Reads return copies, so the
    renderer can take a snapshot on every tick without affecting the records.
    Everything runs on one event loop, so no locking is done here.
    """

    def __init__(self, *, clock: Callable[[], float] | None = None) -> None:
        self._clock = clock or time.monotonic
        self._tasks: dict[str, RepoTask] = {}
        self._errors: list[ErrorRecord] = []
        self._error_counter = 0
        self._listeners: list[StatusListener] = []
        self._max_name_length = 0
        self.started_at = self._clock()

    def add_item(self, name: str) -> RepoTask:
        """Register ``name`` as pending. Registering a name twice overwrites it."""

        task = RepoTask(name=name, status=RepoStatus.PENDING, message="", start_time=self._clock())
        self._tasks[name] = task
        self._max_name_length = max(self._max_name_length, len(name))
        return replace(task)

    def update(self, name: str, status: RepoStatus | str, message: str = "") -> None:
        task = self._tasks.get(name)
        if task is None:
            logger.debug("Ignoring status update for unregistered item %s", name)
            return

        new_status = RepoStatus(status)
        old_status = task.status
        task.status = new_status
        task.message = message
        if new_status is not RepoStatus.PENDING:
            task.end_time = self._clock()

        if new_status is RepoStatus.FAILED and task.error_number is None:
            self._error_counter += 1
            task.error_number = self._error_counter
            self._errors.append(ErrorRecord(number=self._error_counter, item_name=name, message=message))
            logger.info("%s failed (error #%d): %s", name, self._error_counter, message)

        if self._listeners:
            copy = replace(task)
            for listener in list(self._listeners):
                listener(copy, old_status)

    def subscribe(self, listener: StatusListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: StatusListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def reporter(self, name: str) -> StatusReporter:
        return StatusReporter(self, name)

    def get(self, name: str) -> RepoTask | None:
        task = self._tasks.get(name)
        return replace(task) if task is not None else None

    def snapshot(self) -> list[RepoTask]:
        """Return copies of all records ordered by name."""

        return [replace(self._tasks[name]) for name in sorted(self._tasks)]

    def names(self) -> list[str]:
        return sorted(self._tasks)

    def counts(self) -> Counter[RepoStatus]:
        return Counter(task.status for task in self._tasks.values())

    @property
    def errors(self) -> list[ErrorRecord]:
        return list(self._errors)

    @property
    def max_name_length(self) -> int:
        return self._max_name_length

    def now(self) -> float:
        return self._clock()

    def elapsed(self) -> float:
        return max(0.0, self._clock() - self.started_at)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, name: object) -> bool:
        return name in self._tasks


__all__ = ["StatusListener", "StatusReporter", "TaskStore"]
