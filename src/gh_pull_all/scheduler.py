"""Bounded concurrent scheduler for repository operations."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from operator import attrgetter
from typing import Any, Awaitable, Callable, Sequence

from .status import ExecutionResult, RepoStatus, StatusReporter, TaskStore

logger = logging.getLogger(__name__)

Operation = Callable[[Any, StatusReporter], Awaitable[ExecutionResult]]


class BoundedScheduler:
    """Drive a list of items through an async operation with a concurrency limit.

    With ``concurrency == 1`` items run strictly one after another. Otherwise a
    fixed number of workers drain a shared queue, so at most ``concurrency``
    operations are in flight. Results come back in submission order.
    """

    def __init__(
        self,
        store: TaskStore,
        concurrency: int,
        *,
        name_of: Callable[[Any], str] = attrgetter("name"),
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._store = store
        self._concurrency = concurrency
        self._name_of = name_of
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        return self._peak_in_flight

    async def run(self, items: Sequence[Any], operation: Operation) -> list[ExecutionResult]:
        for item in items:
            name = self._name_of(item)
            if name not in self._store:
                self._store.add_item(name)

        if self._concurrency == 1:
            return await self._run_sequential(items, operation)
        return await self._run_pool(items, operation)

    async def _run_sequential(self, items: Sequence[Any], operation: Operation) -> list[ExecutionResult]:
        results: list[ExecutionResult] = []
        for item in items:
            results.append(await self._execute(item, operation))
        return results

    async def _run_pool(self, items: Sequence[Any], operation: Operation) -> list[ExecutionResult]:
        queue: deque[tuple[int, Any]] = deque(enumerate(items))
        results: list[ExecutionResult | None] = [None] * len(items)

        async def worker() -> None:
            while queue:
                index, item = queue.popleft()
                results[index] = await self._execute(item, operation)

        workers = min(self._concurrency, len(items))
        logger.debug("Starting %d workers for %d items", workers, len(items))
        await asyncio.gather(*(worker() for _ in range(workers)))
        return [result for result in results if result is not None]

    async def _execute(self, item: Any, operation: Operation) -> ExecutionResult:
        name = self._name_of(item)
        self._in_flight += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
        try:
            return await operation(item, self._store.reporter(name))
        except Exception as exc:
            logger.debug("Unexpected error while processing %s", name, exc_info=True)
            self._store.update(name, RepoStatus.FAILED, f"Unexpected error: {exc}")
            return ExecutionResult(success=False, kind="error", error=str(exc))
        finally:
            self._in_flight -= 1


__all__ = ["BoundedScheduler", "Operation"]
