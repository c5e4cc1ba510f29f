"""Scheduler: admits ready tasks to the router up to a concurrency ceiling."""

from __future__ import annotations

import asyncio
import heapq
import logging
from typing import Dict, List, Tuple

from ..errors import DEPENDENCY_FAILED, SHUT_DOWN
from ..events import EventKind
from .base import OrchestrationResult, Task, TaskStatus
from .router import TaskRouter
from .store import TaskStore

logger = logging.getLogger(__name__)


class Scheduler:
    """Dependency-aware priority scheduler.

    Each pending task carries a count of unresolved predecessors. When a task
    completes, its direct dependents are decremented and the ones reaching
    zero move onto the ready heap, ordered by ``(priority rank, submission
    sequence)``. A dependency that fails or is cancelled fails its dependents
    (transitively) instead of leaving them pending forever.
    """

    def __init__(self, store: TaskStore, router: TaskRouter, max_concurrent: int = 5) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.store = store
        self.router = router
        self.events = router.events
        self.max_concurrent = max_concurrent
        self.peak_running = 0
        self._ready: List[Tuple[int, int, str]] = []
        self._unresolved: Dict[str, int] = {}
        self._dependents: Dict[str, List[str]] = {}
        self._running: Dict[str, asyncio.Task] = {}
        self._results: Dict[str, OrchestrationResult] = {}
        self._waiters: Dict[str, List[asyncio.Future]] = {}
        self._closed = False

    @property
    def running_count(self) -> int:
        return len(self._running)

    @property
    def queue_length(self) -> int:
        return len(self._ready) + len(self._unresolved)

    @property
    def is_processing(self) -> bool:
        return bool(self._running)

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, task: Task) -> None:
        unresolved = 0
        for dep_id in task.dependencies:
            dep = self.store.get(dep_id)
            if dep.status == TaskStatus.COMPLETED:
                continue
            if dep.status in (TaskStatus.FAILED, TaskStatus.CANCELLED):
                self._fail_dependent(task, dep)
                return
            unresolved += 1
            self._dependents.setdefault(dep_id, []).append(task.id)
        if unresolved:
            self._unresolved[task.id] = unresolved
        else:
            self._push_ready(task)
        self.pump()

    def cancel(self, task_id: str) -> Task:
        task = self.store.get(task_id)
        self.store.cancel(task)
        self._unresolved.pop(task_id, None)
        if any(entry[2] == task_id for entry in self._ready):
            self._ready = [entry for entry in self._ready if entry[2] != task_id]
            heapq.heapify(self._ready)
        self.events.publish(EventKind.TASK_CANCELLED, task_id=task_id)
        logger.info("Task %s cancelled", task_id)
        self._finish(task, OrchestrationResult.from_task(task))
        return task

    def pump(self) -> None:
        """Dispatch ready tasks while below the ceiling; no-op outside an event loop."""

        if self._closed:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        while self._ready and len(self._running) < self.max_concurrent:
            _, _, task_id = heapq.heappop(self._ready)
            task = self.store.get(task_id)
            if task.status != TaskStatus.PENDING:
                continue
            self._running[task_id] = asyncio.create_task(self._execute(task), name=f"flowtutor-{task_id}")
            self.peak_running = max(self.peak_running, len(self._running))

    async def wait(self, task_id: str) -> OrchestrationResult:
        self.store.get(task_id)
        self.pump()
        if task_id in self._results:
            return self._results[task_id]
        future = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(task_id, []).append(future)
        return await future

    async def drain(self) -> None:
        """Stop admitting new work, wait for in-flight tasks, then fail what never started."""

        self._closed = True
        while self._running:
            await asyncio.gather(*list(self._running.values()), return_exceptions=True)
        self._abandon_pending()

    def reopen(self) -> None:
        self._closed = False
        self.pump()

    async def _execute(self, task: Task) -> None:
        if task.status != TaskStatus.PENDING:
            # cancelled between admission and start; cancel() already resolved it
            self._running.pop(task.id, None)
            self.pump()
            return
        try:
            result = await self.router.dispatch(task)
        finally:
            self._running.pop(task.id, None)
        self._finish(task, result)
        self.pump()

    def _push_ready(self, task: Task) -> None:
        heapq.heappush(self._ready, (task.priority.rank, task.sequence, task.id))

    def _finish(self, task: Task, result: OrchestrationResult) -> None:
        self._results[task.id] = result
        for future in self._waiters.pop(task.id, []):
            if not future.done():
                future.set_result(result)
        dependents = self._dependents.pop(task.id, [])
        for dependent_id in dependents:
            dependent = self.store.get(dependent_id)
            if dependent.status != TaskStatus.PENDING:
                continue
            if task.status == TaskStatus.COMPLETED:
                self._unresolved[dependent_id] -= 1
                if self._unresolved[dependent_id] == 0:
                    del self._unresolved[dependent_id]
                    self._push_ready(dependent)
            else:
                self._unresolved.pop(dependent_id, None)
                self._fail_dependent(dependent, task)

    def _fail_dependent(self, task: Task, dependency: Task) -> None:
        message = f"{DEPENDENCY_FAILED}: {dependency.id} ended {dependency.status.value}"
        self.store.fail(task, message, DEPENDENCY_FAILED)
        logger.warning("Task %s failed: %s", task.id, message)
        self.events.publish(EventKind.TASK_FAILED, task_id=task.id, data=task.snapshot())
        self._finish(task, OrchestrationResult.from_task(task))

    def _abandon_pending(self) -> None:
        pending = [self.store.get(task_id) for _, _, task_id in self._ready]
        pending += [self.store.get(task_id) for task_id in self._unresolved]
        self._ready.clear()
        self._unresolved.clear()
        self._dependents.clear()
        for task in sorted(pending, key=lambda item: item.sequence):
            if task.status != TaskStatus.PENDING:
                continue
            self.store.fail(task, f"{SHUT_DOWN} before {task.id} started", SHUT_DOWN)
            logger.warning("Task %s failed: %s", task.id, task.error)
            self.events.publish(EventKind.TASK_FAILED, task_id=task.id, data=task.snapshot())
            self._finish(task, OrchestrationResult.from_task(task))
