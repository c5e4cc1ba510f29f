"""Task store: the single source of truth for task state."""

from __future__ import annotations

import itertools
import logging
import time
import uuid
from datetime import datetime
from typing import Any, Dict, Iterator, List, Mapping

from ..agents.base import utcnow
from ..errors import TaskStateError, TaskValidationError
from .base import DEFAULT_TIMEOUT, Task, TaskConfig, TaskStatus, task_counts
from .payloads import coerce_payload

logger = logging.getLogger(__name__)

# pending -> running -> completed | failed, pending -> cancelled. A pending
# task may also fail directly when routing or a dependency fails before work starts.
_TRANSITIONS = {
    TaskStatus.PENDING: {TaskStatus.RUNNING, TaskStatus.CANCELLED, TaskStatus.FAILED},
    TaskStatus.RUNNING: {TaskStatus.COMPLETED, TaskStatus.FAILED},
}


def new_task_id() -> str:
    return f"task-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class TaskStore:
    """Maps task id to task record and enforces the state machine."""

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT) -> None:
        self.default_timeout = default_timeout
        self._tasks: Dict[str, Task] = {}
        self._sequence = itertools.count()

    def create_task(self, config: TaskConfig | Mapping[str, Any]) -> Task:
        if not isinstance(config, TaskConfig):
            config = TaskConfig.from_mapping(config)
        missing = [dep for dep in config.dependencies if dep not in self._tasks]
        if missing:
            raise TaskValidationError(f"Unknown dependency id(s): {', '.join(missing)}")
        timeout = config.timeout if config.timeout is not None else self.default_timeout
        if timeout <= 0:
            raise TaskValidationError("Task timeout must be positive")
        task = Task(
            id=new_task_id(),
            type=config.type,
            priority=config.priority,
            data=coerce_payload(config.type, config.data if config.data is not None else {}),
            required_agents=tuple(config.required_agents),
            optional_agents=tuple(config.optional_agents),
            dependencies=tuple(dict.fromkeys(config.dependencies)),
            timeout=timeout,
            created_at=utcnow(),
            sequence=next(self._sequence),
        )
        self._tasks[task.id] = task
        logger.debug("Created task %s (%s, %s)", task.id, task.type.value, task.priority.value)
        return task

    def get(self, task_id: str) -> Task:
        try:
            return self._tasks[task_id]
        except KeyError as exc:
            raise KeyError(f"Task {task_id} not found") from exc

    def transition(self, task: Task, status: TaskStatus, *, now: datetime | None = None) -> Task:
        allowed = _TRANSITIONS.get(task.status, set())
        if status not in allowed:
            raise TaskStateError(f"Task {task.id} cannot move from {task.status.value} to {status.value}")
        now = now or utcnow()
        task.status = status
        if status == TaskStatus.RUNNING:
            task.started_at = now
        elif status.terminal:
            task.finished_at = now
        return task

    def complete(self, task: Task, result: Any) -> Task:
        self.transition(task, TaskStatus.COMPLETED)
        task.result = result
        task.progress = 100
        return task

    def fail(self, task: Task, error: str, reason: str | None = None) -> Task:
        self.transition(task, TaskStatus.FAILED)
        task.error = error
        task.error_reason = reason
        return task

    def cancel(self, task: Task) -> Task:
        if task.status != TaskStatus.PENDING:
            raise TaskStateError(f"Task {task.id} is {task.status.value}; only pending tasks can be cancelled")
        return self.transition(task, TaskStatus.CANCELLED)

    def tasks(self, status: TaskStatus | None = None) -> List[Task]:
        if status is None:
            return list(self._tasks.values())
        return [task for task in self._tasks.values() if task.status == status]

    def counts(self) -> Dict[str, int]:
        return task_counts(list(self._tasks.values()))

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(list(self._tasks.values()))
