"""Task primitives."""

from .base import OrchestrationResult, ResourceUsage, Task, TaskConfig, TaskPriority, TaskStatus, TaskType
from .router import TaskRouter
from .scheduler import Scheduler
from .store import TaskStore

__all__ = [
    "OrchestrationResult",
    "ResourceUsage",
    "Scheduler",
    "Task",
    "TaskConfig",
    "TaskPriority",
    "TaskRouter",
    "TaskStatus",
    "TaskStore",
    "TaskType",
]
