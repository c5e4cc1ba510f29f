"""Task dataclasses used by the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ..agents.base import AgentType
from ..errors import (
    AGENT_UNAVAILABLE,
    DEPENDENCY_FAILED,
    SHUT_DOWN,
    TIMEOUT,
    CapabilityError,
    DependencyFailedError,
    RoutingError,
    ShutdownError,
    TaskTimeoutError,
    TaskValidationError,
)


class TaskType(str, Enum):
    ANALYZE_WORKFLOW = "analyze_workflow"
    GENERATE_CONTENT = "generate_content"
    CREATE_VIDEO = "create_video"
    ENHANCE_ACCESSIBILITY = "enhance_accessibility"
    QUALITY_CHECK = "quality_check"
    ROUTE_REQUEST = "route_request"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Lower rank is dispatched first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.CRITICAL: 0,
    TaskPriority.HIGH: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 3,
}


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED)


DEFAULT_TIMEOUT = 300.0


def _enum_list(values: Any, enum_cls: type, label: str) -> Tuple[Any, ...]:
    try:
        return tuple(enum_cls(value) for value in (values or ()))
    except ValueError as exc:
        raise TaskValidationError(f"Invalid {label}: {exc}") from exc


@dataclass
class TaskConfig:
    """Caller-supplied description of a task before it enters the store."""

    type: TaskType
    data: Any = None
    priority: TaskPriority = TaskPriority.MEDIUM
    required_agents: Tuple[AgentType, ...] = ()
    optional_agents: Tuple[AgentType, ...] = ()
    dependencies: Tuple[str, ...] = ()
    timeout: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TaskConfig":
        if not data.get("type"):
            raise TaskValidationError("Task is missing required key: type")
        try:
            task_type = TaskType(data["type"])
        except ValueError as exc:
            raise TaskValidationError(f"Unknown task type '{data['type']}'") from exc
        try:
            priority = TaskPriority(data.get("priority", TaskPriority.MEDIUM))
        except ValueError as exc:
            raise TaskValidationError(f"Unknown priority '{data.get('priority')}'") from exc
        timeout = data.get("timeout")
        return cls(
            type=task_type,
            data=data.get("data"),
            priority=priority,
            required_agents=_enum_list(data.get("required_agents"), AgentType, "required_agents"),
            optional_agents=_enum_list(data.get("optional_agents"), AgentType, "optional_agents"),
            dependencies=tuple(str(dep) for dep in data.get("dependencies") or ()),
            timeout=float(timeout) if timeout is not None else None,
        )


@dataclass
class Task:
    """A unit of orchestrated work; the task store owns every instance."""

    id: str
    type: TaskType
    priority: TaskPriority
    data: Any
    required_agents: Tuple[AgentType, ...]
    optional_agents: Tuple[AgentType, ...]
    dependencies: Tuple[str, ...]
    timeout: float
    created_at: datetime
    sequence: int
    status: TaskStatus = TaskStatus.PENDING
    progress: int = 0
    agent_id: Optional[str] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    result: Any = None
    error: Optional[str] = None
    error_reason: Optional[str] = None

    def snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "progress": self.progress,
            "dependencies": list(self.dependencies),
            "agent_id": self.agent_id,
            "error": self.error,
            "error_reason": self.error_reason,
        }


@dataclass(frozen=True)
class ResourceUsage:
    cpu_time: float = 0.0
    api_calls: int = 0
    cost: float = 0.0


@dataclass(frozen=True)
class OrchestrationResult:
    """Read-only projection of a terminal task."""

    task_id: str
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_reason: Optional[str] = None
    execution_time: float = 0.0
    resource_usage: ResourceUsage = field(default_factory=ResourceUsage)

    @classmethod
    def from_task(cls, task: Task, usage: ResourceUsage | None = None) -> "OrchestrationResult":
        elapsed = 0.0
        if task.started_at and task.finished_at:
            elapsed = (task.finished_at - task.started_at).total_seconds()
        return cls(
            task_id=task.id,
            success=task.status == TaskStatus.COMPLETED,
            data=task.result,
            error=task.error,
            error_reason=task.error_reason,
            execution_time=elapsed,
            resource_usage=usage or ResourceUsage(),
        )

    def raise_for_error(self) -> "OrchestrationResult":
        """Raise the error matching ``error_reason`` if the task failed."""

        if self.success:
            return self
        error_cls = _REASON_ERRORS.get(self.error_reason or "", CapabilityError)
        raise error_cls(self.error or "task failed", task_id=self.task_id)


_REASON_ERRORS = {
    AGENT_UNAVAILABLE: RoutingError,
    TIMEOUT: TaskTimeoutError,
    DEPENDENCY_FAILED: DependencyFailedError,
    SHUT_DOWN: ShutdownError,
}


def task_counts(tasks: List[Task]) -> Dict[str, int]:
    counts = {status.value: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status.value] += 1
    counts["total"] = len(tasks)
    return counts
