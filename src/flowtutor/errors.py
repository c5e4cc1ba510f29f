"""Exception hierarchy shared by the orchestrator, router and pipeline."""

from __future__ import annotations

from typing import Optional

AGENT_UNAVAILABLE = "agent unavailable"
TIMEOUT = "timeout"
CAPABILITY_FAILED = "capability error"
DEPENDENCY_FAILED = "dependency failed"
SHUT_DOWN = "orchestrator shut down"


class OrchestrationError(RuntimeError):
    """Base class for every error raised by the orchestration engine."""

    reason: Optional[str] = None


class TaskValidationError(OrchestrationError, ValueError):
    """Raised synchronously when a task configuration is rejected."""


class TaskStateError(OrchestrationError):
    """Raised on an illegal task state transition."""


class TaskExecutionError(OrchestrationError):
    """A task reached ``failed``; ``reason`` tells infra and business failures apart."""

    def __init__(self, message: str, *, task_id: str | None = None) -> None:
        super().__init__(message)
        self.task_id = task_id


class RoutingError(TaskExecutionError):
    reason = AGENT_UNAVAILABLE


class CapabilityError(TaskExecutionError):
    reason = CAPABILITY_FAILED


class TaskTimeoutError(TaskExecutionError):
    reason = TIMEOUT


class DependencyFailedError(TaskExecutionError):
    reason = DEPENDENCY_FAILED


class ShutdownError(TaskExecutionError):
    """The orchestrator stopped admitting work before the task could run."""

    reason = SHUT_DOWN


class PipelineError(OrchestrationError):
    """Raised when a non-optional pipeline phase fails; no artifact is produced."""

    def __init__(self, phase: str, message: str, *, task_id: str | None = None) -> None:
        super().__init__(f"{phase} phase failed: {message}")
        self.phase = phase
        self.task_id = task_id
        self.detail = message
