"""Task router: resolves the agent for a task type and invokes its capability."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, Optional, Tuple

from ..agents.base import Agent, AgentStatus, AgentType, Capability
from ..agents.registry import AgentRegistry
from ..errors import AGENT_UNAVAILABLE, CAPABILITY_FAILED, TIMEOUT
from ..events import EventKind
from .base import OrchestrationResult, ResourceUsage, Task, TaskStatus, TaskType
from .store import TaskStore

logger = logging.getLogger(__name__)

TASK_CAPABILITIES: Dict[TaskType, AgentType] = {
    TaskType.ANALYZE_WORKFLOW: AgentType.WORKFLOW_ANALYSIS,
    TaskType.GENERATE_CONTENT: AgentType.CONTENT_GENERATION,
    TaskType.CREATE_VIDEO: AgentType.VIDEO_GENERATION,
    TaskType.ENHANCE_ACCESSIBILITY: AgentType.ACCESSIBILITY_ENHANCEMENT,
    TaskType.QUALITY_CHECK: AgentType.QUALITY_ASSURANCE,
    TaskType.ROUTE_REQUEST: AgentType.ROUTING,
}

BASE_COSTS: Dict[TaskType, float] = {
    TaskType.ANALYZE_WORKFLOW: 0.10,
    TaskType.GENERATE_CONTENT: 0.50,
    TaskType.CREATE_VIDEO: 2.00,
    TaskType.ENHANCE_ACCESSIBILITY: 0.20,
    TaskType.QUALITY_CHECK: 0.15,
    TaskType.ROUTE_REQUEST: 0.05,
}


def task_cost(task_type: TaskType, elapsed_seconds: float) -> float:
    """Base cost of the task type, scaled by elapsed minutes past the first."""

    return BASE_COSTS.get(task_type, 0.10) * max(1.0, elapsed_seconds / 60.0)


class TaskRouter:
    """Dispatches a task to the agent registered for its type.

    Task failures are recorded on the task and returned in the
    :class:`OrchestrationResult`; they are never raised from :meth:`dispatch`.
    """

    def __init__(self, registry: AgentRegistry, store: TaskStore) -> None:
        self.registry = registry
        self.store = store
        self.events = registry.events

    def resolve(self, task: Task) -> Tuple[Optional[Agent], Optional[Capability]]:
        agent_type = TASK_CAPABILITIES.get(task.type)
        if agent_type is None:
            return None, None
        agent = self.registry.for_type(agent_type)
        if agent is None or not agent.available:
            return agent, None
        return agent, self.registry.capability(agent.id)

    async def dispatch(self, task: Task) -> OrchestrationResult:
        if task.status != TaskStatus.PENDING:
            logger.debug("Skipping task %s, already %s", task.id, task.status.value)
            return OrchestrationResult.from_task(task)
        agent, capability = self.resolve(task)
        if agent is None or capability is None:
            label = agent.id if agent else TASK_CAPABILITIES.get(task.type, task.type.value)
            self.store.fail(task, f"{AGENT_UNAVAILABLE}: no usable agent for {task.type.value} ({label})", AGENT_UNAVAILABLE)
            logger.warning("Routing failed for task %s: %s", task.id, task.error)
            self.events.publish(EventKind.TASK_FAILED, task_id=task.id, data=task.snapshot())
            return OrchestrationResult.from_task(task)

        self.store.transition(task, TaskStatus.RUNNING)
        task.agent_id = agent.id
        self.registry.set_status(agent.id, AgentStatus.BUSY)
        self.events.publish(EventKind.TASK_STARTED, task_id=task.id, agent_id=agent.id)
        logger.debug("Task %s started on %s", task.id, agent.id)
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(capability.execute(task.type, task.data), timeout=task.timeout)
        except asyncio.TimeoutError:
            self._record_failure(task, agent, f"{TIMEOUT}: exceeded {task.timeout:g}s", TIMEOUT)
            return OrchestrationResult.from_task(task)
        except asyncio.CancelledError:
            self._record_failure(task, agent, "interrupted before completion", CAPABILITY_FAILED)
            raise
        except Exception as exc:
            self._record_failure(task, agent, f"{type(exc).__name__}: {exc}", CAPABILITY_FAILED)
            return OrchestrationResult.from_task(task)

        elapsed = time.perf_counter() - started
        self.registry.set_status(agent.id, AgentStatus.IDLE)
        self.store.complete(task, result)
        self.events.publish(EventKind.TASK_COMPLETED, task_id=task.id, agent_id=agent.id, data={"execution_time": elapsed})
        logger.info("Task %s (%s) completed in %.3fs", task.id, task.type.value, elapsed)
        usage = ResourceUsage(cpu_time=elapsed, api_calls=1, cost=task_cost(task.type, elapsed))
        return OrchestrationResult.from_task(task, usage)

    def _record_failure(self, task: Task, agent: Agent, message: str, reason: str) -> None:
        self.registry.set_status(agent.id, AgentStatus.ERROR)
        self.store.fail(task, message, reason)
        logger.warning("Task %s (%s) failed on %s: %s", task.id, task.type.value, agent.id, message)
        self.events.publish(EventKind.TASK_FAILED, task_id=task.id, agent_id=agent.id, data=task.snapshot())
