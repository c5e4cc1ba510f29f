"""High-level orchestration: owns the registry, task store, scheduler and health monitor."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Iterable, List, Mapping

from .agents.base import Agent, AgentStatus
from .agents.health import HealthMonitor
from .agents.registry import AgentRegistry
from .config import OrchestratorConfig
from .errors import ShutdownError
from .events import EventChannel, EventKind
from .tasks.base import OrchestrationResult, Task, TaskConfig
from .tasks.router import TaskRouter
from .tasks.scheduler import Scheduler
from .tasks.store import TaskStore

logger = logging.getLogger(__name__)


class Orchestrator:
    """Explicitly constructed orchestration engine.

    Use as ``async with Orchestrator(config) as orchestrator:`` or call
    :meth:`start` and :meth:`shutdown` yourself. Nothing is global: each
    instance has its own agents, tasks and event channel.
    """

    def __init__(
        self,
        config: OrchestratorConfig | None = None,
        *,
        registry: AgentRegistry | None = None,
        events: EventChannel | None = None,
    ) -> None:
        self.config = config or OrchestratorConfig.default()
        self.events = events or (registry.events if registry else EventChannel())
        self.registry = registry or AgentRegistry.from_config(self.config, self.events)
        self.store = TaskStore(default_timeout=self.config.scheduler.default_timeout)
        self.router = TaskRouter(self.registry, self.store)
        self.scheduler = Scheduler(
            self.store, self.router, max_concurrent=self.config.scheduler.max_concurrent_tasks
        )
        self.health = HealthMonitor(
            self.registry,
            interval=self.config.health.interval,
            warning_threshold=self.config.health.warning_threshold,
        )
        self._started_at = time.monotonic()

    async def start(self) -> "Orchestrator":
        self.scheduler.reopen()
        self.health.start()
        logger.info("Orchestrator %s started with %d agents", self.config.name, len(self.registry))
        return self

    async def shutdown(self) -> None:
        await self.health.stop()
        await self.scheduler.drain()
        self.events.publish(EventKind.ORCHESTRATOR_SHUTDOWN)
        logger.info("Orchestrator %s shut down", self.config.name)

    async def __aenter__(self) -> "Orchestrator":
        return await self.start()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.shutdown()

    def create_task(self, config: TaskConfig | Mapping[str, Any]) -> Task:
        """Validate, store and enqueue a task; it is dispatched once its dependencies complete."""

        if self.scheduler.closed:
            raise ShutdownError(f"Orchestrator {self.config.name} is shut down; call start() to accept tasks")
        task = self.store.create_task(config)
        self.events.publish(EventKind.TASK_CREATED, task_id=task.id, data=task.snapshot())
        self.scheduler.submit(task)
        return task

    def create_parallel_tasks(self, configs: Iterable[TaskConfig | Mapping[str, Any]]) -> List[Task]:
        return [self.create_task(config) for config in configs]

    async def execute_task(self, task: Task | str) -> OrchestrationResult:
        """Wait for ``task`` to reach a terminal state and return its result."""

        task_id = task if isinstance(task, str) else task.id
        return await self.scheduler.wait(task_id)

    async def execute_batch(self, tasks: Iterable[Task | str]) -> List[OrchestrationResult]:
        return list(await asyncio.gather(*(self.execute_task(task) for task in tasks)))

    def cancel_task(self, task_id: str) -> Task:
        return self.scheduler.cancel(task_id)

    def get_task(self, task_id: str) -> Task:
        return self.store.get(task_id)

    def reset_agent(self, agent_id: str) -> Agent:
        """Return an agent in ``error`` back to ``idle`` so it can be routed to again."""

        agent = self.registry.get(agent_id)
        if agent.status == AgentStatus.ERROR:
            self.registry.set_status(agent_id, AgentStatus.IDLE)
            logger.info("Agent %s reset to idle", agent_id)
        return agent

    def get_status(self) -> Dict[str, Any]:
        """Point-in-time snapshot of agents and task counts; read-only."""

        return {
            "is_processing": self.scheduler.is_processing,
            "queue_length": self.scheduler.queue_length,
            "running": self.scheduler.running_count,
            "max_concurrent_tasks": self.scheduler.max_concurrent,
            "agents": [agent.snapshot() for agent in self.registry],
            "tasks": self.store.counts(),
            "uptime": time.monotonic() - self._started_at,
        }
