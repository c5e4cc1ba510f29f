"""Periodic health scoring of registered agents."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable, List, Tuple

from ..events import EventKind
from .base import utcnow

if TYPE_CHECKING:  # pragma: no cover
    from .registry import AgentRegistry

logger = logging.getLogger(__name__)


def inactivity_score(last_activity: datetime, now: datetime) -> float:
    """Score drops by one point per minute since ``last_activity``, floored at zero."""

    minutes = (now - last_activity).total_seconds() / 60.0
    return max(0.0, 100.0 - minutes)


class HealthMonitor:
    """Ages each agent's health score on a fixed interval.

    Advisory only: a low score emits ``agent:health_warning`` on the event
    channel but never touches agent status or scheduling.
    """

    def __init__(
        self,
        registry: "AgentRegistry",
        *,
        interval: float = 60.0,
        warning_threshold: float = 50.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.registry = registry
        self.interval = interval
        self.warning_threshold = warning_threshold
        self.clock = clock
        self._task: asyncio.Task | None = None

    def check(self, now: datetime | None = None) -> List[Tuple[str, float]]:
        """Run one tick; return ``(agent_id, score)`` for every warning emitted."""

        now = now or self.clock()
        warnings: List[Tuple[str, float]] = []
        for agent in self.registry:
            agent.health_score = inactivity_score(agent.last_activity, now)
            if agent.health_score < self.warning_threshold:
                warnings.append((agent.id, agent.health_score))
                logger.warning("Agent %s health at %.1f", agent.id, agent.health_score)
                self.registry.events.publish(
                    EventKind.AGENT_HEALTH_WARNING,
                    agent_id=agent.id,
                    data={"health_score": agent.health_score},
                )
        return warnings

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="flowtutor-health-monitor")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            self.check()
