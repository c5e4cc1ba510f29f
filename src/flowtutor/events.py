"""Typed lifecycle events and the outbound channel observers read from."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    ORCHESTRATION_STARTED = "orchestration:started"
    ORCHESTRATION_COMPLETED = "orchestration:completed"
    ORCHESTRATION_FAILED = "orchestration:failed"
    TASK_CREATED = "task:created"
    TASK_STARTED = "task:started"
    TASK_COMPLETED = "task:completed"
    TASK_FAILED = "task:failed"
    TASK_CANCELLED = "task:cancelled"
    AGENT_STATUS_CHANGED = "agent:status_changed"
    AGENT_HEALTH_WARNING = "agent:health_warning"
    ORCHESTRATOR_SHUTDOWN = "orchestrator:shutdown"


@dataclass(frozen=True)
class LifecycleEvent:
    """A single notification published on the event channel."""

    kind: EventKind
    task_id: Optional[str] = None
    agent_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "task_id": self.task_id,
            "agent_id": self.agent_id,
            "data": self.data,
            "timestamp": self.timestamp.isoformat(),
        }


class EventChannel:
    """Fan-out of lifecycle events to subscriber queues.

    Subscribers call :meth:`subscribe` and read from the returned queue. A
    bounded history is kept so late subscribers (and tests) can inspect what
    already happened.
    """

    def __init__(self, history_size: int = 500) -> None:
        self._subscribers: List[asyncio.Queue] = []
        self._history: Deque[LifecycleEvent] = deque(maxlen=history_size)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def publish(self, kind: EventKind, **kwargs: Any) -> LifecycleEvent:
        event = LifecycleEvent(kind=kind, **kwargs)
        self._history.append(event)
        for queue in list(self._subscribers):
            queue.put_nowait(event)
        logger.debug("event %s task=%s agent=%s", kind.value, event.task_id, event.agent_id)
        return event

    def history(self, kind: EventKind | None = None) -> List[LifecycleEvent]:
        if kind is None:
            return list(self._history)
        return [event for event in self._history if event.kind == kind]
