"""Agent records and the capability interface they expose."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Protocol, runtime_checkable


class AgentType(str, Enum):
    """Closed set of capability types an agent can provide."""

    WORKFLOW_ANALYSIS = "workflow_analysis"
    CONTENT_GENERATION = "content_generation"
    VIDEO_GENERATION = "video_generation"
    ACCESSIBILITY_ENHANCEMENT = "accessibility_enhancement"
    ROUTING = "routing"
    QUALITY_ASSURANCE = "quality_assurance"


class AgentStatus(str, Enum):
    IDLE = "idle"
    BUSY = "busy"
    ERROR = "error"
    OFFLINE = "offline"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@runtime_checkable
class Capability(Protocol):
    """External function an agent exposes to perform work.

    Implementations raise to signal failure; the router wraps whatever they
    raise. Calls must be safe to retry at the call site.
    """

    async def execute(self, task_type: Any, payload: Any) -> Any:  # pragma: no cover - interface
        ...


@dataclass
class Agent:
    """A named, typed execution capability with mutable status and health."""

    id: str
    name: str
    type: AgentType
    priority: int = 5
    capabilities: List[str] = field(default_factory=list)
    version: str = "1.0.0"
    status: AgentStatus = AgentStatus.IDLE
    health_score: float = 100.0
    last_activity: datetime = field(default_factory=utcnow)

    @property
    def available(self) -> bool:
        return self.status not in (AgentStatus.ERROR, AgentStatus.OFFLINE)

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "status": self.status.value,
            "health_score": self.health_score,
            "last_activity": self.last_activity.isoformat(),
            "version": self.version,
        }
