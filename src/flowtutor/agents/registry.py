"""Registry that keeps track of agents and the capabilities bound to them."""

from __future__ import annotations

import logging
from datetime import datetime
from importlib.metadata import entry_points
from typing import Callable, Dict, Iterator, List, Optional

from ..config import AgentSpec, OrchestratorConfig, instantiate_from_path
from ..events import EventChannel, EventKind
from .base import Agent, AgentStatus, AgentType, Capability, utcnow

logger = logging.getLogger(__name__)

CapabilityFactory = Callable[[], Capability]


class AgentRegistry:
    """Static catalog of agents, created once at process start.

    Capabilities are stored as factories and instantiated lazily the first
    time the router needs them. Agents are never removed.
    """

    def __init__(self, events: EventChannel | None = None) -> None:
        self.events = events or EventChannel()
        self._agents: Dict[str, Agent] = {}
        self._factories: Dict[str, CapabilityFactory] = {}
        self._instances: Dict[str, Capability] = {}

    @classmethod
    def from_config(cls, config: OrchestratorConfig, events: EventChannel | None = None) -> "AgentRegistry":
        registry = cls(events)
        for spec in config.agents.values():
            registry.register_from_spec(spec)
        logger.info("Initialized %d agents", len(registry))
        return registry

    def register(
        self,
        agent: Agent,
        capability: Capability | None = None,
        *,
        factory: CapabilityFactory | None = None,
        overwrite: bool = False,
    ) -> Agent:
        if agent.id in self._agents and not overwrite:
            raise ValueError(f"Agent {agent.id} already registered")
        self._agents[agent.id] = agent
        self._instances.pop(agent.id, None)
        if capability is not None:
            self._instances[agent.id] = capability
        elif factory is not None:
            self._factories[agent.id] = factory
        return agent

    def register_from_spec(self, spec: AgentSpec) -> Agent:
        def factory() -> Capability:
            instance = instantiate_from_path(spec.capability, **spec.params)
            if not isinstance(instance, Capability):  # pragma: no cover - guard
                raise TypeError(f"Capability for '{spec.id}' must define an async execute()")
            return instance

        agent = Agent(
            id=spec.id,
            name=spec.name,
            type=spec.type,
            priority=spec.priority,
            capabilities=list(spec.capabilities),
            version=spec.version,
        )
        return self.register(agent, factory=factory, overwrite=True)

    def bind(self, agent_id: str, capability: Capability) -> None:
        """Replace the capability behind an already registered agent."""

        self.get(agent_id)
        self._factories.pop(agent_id, None)
        self._instances[agent_id] = capability

    def discover_entrypoints(self, group: str = "flowtutor.capabilities") -> None:
        """Bind capabilities published by installed packages.

        The entry point name must be the id of a registered agent and point to
        a class (instantiated without arguments) or to a capability instance.
        """
        for ep in entry_points(group=group):
            if ep.name not in self._agents:
                logger.warning("Entry point %s does not name a registered agent", ep.name)
                continue
            target = ep.load()
            self.bind(ep.name, target() if isinstance(target, type) else target)
            logger.info("Bound capability %s to agent %s", ep.value, ep.name)

    def get(self, agent_id: str) -> Agent:
        try:
            return self._agents[agent_id]
        except KeyError as exc:
            raise KeyError(f"Agent {agent_id} not registered") from exc

    def for_type(self, agent_type: AgentType) -> Optional[Agent]:
        """Highest-priority agent providing ``agent_type``, if any."""

        candidates = [agent for agent in self._agents.values() if agent.type == agent_type]
        if not candidates:
            return None
        return max(candidates, key=lambda agent: agent.priority)

    def capability(self, agent_id: str) -> Optional[Capability]:
        if agent_id in self._instances:
            return self._instances[agent_id]
        factory = self._factories.get(agent_id)
        if factory is None:
            return None
        instance = factory()
        self._instances[agent_id] = instance
        return instance

    def set_status(self, agent_id: str, status: AgentStatus, *, now: datetime | None = None) -> Agent:
        agent = self.get(agent_id)
        agent.status = status
        agent.last_activity = now or utcnow()
        self.events.publish(EventKind.AGENT_STATUS_CHANGED, agent_id=agent_id, data={"status": status.value})
        return agent

    def agents(self) -> List[Agent]:
        return list(self._agents.values())

    def __contains__(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def __iter__(self) -> Iterator[Agent]:
        return iter(list(self._agents.values()))

    def __len__(self) -> int:
        return len(self._agents)
