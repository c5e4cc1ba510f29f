"""Agent package exports."""

from .base import Agent, AgentStatus, AgentType, Capability
from .health import HealthMonitor

__all__ = ["Agent", "AgentStatus", "AgentType", "Capability", "HealthMonitor"]
