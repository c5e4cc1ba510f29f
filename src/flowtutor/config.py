"""Configuration helpers for the orchestration engine."""

from __future__ import annotations

import importlib
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

import yaml

from .agents.base import AgentType


class ConfigError(RuntimeError):
    """Raised when configuration files are invalid."""


_BUILTIN = "flowtutor.capabilities.builtin"


@dataclass
class SchedulerSpec:
    """Concurrency ceiling and default per-task timeout (seconds)."""

    max_concurrent_tasks: int = 5
    default_timeout: float = 300.0

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "SchedulerSpec":
        if not data:
            return cls()
        spec = cls(
            max_concurrent_tasks=int(data.get("max_concurrent_tasks", 5)),
            default_timeout=float(data.get("default_timeout", 300.0)),
        )
        if spec.max_concurrent_tasks < 1:
            raise ConfigError("scheduler.max_concurrent_tasks must be at least 1")
        if spec.default_timeout <= 0:
            raise ConfigError("scheduler.default_timeout must be positive")
        return spec


@dataclass
class HealthSpec:
    """Health monitor tick interval (seconds) and warning threshold."""

    interval: float = 60.0
    warning_threshold: float = 50.0

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "HealthSpec":
        if not data:
            return cls()
        spec = cls(
            interval=float(data.get("interval", 60.0)),
            warning_threshold=float(data.get("warning_threshold", 50.0)),
        )
        if spec.interval <= 0:
            raise ConfigError("health.interval must be positive")
        return spec


@dataclass
class AgentSpec:
    """Definition of a registered agent and the capability bound to it."""

    id: str
    name: str
    type: AgentType
    capability: str
    priority: int = 5
    version: str = "1.0.0"
    capabilities: List[str] = field(default_factory=list)
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, agent_id: str, data: Mapping[str, Any]) -> "AgentSpec":
        if "type" not in data:
            raise ConfigError(f"Agent '{agent_id}' requires a type")
        try:
            agent_type = AgentType(data["type"])
        except ValueError as exc:
            raise ConfigError(f"Agent '{agent_id}' has unknown type '{data['type']}'") from exc
        capability = data.get("capability") or DEFAULT_CAPABILITIES[agent_type]
        if ":" not in capability:
            raise ConfigError(f"Agent '{agent_id}' capability must use module:qualname format")
        return cls(
            id=agent_id,
            name=str(data.get("name", agent_id)),
            type=agent_type,
            capability=capability,
            priority=int(data.get("priority", 5)),
            version=str(data.get("version", "1.0.0")),
            capabilities=list(data.get("capabilities", [])),
            params=dict(data.get("params", {})),
        )


DEFAULT_CAPABILITIES: Dict[AgentType, str] = {
    AgentType.ROUTING: f"{_BUILTIN}:RequestRouter",
    AgentType.WORKFLOW_ANALYSIS: f"{_BUILTIN}:WorkflowAnalyzer",
    AgentType.CONTENT_GENERATION: f"{_BUILTIN}:ContentGenerator",
    AgentType.VIDEO_GENERATION: f"{_BUILTIN}:VideoStoryboarder",
    AgentType.ACCESSIBILITY_ENHANCEMENT: f"{_BUILTIN}:AccessibilityEnhancer",
    AgentType.QUALITY_ASSURANCE: f"{_BUILTIN}:QualityReviewer",
}

DEFAULT_AGENTS: Dict[str, Dict[str, Any]] = {
    "tambo-mcp-router": {
        "name": "Tambo MCP Router",
        "type": "routing",
        "priority": 10,
        "capabilities": ["routing", "component_management", "api_integration"],
    },
    "n8n-workflow-analyzer": {
        "name": "N8N Workflow Analyzer",
        "type": "workflow_analysis",
        "priority": 9,
        "capabilities": ["workflow_parsing", "complexity_analysis", "educational_mapping"],
    },
    "openai-content-generator": {
        "name": "OpenAI Content Generator",
        "type": "content_generation",
        "priority": 8,
        "capabilities": ["text_generation", "educational_content", "accessibility_text"],
    },
    "wan22-video-generator": {
        "name": "Wan2.2 Video Generator",
        "type": "video_generation",
        "priority": 7,
        "capabilities": ["video_generation", "scene_creation", "audio_synthesis"],
    },
    "accessibility-enhancer": {
        "name": "Accessibility Enhancement Agent",
        "type": "accessibility_enhancement",
        "priority": 8,
        "capabilities": ["wcag_compliance", "screen_reader_optimization", "keyboard_navigation"],
    },
    "quality-assurance": {
        "name": "Quality Assurance Agent",
        "type": "quality_assurance",
        "priority": 6,
        "capabilities": ["content_validation", "accessibility_testing", "performance_analysis"],
    },
}


@dataclass
class OrchestratorConfig:
    """Representation of the YAML configuration."""

    name: str
    scheduler: SchedulerSpec
    health: HealthSpec
    agents: Dict[str, AgentSpec]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, default_name: str = "flowtutor") -> "OrchestratorConfig":
        if not isinstance(data, MutableMapping):
            raise ConfigError("Configuration root must be a mapping")
        raw_agents = data.get("agents")
        if raw_agents is None:
            raw_agents = DEFAULT_AGENTS
        if not isinstance(raw_agents, Mapping):
            raise ConfigError("'agents' must be a mapping of agent id to definition")
        agents = {
            agent_id: AgentSpec.from_mapping(agent_id, info or {})
            for agent_id, info in raw_agents.items()
        }
        if not agents:
            raise ConfigError("At least one agent must be defined")
        return cls(
            name=str(data.get("name", default_name)),
            scheduler=SchedulerSpec.from_mapping(data.get("scheduler")),
            health=HealthSpec.from_mapping(data.get("health")),
            agents=agents,
        )

    @classmethod
    def from_yaml(cls, text: str) -> "OrchestratorConfig":
        return cls.from_mapping(yaml.safe_load(text) or {})

    @classmethod
    def from_file(cls, path: str | pathlib.Path) -> "OrchestratorConfig":
        path = pathlib.Path(path)
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
        return cls.from_mapping(data, default_name=path.stem)

    @classmethod
    def default(cls) -> "OrchestratorConfig":
        return cls.from_mapping({})


def import_string(path: str) -> Any:
    """Return attribute from module specified by path "module:qualname"."""

    if ":" not in path:
        raise ConfigError(f"Import path '{path}' must use module:qualname format")
    module_path, attr = path.split(":", 1)
    module = importlib.import_module(module_path)
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigError(f"Module '{module_path}' has no attribute '{attr}'") from exc


def instantiate_from_path(path: str, *args: Any, **kwargs: Any) -> Any:
    """Import and instantiate a class given its dotted path."""

    cls = import_string(path)
    return cls(*args, **kwargs)
