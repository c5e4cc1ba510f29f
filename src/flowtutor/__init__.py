"""Task orchestration engine that turns automation workflows into tutorials."""

from importlib import metadata

from .config import OrchestratorConfig
from .orchestrator import Orchestrator
from .pipeline.storybook import StorybookPipeline

try:
    __version__ = metadata.version("flowtutor")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for dev
    __version__ = "0.0.0"

__all__ = ["Orchestrator", "OrchestratorConfig", "StorybookPipeline", "__version__"]
