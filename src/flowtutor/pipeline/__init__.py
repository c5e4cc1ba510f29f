"""Five-phase pipeline that turns a workflow into an educational artifact."""

from .models import EducationalContent, PipelineOptions, PipelineRequest, UserPreferences, Workflow

__all__ = ["EducationalContent", "PipelineOptions", "PipelineRequest", "UserPreferences", "Workflow"]
