"""Typed payloads, one per task kind.

``PAYLOAD_TYPES`` is the closed mapping the task store validates against, so
adding a phase means adding a payload model here rather than a new string
branch in the router.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..errors import TaskValidationError
from ..pipeline.models import (
    EducationalContent,
    PipelineOptions,
    RoutingDecision,
    UserPreferences,
    VideoRequest,
    Workflow,
)
from .base import TaskType


class TaskPayload(BaseModel):
    model_config = ConfigDict(frozen=True)


class AnalyzeWorkflowPayload(TaskPayload):
    workflow: Workflow
    options: PipelineOptions = Field(default_factory=PipelineOptions)


class RouteRequestPayload(TaskPayload):
    payload: str
    tier: str = "Pro"
    context: Dict[str, Any] = Field(default_factory=dict)


class GenerateContentPayload(TaskPayload):
    workflow_analysis: EducationalContent
    routing_context: Optional[RoutingDecision] = None
    options: PipelineOptions = Field(default_factory=PipelineOptions)
    user_preferences: Optional[UserPreferences] = None


class CreateVideoPayload(TaskPayload):
    content: EducationalContent
    video_request: VideoRequest


class EnhanceAccessibilityPayload(TaskPayload):
    content: EducationalContent
    accessibility_needs: List[str] = Field(default_factory=list)


class QualityCheckPayload(TaskPayload):
    content: EducationalContent


PAYLOAD_TYPES: Dict[TaskType, Type[TaskPayload]] = {
    TaskType.ANALYZE_WORKFLOW: AnalyzeWorkflowPayload,
    TaskType.ROUTE_REQUEST: RouteRequestPayload,
    TaskType.GENERATE_CONTENT: GenerateContentPayload,
    TaskType.CREATE_VIDEO: CreateVideoPayload,
    TaskType.ENHANCE_ACCESSIBILITY: EnhanceAccessibilityPayload,
    TaskType.QUALITY_CHECK: QualityCheckPayload,
}


def coerce_payload(task_type: TaskType, data: Any) -> TaskPayload:
    """Return ``data`` as the payload model registered for ``task_type``."""

    payload_cls = PAYLOAD_TYPES[task_type]
    if isinstance(data, payload_cls):
        return data
    if isinstance(data, TaskPayload):
        raise TaskValidationError(
            f"{task_type.value} expects {payload_cls.__name__}, got {type(data).__name__}"
        )
    if not isinstance(data, Mapping):
        raise TaskValidationError(f"{task_type.value} payload must be a mapping or {payload_cls.__name__}")
    try:
        return payload_cls.model_validate(data)
    except ValidationError as exc:
        raise TaskValidationError(f"Invalid {task_type.value} payload: {exc}") from exc
