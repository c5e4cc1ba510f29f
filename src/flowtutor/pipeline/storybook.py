"""The five-phase pipeline: analyze, content, video, accessibility, quality."""

from __future__ import annotations

import logging
import time
from typing import Any, List, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..agents.base import AgentType
from ..errors import PipelineError, ShutdownError
from ..events import EventKind
from ..orchestrator import Orchestrator
from ..tasks.base import OrchestrationResult, Task, TaskConfig, TaskPriority, TaskType
from ..tasks.payloads import (
    AnalyzeWorkflowPayload,
    CreateVideoPayload,
    EnhanceAccessibilityPayload,
    GenerateContentPayload,
    QualityCheckPayload,
    RouteRequestPayload,
)
from .models import EducationalContent, PipelineRequest, QualityReport, RoutingDecision, VideoAsset
from .transforms import (
    apply_qa_improvements,
    apply_routing_intelligence,
    build_video_request,
    integrate_video_content,
    personalize_content,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

ANALYSIS = "analysis"
CONTENT = "content"
VIDEO = "video"
ACCESSIBILITY = "accessibility"
QUALITY = "quality"


class StorybookPipeline:
    """Turns one workflow into an educational artifact through the orchestrator.

    Each phase's output feeds the next phase's payload. A failing required
    task aborts the run with :class:`PipelineError`; only the routing task of
    the analysis phase is optional.
    """

    def __init__(self, orchestrator: Orchestrator) -> None:
        self.orchestrator = orchestrator
        self.events = orchestrator.events

    async def create_storybook(self, request: PipelineRequest | Mapping[str, Any]) -> EducationalContent:
        if not isinstance(request, PipelineRequest):
            request = PipelineRequest.model_validate(request)
        run_id = f"storybook-{int(time.time() * 1000)}"
        self.events.publish(
            EventKind.ORCHESTRATION_STARTED, data={"run_id": run_id, "workflow": request.workflow.name}
        )
        logger.info("Starting storybook creation %s for workflow %s", run_id, request.workflow.name)
        try:
            content = await self._run(request)
        except PipelineError as exc:
            self.events.publish(
                EventKind.ORCHESTRATION_FAILED,
                task_id=exc.task_id,
                data={"run_id": run_id, "phase": exc.phase, "error": exc.detail},
            )
            logger.error("Storybook creation %s failed: %s", run_id, exc)
            raise
        self.events.publish(EventKind.ORCHESTRATION_COMPLETED, data={"run_id": run_id, "title": content.title})
        logger.info("Storybook creation %s completed", run_id)
        return content

    async def _run(self, request: PipelineRequest) -> EducationalContent:
        analysis, routing, phase_tasks = await self._analysis_phase(request)
        content, previous = await self._content_phase(request, analysis, routing, phase_tasks)
        if request.options.include_video:
            content, previous = await self._video_phase(request, content, previous)
        if request.options.accessibility:
            content, previous = await self._accessibility_phase(request, content, previous)
        return await self._quality_phase(content, previous)

    async def _analysis_phase(self, request: PipelineRequest):
        analyze_task, route_task = self._submit(
            ANALYSIS,
            TaskConfig(
                type=TaskType.ANALYZE_WORKFLOW,
                data=AnalyzeWorkflowPayload(workflow=request.workflow, options=request.options),
                priority=TaskPriority.CRITICAL,
                required_agents=(AgentType.WORKFLOW_ANALYSIS,),
            ),
            TaskConfig(
                type=TaskType.ROUTE_REQUEST,
                data=RouteRequestPayload(
                    payload=f"Analyze workflow: {request.workflow.name}",
                    tier="Pro",
                    context=request.user_preferences.model_dump(),
                ),
                priority=TaskPriority.MEDIUM,
                required_agents=(AgentType.ROUTING,),
            ),
        )
        analysis_result, routing_result = await self.orchestrator.execute_batch([analyze_task, route_task])
        analysis = self._require(ANALYSIS, analyze_task, analysis_result, EducationalContent)

        routing: Optional[RoutingDecision] = None
        completed: List[Task] = [analyze_task]
        if routing_result.success:
            try:
                routing = self._require(ANALYSIS, route_task, routing_result, RoutingDecision)
                completed.append(route_task)
            except PipelineError as exc:
                logger.warning("Ignoring routing result of %s: %s", route_task.id, exc.detail)
        else:
            logger.warning(
                "Optional routing task %s failed, continuing without it: %s", route_task.id, routing_result.error
            )
        return analysis, routing, completed

    async def _content_phase(self, request, analysis, routing, phase_tasks):
        (task,) = self._submit(
            CONTENT,
            TaskConfig(
                type=TaskType.GENERATE_CONTENT,
                data=GenerateContentPayload(
                    workflow_analysis=analysis,
                    routing_context=routing,
                    options=request.options,
                    user_preferences=request.user_preferences,
                ),
                priority=TaskPriority.HIGH,
                required_agents=(AgentType.CONTENT_GENERATION,),
                optional_agents=(AgentType.ACCESSIBILITY_ENHANCEMENT,),
                dependencies=tuple(item.id for item in phase_tasks),
            )
        )
        result = await self.orchestrator.execute_task(task)
        draft: EducationalContent = self._require(CONTENT, task, result, EducationalContent)
        content = personalize_content(apply_routing_intelligence(draft, routing), request.user_preferences)
        return content, task

    async def _video_phase(self, request, content, previous):
        (task,) = self._submit(
            VIDEO,
            TaskConfig(
                type=TaskType.CREATE_VIDEO,
                data=CreateVideoPayload(content=content, video_request=build_video_request(content, request.options)),
                priority=TaskPriority.MEDIUM,
                required_agents=(AgentType.VIDEO_GENERATION,),
                dependencies=(previous.id,),
            )
        )
        video: VideoAsset = self._require(VIDEO, task, await self.orchestrator.execute_task(task), VideoAsset)
        return integrate_video_content(content, video), task

    async def _accessibility_phase(self, request, content, previous):
        (task,) = self._submit(
            ACCESSIBILITY,
            TaskConfig(
                type=TaskType.ENHANCE_ACCESSIBILITY,
                data=EnhanceAccessibilityPayload(
                    content=content, accessibility_needs=request.user_preferences.accessibility_needs
                ),
                priority=TaskPriority.HIGH,
                required_agents=(AgentType.ACCESSIBILITY_ENHANCEMENT,),
                dependencies=(previous.id,),
            )
        )
        enhanced: EducationalContent = self._require(
            ACCESSIBILITY, task, await self.orchestrator.execute_task(task), EducationalContent
        )
        return enhanced, task

    async def _quality_phase(self, content: EducationalContent, previous: Task) -> EducationalContent:
        (task,) = self._submit(
            QUALITY,
            TaskConfig(
                type=TaskType.QUALITY_CHECK,
                data=QualityCheckPayload(content=content),
                priority=TaskPriority.MEDIUM,
                required_agents=(AgentType.QUALITY_ASSURANCE,),
                dependencies=(previous.id,),
            )
        )
        report: QualityReport = self._require(QUALITY, task, await self.orchestrator.execute_task(task), QualityReport)
        improved = apply_qa_improvements(content, report.improvements)
        return improved.model_copy(update={"quality_score": report.score})

    def _submit(self, phase: str, *configs: TaskConfig) -> List[Task]:
        try:
            return self.orchestrator.create_parallel_tasks(configs)
        except ShutdownError as exc:
            raise PipelineError(phase, str(exc)) from exc

    def _require(self, phase: str, task: Task, result: OrchestrationResult, model: Type[ModelT]) -> ModelT:
        if not result.success:
            raise PipelineError(phase, result.error or f"task ended {task.status.value}", task_id=task.id)
        if isinstance(result.data, model):
            return result.data
        try:
            return model.model_validate(result.data)
        except ValidationError as exc:
            raise PipelineError(phase, f"capability returned an invalid {model.__name__}: {exc}", task_id=task.id) from exc
