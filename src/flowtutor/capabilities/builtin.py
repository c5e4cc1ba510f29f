"""Built-in capabilities backing the default agent registry.

These are deterministic stand-ins for the external services (language model,
video renderer, WCAG checker); swap them through the ``capability`` key of an
agent in the YAML config or the ``flowtutor.capabilities`` entry point group.
"""

from __future__ import annotations

import asyncio
import json
import math
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..pipeline.models import (
    AccessibilityFeatures,
    EducationalContent,
    EducationalStep,
    InteractiveElement,
    QualityReport,
    RoutingDecision,
    SubtitleTrack,
    VideoAsset,
    VideoMetadata,
    VideoScene,
    VideoTimestamp,
    Workflow,
    WorkflowNode,
)
from ..pipeline.transforms import calculate_quality_score, enhance_accessibility, identify_improvements
from ..tasks.payloads import (
    AnalyzeWorkflowPayload,
    CreateVideoPayload,
    EnhanceAccessibilityPayload,
    GenerateContentPayload,
    QualityCheckPayload,
    RouteRequestPayload,
)

NODE_PREFIX = "n8n-nodes-base."
TRIGGER_TYPES = {
    "n8n-nodes-base.cron",
    "n8n-nodes-base.webhook",
    "n8n-nodes-base.manualTrigger",
    "n8n-nodes-base.emailTrigger",
}
BRANCHING_TYPES = {"n8n-nodes-base.if", "n8n-nodes-base.switch"}
LOOP_TYPES = {"n8n-nodes-base.splitInBatches"}
NON_INTEGRATIONS = {"if", "set", "function"}
CONTENT_KEYWORDS = ("content", "cms", "wordpress", "notion", "blog", "ghost")


class BuiltinCapability:
    """Base class; ``delay`` simulates the latency of the real service."""

    payload_type: type = object

    def __init__(self, **kwargs: Any) -> None:
        self.config = kwargs
        self.delay = float(kwargs.get("delay", 0.0))

    async def execute(self, task_type: Any, payload: Any) -> Any:
        if not isinstance(payload, self.payload_type):
            raise TypeError(f"{type(self).__name__} expects {self.payload_type.__name__}")
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.run(payload)

    def run(self, payload: Any) -> Any:  # pragma: no cover - abstract
        raise NotImplementedError


def _short_type(node_type: str) -> str:
    return node_type.replace(NODE_PREFIX, "")


def _slug(text: str) -> str:
    return re.sub(r"\s+", "-", text.strip().lower())


@dataclass
class WorkflowAnalysis:
    node_count: int
    node_types: List[str]
    data_flow: List[Dict[str, Any]]
    complexity: str
    triggers: List[str]
    integrations: List[str]
    business_logic: Dict[str, Any] = field(default_factory=dict)


def analyze_workflow(workflow: Workflow) -> WorkflowAnalysis:
    return WorkflowAnalysis(
        node_count=len(workflow.nodes),
        node_types=list(dict.fromkeys(node.type for node in workflow.nodes)),
        data_flow=data_flow(workflow),
        complexity=assess_complexity(workflow),
        triggers=[node.type for node in workflow.nodes if _is_trigger(node)],
        integrations=list(
            dict.fromkeys(
                _short_type(node.type)
                for node in workflow.nodes
                if _short_type(node.type) not in NON_INTEGRATIONS
            )
        ),
        business_logic=business_logic(workflow),
    )


def _is_trigger(node: WorkflowNode) -> bool:
    return "trigger" in node.type.lower() or node.type in TRIGGER_TYPES


def data_flow(workflow: Workflow) -> List[Dict[str, Any]]:
    flow: List[Dict[str, Any]] = []
    for source, outputs in workflow.connections.items():
        for output_index, targets in enumerate((outputs or {}).get("main") or []):
            for connection in targets or []:
                flow.append(
                    {
                        "source": source,
                        "target": connection.get("node"),
                        "output_index": output_index,
                        "input_index": connection.get("index", 0),
                    }
                )
    return flow


def assess_complexity(workflow: Workflow) -> str:
    node_count = len(workflow.nodes)
    unique_types = len({node.type for node in workflow.nodes})
    score = 0
    if node_count > 10:
        score += 2
    elif node_count > 5:
        score += 1
    if unique_types > 5:
        score += 2
    elif unique_types > 3:
        score += 1
    if any(node.type in BRANCHING_TYPES for node in workflow.nodes):
        score += 2
    if any(node.type in LOOP_TYPES for node in workflow.nodes):
        score += 2
    if score >= 5:
        return "advanced"
    if score >= 2:
        return "intermediate"
    return "beginner"


def business_logic(workflow: Workflow) -> Dict[str, Any]:
    logic: Dict[str, Any] = {
        "purpose": workflow.name,
        "actions": [],
        "data_transformations": [],
        "conditional_logic": [],
    }
    for node in workflow.nodes:
        lowered = node.type.lower()
        if _short_type(lowered) == "if" or "switch" in lowered:
            logic["conditional_logic"].append(
                {
                    "node_id": node.id,
                    "type": node.type,
                    "condition": node.parameters.get("conditions") or node.parameters.get("rules"),
                }
            )
        if "set" in lowered or "function" in lowered:
            logic["data_transformations"].append({"node_id": node.id, "type": node.type})
        logic["actions"].append(
            {"node_id": node.id, "type": node.type, "name": node.name or node.type, "parameters": len(node.parameters)}
        )
    return logic


def estimate_duration(analysis: WorkflowAnalysis) -> int:
    multiplier = {"advanced": 1.5, "intermediate": 1.2}.get(analysis.complexity, 1.0)
    return math.ceil((10 + analysis.node_count * 3) * multiplier)


def prerequisites(analysis: WorkflowAnalysis) -> List[str]:
    items = ["Basic understanding of automation concepts"]
    if any("http" in item.lower() or "api" in item.lower() for item in analysis.integrations):
        items.append("Familiarity with REST APIs")
    if analysis.complexity == "advanced":
        items.append("Experience with workflow automation tools")
    return items


def _audio_description(steps: List[EducationalStep]) -> str:
    spoken = ". ".join(f"Step {index}: {step.title}" for index, step in enumerate(steps, start=1))
    return f"Audio description: This workflow contains {len(steps)} steps. {spoken}"


class WorkflowAnalyzer(BuiltinCapability):
    """Parses an n8n workflow and drafts the educational artifact from its structure."""

    payload_type = AnalyzeWorkflowPayload

    def run(self, payload: AnalyzeWorkflowPayload) -> EducationalContent:
        workflow = payload.workflow
        if not workflow.nodes:
            raise ValueError(f"Workflow '{workflow.name}' has no nodes to analyze")
        analysis = analyze_workflow(workflow)
        complexity = analysis.complexity
        if payload.options.complexity != "auto":
            complexity = payload.options.complexity
        steps = [self._step(index, node) for index, node in enumerate(workflow.nodes, start=1)]
        content = EducationalContent(
            title=workflow.name,
            description=(
                f"Learn how the '{workflow.name}' workflow connects {analysis.node_count} nodes"
                + (f" across {', '.join(analysis.integrations)}." if analysis.integrations else ".")
            ),
            learning_objectives=self._objectives(analysis),
            complexity=complexity,
            estimated_duration=estimate_duration(analysis),
            prerequisites=prerequisites(analysis),
            steps=steps,
        )
        return content.model_copy(update={"interactive_elements": self._interactive_elements(content)})

    def _step(self, index: int, node: WorkflowNode) -> EducationalStep:
        short = _short_type(node.type)
        title = node.name or short
        code = None
        if short in ("function", "code", "functionItem"):
            code = node.parameters.get("functionCode") or node.parameters.get("jsCode")
        return EducationalStep(
            id=f"step-{index}",
            title=title,
            description=f"The '{title}' node runs the {short} operation.",
            node_id=node.id or None,
            code=code,
            explanation=f"{title} receives the output of the previous step and passes its result on.",
        )

    def _objectives(self, analysis: WorkflowAnalysis) -> List[str]:
        objectives = []
        if analysis.triggers:
            objectives.append(f"Understand how {_short_type(analysis.triggers[0])} starts the workflow")
        for integration in analysis.integrations[:3]:
            objectives.append(f"Configure the {integration} integration")
        if analysis.business_logic.get("conditional_logic"):
            objectives.append("Reason about the conditional branches in the workflow")
        return objectives

    def _interactive_elements(self, content: EducationalContent) -> List[InteractiveElement]:
        slug = _slug(content.title)
        return [
            InteractiveElement(
                type="simulation",
                id=f"sim-{slug}",
                title=f"Interactive {content.title} Simulator",
                content={
                    "steps": [step.id for step in content.steps],
                    "simulation_data": [
                        {"step_id": step.id, "sample_data": {"input": "Sample input data", "output": "Sample output data"}}
                        for step in content.steps
                    ],
                },
                accessibility=AccessibilityFeatures(
                    screen_reader_text=f"Interactive simulation of {content.title} workflow",
                    keyboard_navigation=True,
                    high_contrast=True,
                ),
            ),
            InteractiveElement(
                type="diagram",
                id=f"diagram-{slug}",
                title=f"{content.title} Flow Diagram",
                content={
                    "nodes": [{"id": step.id, "title": step.title} for step in content.steps],
                    "edges": [
                        {"source": current.id, "target": following.id, "type": "default"}
                        for current, following in zip(content.steps, content.steps[1:])
                    ],
                },
                accessibility=AccessibilityFeatures(
                    screen_reader_text=f"Flow diagram showing {len(content.steps)} steps of {content.title}",
                    keyboard_navigation=True,
                    high_contrast=True,
                    audio_description=_audio_description(content.steps),
                ),
            ),
        ]


class RequestRouter(BuiltinCapability):
    """Chooses which downstream agent family should shape the content."""

    payload_type = RouteRequestPayload

    def run(self, payload: RouteRequestPayload) -> RoutingDecision:
        text = f"{payload.payload} {json.dumps(payload.context, sort_keys=True)}".lower()
        if any(keyword in text for keyword in CONTENT_KEYWORDS):
            agent = "ContentRouterAgent"
        else:
            agent = "WorkflowRouterAgent"
        return RoutingDecision(agent=agent, tier=payload.tier, notes=f"Routed by keyword match to {agent}")


class ContentGenerator(BuiltinCapability):
    """Stands in for the language model: the analyzer draft is returned as the lesson text."""

    payload_type = GenerateContentPayload

    def run(self, payload: GenerateContentPayload) -> EducationalContent:
        return payload.workflow_analysis


class VideoStoryboarder(BuiltinCapability):
    """Plans the scenes of a tutorial video; rendering itself is left to an external service."""

    payload_type = CreateVideoPayload

    def run(self, payload: CreateVideoPayload) -> VideoAsset:
        request = payload.video_request
        steps = request.steps or payload.content.steps
        duration = max(request.duration, 1)
        slot = duration / max(len(steps), 1)
        scenes = [
            VideoScene(
                id=f"scene-{index}",
                start_time=round((index - 1) * slot, 2),
                end_time=round(index * slot, 2),
                title=step.title,
                description=step.description,
                step_id=step.id,
            )
            for index, step in enumerate(steps, start=1)
        ]
        asset_id = uuid.uuid4().hex[:12]
        subtitles = []
        if request.accessibility:
            subtitles.append(
                SubtitleTrack(language="en", url=f"/videos/{asset_id}/subtitles.vtt", accessibility=True)
            )
        return VideoAsset(
            id=asset_id,
            title=request.title,
            duration=duration,
            resolution=request.resolution,
            accessibility=AccessibilityFeatures(
                screen_reader_text=f"Tutorial video: {request.title}",
                keyboard_navigation=True,
                high_contrast=request.accessibility,
                audio_description=_audio_description(steps),
            ),
            metadata=VideoMetadata(
                scenes=scenes,
                timestamps=[
                    VideoTimestamp(time=scene.start_time, step_id=scene.step_id or scene.id, title=scene.title)
                    for scene in scenes
                ],
                subtitles=subtitles,
            ),
        )


class AccessibilityEnhancer(BuiltinCapability):
    payload_type = EnhanceAccessibilityPayload

    def run(self, payload: EnhanceAccessibilityPayload) -> EducationalContent:
        return enhance_accessibility(payload.content, payload.accessibility_needs)


class QualityReviewer(BuiltinCapability):
    payload_type = QualityCheckPayload

    def run(self, payload: QualityCheckPayload) -> QualityReport:
        return QualityReport(
            score=calculate_quality_score(payload.content),
            improvements=identify_improvements(payload.content),
        )
