"""Boundary models for pipeline requests and the educational artifact."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Complexity = Literal["beginner", "intermediate", "advanced"]


class CamelModel(BaseModel):
    """Accepts both snake_case and the camelCase used by n8n exports and the web client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WorkflowNode(CamelModel):
    id: str = ""
    name: str = ""
    type: str
    parameters: Dict[str, Any] = Field(default_factory=dict)


class Workflow(CamelModel):
    """An n8n workflow export."""

    id: str = ""
    name: str = "Unnamed Workflow"
    nodes: List[WorkflowNode] = Field(default_factory=list)
    connections: Dict[str, Any] = Field(default_factory=dict)
    settings: Dict[str, Any] = Field(default_factory=dict)
    pin_data: Optional[Dict[str, Any]] = None
    version_id: Optional[str] = None


class PipelineOptions(CamelModel):
    include_video: bool = False
    accessibility: bool = False
    complexity: Literal["auto", "beginner", "intermediate", "advanced"] = "auto"
    style: Literal["tutorial", "interactive", "documentation"] = "tutorial"
    language: str = "en"


class UserPreferences(CamelModel):
    learning_style: Literal["visual", "auditory", "kinesthetic", "mixed"] = "mixed"
    accessibility_needs: List[str] = Field(default_factory=list)
    preferred_language: str = "en"
    experience_level: Complexity = "intermediate"


class PipelineRequest(CamelModel):
    """Build an educational artifact from ``workflow``."""

    workflow: Workflow
    options: PipelineOptions = Field(default_factory=PipelineOptions)
    user_preferences: UserPreferences = Field(default_factory=UserPreferences)


class AccessibilityFeatures(CamelModel):
    screen_reader_text: str = ""
    keyboard_navigation: bool = True
    high_contrast: bool = False
    audio_description: Optional[str] = None


class VisualAid(CamelModel):
    type: Literal["diagram", "flowchart", "screenshot", "animation"] = "diagram"
    url: Optional[str] = None
    alt_text: str = ""
    description: str = ""


class QuizQuestion(CamelModel):
    question: str
    options: List[str]
    correct_answer: int
    explanation: str = ""


class EducationalStep(CamelModel):
    id: str
    title: str
    description: str = ""
    node_id: Optional[str] = None
    code: Optional[str] = None
    explanation: str = ""
    visual_aids: List[VisualAid] = Field(default_factory=list)
    quiz: Optional[QuizQuestion] = None


class InteractiveElement(CamelModel):
    type: Literal["simulation", "code-playground", "diagram", "video"]
    id: str
    title: str
    content: Dict[str, Any] = Field(default_factory=dict)
    accessibility: AccessibilityFeatures = Field(default_factory=AccessibilityFeatures)


class EducationalContent(CamelModel):
    """The artifact the pipeline assembles."""

    title: str
    description: str = ""
    learning_objectives: List[str] = Field(default_factory=list)
    complexity: Complexity = "beginner"
    estimated_duration: int = 0
    prerequisites: List[str] = Field(default_factory=list)
    steps: List[EducationalStep] = Field(default_factory=list)
    interactive_elements: List[InteractiveElement] = Field(default_factory=list)
    quality_score: Optional[int] = None
    quality_notes: List[str] = Field(default_factory=list)


class VideoRequest(CamelModel):
    title: str
    description: str = ""
    steps: List[EducationalStep] = Field(default_factory=list)
    style: Literal["animation", "diagram", "simulation", "tutorial"] = "tutorial"
    duration: int = 60
    resolution: Literal["720p", "1080p", "4k"] = "1080p"
    accessibility: bool = False


class VideoScene(CamelModel):
    id: str
    start_time: float
    end_time: float
    title: str
    description: str = ""
    step_id: Optional[str] = None


class VideoTimestamp(CamelModel):
    time: float
    step_id: str
    title: str
    description: str = ""


class SubtitleTrack(CamelModel):
    language: str
    url: str
    format: Literal["vtt", "srt"] = "vtt"
    accessibility: bool = False


class VideoMetadata(CamelModel):
    scenes: List[VideoScene] = Field(default_factory=list)
    timestamps: List[VideoTimestamp] = Field(default_factory=list)
    subtitles: List[SubtitleTrack] = Field(default_factory=list)


class VideoAsset(CamelModel):
    id: str
    title: str
    url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: float = 0
    resolution: str = "1080p"
    format: str = "mp4"
    status: Literal["generating", "completed", "failed"] = "completed"
    accessibility: AccessibilityFeatures = Field(default_factory=AccessibilityFeatures)
    metadata: VideoMetadata = Field(default_factory=VideoMetadata)


class QualityImprovement(CamelModel):
    type: str
    message: str


class QualityReport(CamelModel):
    score: int
    improvements: List[QualityImprovement] = Field(default_factory=list)


class RoutingDecision(CamelModel):
    agent: str
    tier: str = "Pro"
    notes: str = ""
