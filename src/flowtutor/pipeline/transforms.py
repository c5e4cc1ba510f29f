"""Pure transformations applied to the educational artifact between phases."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .models import (
    EducationalContent,
    PipelineOptions,
    QualityImprovement,
    RoutingDecision,
    UserPreferences,
    VideoAsset,
    VideoRequest,
    VisualAid,
    InteractiveElement,
)

logger = logging.getLogger(__name__)

MAX_VIDEO_SECONDS = 300
MIN_OBJECTIVES = 3
MAX_STEPS = 10
GENERIC_OBJECTIVES = (
    "Explain what each node in the workflow is responsible for",
    "Trace how data moves from the trigger to the final action",
    "Adapt the workflow to a similar automation problem",
)


def apply_routing_intelligence(
    content: EducationalContent, routing: Optional[RoutingDecision]
) -> EducationalContent:
    if routing is None:
        return content
    if routing.agent == "ContentRouterAgent":
        return content.model_copy(
            update={
                "description": f"{content.description}\n\n"
                "This tutorial focuses on practical content management applications."
            }
        )
    return content


def personalize_content(content: EducationalContent, preferences: Optional[UserPreferences]) -> EducationalContent:
    if preferences is None:
        return content
    update = {}
    if preferences.experience_level == "beginner" and content.complexity == "advanced":
        update["complexity"] = "intermediate"
        update["description"] = f"{content.description}\n\n*Simplified for beginners*"
    if preferences.learning_style == "visual":
        update["steps"] = [
            step
            if step.visual_aids
            else step.model_copy(
                update={
                    "visual_aids": [
                        VisualAid(
                            type="diagram",
                            alt_text=f"Visual representation of {step.title}",
                            description=f"Diagram showing the process of {step.title}",
                        )
                    ]
                }
            )
            for step in content.steps
        ]
    return content.model_copy(update=update) if update else content


def build_video_request(content: EducationalContent, options: PipelineOptions) -> VideoRequest:
    return VideoRequest(
        title=content.title,
        description=content.description,
        steps=content.steps,
        style="tutorial",
        duration=min(content.estimated_duration * 4, MAX_VIDEO_SECONDS),
        resolution="1080p",
        accessibility=options.accessibility,
    )


def integrate_video_content(content: EducationalContent, video: VideoAsset) -> EducationalContent:
    element = InteractiveElement(
        type="video",
        id=f"video-{video.id}",
        title=video.title,
        content={
            "url": video.url,
            "thumbnail_url": video.thumbnail_url,
            "duration": video.duration,
            "subtitles": [track.model_dump() for track in video.metadata.subtitles],
            "timestamps": [stamp.model_dump() for stamp in video.metadata.timestamps],
        },
        accessibility=video.accessibility,
    )
    return content.model_copy(update={"interactive_elements": [*content.interactive_elements, element]})


def enhance_accessibility(content: EducationalContent, needs: Iterable[str]) -> EducationalContent:
    needs = set(needs)
    update = {}
    if "screen_reader" in needs:
        update["steps"] = [
            step.model_copy(
                update={
                    "explanation": step.explanation or step.description,
                    "visual_aids": [
                        aid.model_copy(
                            update={
                                "alt_text": aid.alt_text or f"Visual aid for {step.title}",
                                "description": aid.description
                                or f"Detailed description of visual element for {step.title}",
                            }
                        )
                        for aid in step.visual_aids
                    ],
                }
            )
            for step in content.steps
        ]
    if "high_contrast" in needs:
        update["interactive_elements"] = [
            element.model_copy(
                update={"accessibility": element.accessibility.model_copy(update={"high_contrast": True})}
            )
            for element in content.interactive_elements
        ]
    return content.model_copy(update=update) if update else content


def calculate_quality_score(content: EducationalContent) -> int:
    score = 0
    if content.title and content.description:
        score += 20
    if content.learning_objectives:
        score += 15
    if content.steps:
        score += 25
    if content.interactive_elements:
        score += 20
    if content.prerequisites:
        score += 10
    if content.estimated_duration > 0:
        score += 10
    return min(score, 100)


def identify_improvements(content: EducationalContent) -> List[QualityImprovement]:
    improvements: List[QualityImprovement] = []
    if len(content.title) < 5:
        improvements.append(QualityImprovement(type="title", message="Title should be more descriptive"))
    if len(content.learning_objectives) < MIN_OBJECTIVES:
        improvements.append(QualityImprovement(type="objectives", message="Add more learning objectives"))
    if len(content.steps) > MAX_STEPS:
        improvements.append(
            QualityImprovement(type="complexity", message="Consider breaking into smaller sections")
        )
    return improvements


def apply_qa_improvements(
    content: EducationalContent, improvements: Iterable[QualityImprovement]
) -> EducationalContent:
    """Apply what can be patched automatically; everything else stays as a note.

    Improvements are advisory, so an unpatchable one never discards the artifact.
    """
    improved = content
    notes = list(content.quality_notes)
    for improvement in improvements:
        if improvement.type == "title" and len(improved.title) < 10:
            improved = improved.model_copy(update={"title": f"Interactive Guide: {improved.title}".rstrip()})
        elif improvement.type == "objectives":
            objectives = list(improved.learning_objectives)
            for generic in GENERIC_OBJECTIVES:
                if len(objectives) >= MIN_OBJECTIVES:
                    break
                if generic not in objectives:
                    objectives.append(generic)
            improved = improved.model_copy(update={"learning_objectives": objectives})
        else:
            logger.debug("No automatic patch for improvement %s", improvement.type)
        notes.append(improvement.message)
    return improved.model_copy(update={"quality_notes": notes})
