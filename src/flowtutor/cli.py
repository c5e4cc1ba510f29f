"""Command line interface for the orchestrator."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config import ConfigError, OrchestratorConfig
from .errors import PipelineError
from .orchestrator import Orchestrator
from .pipeline.models import EducationalContent, PipelineOptions, PipelineRequest, UserPreferences, Workflow
from .pipeline.storybook import StorybookPipeline

app = typer.Typer(help="Turn automation workflows into interactive tutorials")
console = Console()


@app.callback()
def main(log_level: str = typer.Option("WARNING", help="Logging level for orchestrator output")) -> None:
    logging.basicConfig(
        level=log_level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def _load_config(config_path: Optional[Path]) -> OrchestratorConfig:
    if config_path is None:
        return OrchestratorConfig.default()
    try:
        return OrchestratorConfig.from_file(config_path)
    except ConfigError as exc:
        console.print(f"[bold red]Invalid config:[/] {escape(str(exc))}")
        raise typer.Exit(code=2) from exc


def _render_agents(orchestrator: Orchestrator) -> None:
    table = Table(title="Agents", show_lines=True)
    table.add_column("Agent ID")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Health")
    for agent in orchestrator.registry:
        table.add_row(agent.id, agent.type.value, agent.status.value, f"{agent.health_score:.0f}")
    console.print(table)


def _render_content(content: EducationalContent) -> None:
    console.print(f"[bold green]{content.title}[/] ({content.complexity}, ~{content.estimated_duration} min)")
    console.print(content.description)
    table = Table(title="Steps", show_lines=True)
    table.add_column("Step")
    table.add_column("Title")
    table.add_column("Explanation")
    for step in content.steps:
        table.add_row(step.id, step.title, step.explanation)
    console.print(table)
    console.print(
        f"Interactive elements: {', '.join(element.type for element in content.interactive_elements) or 'none'}"
    )
    if content.quality_score is not None:
        console.print(f"Quality score: {content.quality_score}")


async def _run_pipeline(config: OrchestratorConfig, request: PipelineRequest) -> tuple[EducationalContent, Orchestrator]:
    async with Orchestrator(config) as orchestrator:
        content = await StorybookPipeline(orchestrator).create_storybook(request)
    return content, orchestrator


@app.command()
def run(
    workflow_path: Path = typer.Argument(..., help="Path to an n8n workflow export (JSON)"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML orchestrator config"),
    video: bool = typer.Option(False, "--video/--no-video", help="Include the video phase"),
    accessibility: bool = typer.Option(False, "--accessibility/--no-accessibility", help="Include the accessibility phase"),
    complexity: str = typer.Option("auto", help="auto, beginner, intermediate or advanced"),
    style: str = typer.Option("tutorial", help="tutorial, interactive or documentation"),
    language: str = typer.Option("en"),
    learning_style: str = typer.Option("mixed", help="visual, auditory, kinesthetic or mixed"),
    experience: str = typer.Option("intermediate", help="beginner, intermediate or advanced"),
    need: List[str] = typer.Option([], "--need", help="Accessibility need, e.g. screen_reader (repeatable)"),
    output: Optional[Path] = typer.Option(None, help="Write the artifact as JSON to this path"),
) -> None:
    """Build an educational artifact from a workflow export."""

    config = _load_config(config_path)
    try:
        request = PipelineRequest(
            workflow=Workflow.model_validate(json.loads(workflow_path.read_text())),
            options=PipelineOptions(
                include_video=video,
                accessibility=accessibility,
                complexity=complexity,
                style=style,
                language=language,
            ),
            user_preferences=UserPreferences(
                learning_style=learning_style,
                accessibility_needs=list(need),
                preferred_language=language,
                experience_level=experience,
            ),
        )
    except (OSError, ValidationError, json.JSONDecodeError) as exc:
        console.print(f"[bold red]Invalid request:[/] {escape(str(exc))}")
        raise typer.Exit(code=2) from exc

    console.print(f"[bold green]Running pipeline[/] for {request.workflow.name}")
    try:
        content, orchestrator = asyncio.run(_run_pipeline(config, request))
    except PipelineError as exc:
        console.print(f"[bold red]Pipeline failed in {exc.phase} phase:[/] {escape(exc.detail)}")
        raise typer.Exit(code=1) from exc

    _render_content(content)
    _render_agents(orchestrator)
    if output:
        output.write_text(content.model_dump_json(by_alias=True, indent=2))
        console.print(f"Artifact written to {output}")


@app.command()
def status(config_path: Optional[Path] = typer.Option(None, "--config", help="YAML orchestrator config")) -> None:
    """Print the agents registered by a configuration."""

    config = _load_config(config_path)
    orchestrator = Orchestrator(config)
    console.print(
        f"[bold]Project:[/] {config.name} "
        f"(max {config.scheduler.max_concurrent_tasks} concurrent tasks, health every {config.health.interval:g}s)"
    )
    _render_agents(orchestrator)


@app.command()
def serve(
    config_path: Optional[Path] = typer.Option(None, "--config", help="YAML orchestrator config"),
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(8000),
) -> None:
    """Serve the HTTP API with uvicorn."""

    import uvicorn

    from .web.server import create_app

    uvicorn.run(create_app(config=_load_config(config_path)), host=host, port=port)


if __name__ == "__main__":  # pragma: no cover
    app()
