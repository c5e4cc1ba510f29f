"""FastAPI app exposing the pipeline, the status snapshot and the event stream."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..config import OrchestratorConfig
from ..errors import PipelineError
from ..events import EventKind
from ..orchestrator import Orchestrator
from ..pipeline.models import PipelineRequest
from ..pipeline.storybook import StorybookPipeline

logger = logging.getLogger(__name__)


def create_app(orchestrator: Orchestrator | None = None, config: OrchestratorConfig | None = None) -> FastAPI:
    """Build an app bound to one orchestrator, started and shut down with the app."""

    engine = orchestrator or Orchestrator(config)
    pipeline = StorybookPipeline(engine)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        await engine.start()
        try:
            yield
        finally:
            await engine.shutdown()

    app = FastAPI(title="flowtutor orchestrator", lifespan=lifespan)
    app.state.orchestrator = engine

    @app.get("/api/health/ping")
    async def ping() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/api/status")
    async def status() -> Dict[str, Any]:
        return engine.get_status()

    @app.post("/api/storybook")
    async def create_storybook(request: PipelineRequest) -> JSONResponse:
        logger.info("/api/storybook called for workflow %s", request.workflow.name)
        try:
            content = await pipeline.create_storybook(request)
        except PipelineError as exc:
            return JSONResponse(
                status_code=502,
                content={"error": str(exc), "phase": exc.phase, "task_id": exc.task_id},
            )
        return JSONResponse(content=content.model_dump(mode="json", by_alias=True))

    @app.post("/api/agents/{agent_id}/reset")
    async def reset_agent(agent_id: str) -> Dict[str, Any]:
        if agent_id not in engine.registry:
            raise HTTPException(status_code=404, detail=f"Unknown agent: {agent_id}")
        return engine.reset_agent(agent_id).snapshot()

    @app.websocket("/ws/events")
    async def events(websocket: WebSocket) -> None:
        queue: asyncio.Queue = engine.events.subscribe()
        await websocket.accept()
        try:
            while True:
                event = await queue.get()
                await websocket.send_text(json.dumps(event.to_dict(), default=str))
                if event.kind == EventKind.ORCHESTRATOR_SHUTDOWN:
                    break
        except WebSocketDisconnect:
            return
        finally:
            engine.events.unsubscribe(queue)
        await websocket.close()

    return app
