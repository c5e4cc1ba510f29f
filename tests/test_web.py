from fastapi.testclient import TestClient

from conftest import ScriptedCapability
from flowtutor.agents.base import AgentStatus
from flowtutor.web.server import create_app


def test_ping_and_status(orchestrator):
    with TestClient(create_app(orchestrator)) as client:
        assert client.get("/api/health/ping").json() == {"status": "ok"}
        status = client.get("/api/status").json()

    assert len(status["agents"]) == 6
    assert status["tasks"]["total"] == 0
    assert orchestrator.health.running is False


def test_storybook_returns_camel_case_artifact(orchestrator, workflow):
    with TestClient(create_app(orchestrator)) as client:
        response = client.post(
            "/api/storybook",
            json={"workflow": workflow, "options": {"includeVideo": True}},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Support Ticket Triage"
    assert body["qualityScore"] == 100
    assert [element["type"] for element in body["interactiveElements"]] == ["simulation", "diagram", "video"]


def test_storybook_phase_failure_is_a_bad_gateway(orchestrator, workflow):
    orchestrator.registry.bind("openai-content-generator", ScriptedCapability(error=RuntimeError("quota")))
    with TestClient(create_app(orchestrator)) as client:
        response = client.post("/api/storybook", json={"workflow": workflow})

    assert response.status_code == 502
    body = response.json()
    assert body["phase"] == "content"
    assert "quota" in body["error"]
    assert body["task_id"].startswith("task-")


def test_malformed_request_is_rejected(orchestrator):
    with TestClient(create_app(orchestrator)) as client:
        response = client.post("/api/storybook", json={"options": {"includeVideo": True}})

    assert response.status_code == 422


def test_reset_agent_endpoint(orchestrator):
    orchestrator.registry.set_status("quality-assurance", AgentStatus.ERROR)
    with TestClient(create_app(orchestrator)) as client:
        reset = client.post("/api/agents/quality-assurance/reset")
        missing = client.post("/api/agents/ghost/reset")

    assert reset.json()["status"] == "idle"
    assert missing.status_code == 404
