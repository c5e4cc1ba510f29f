"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from flowtutor.config import OrchestratorConfig
from flowtutor.orchestrator import Orchestrator


class ScriptedCapability:
    """Capability double keyed by the ``payload`` field of route-request payloads.

    ``gates`` block matching calls until the event is set, ``errors`` make
    them raise and ``results`` override the return value.
    """

    def __init__(
        self,
        *,
        result: Any = None,
        error: Optional[Exception] = None,
        gates: Optional[Dict[str, asyncio.Event]] = None,
        errors: Optional[Dict[str, Exception]] = None,
    ) -> None:
        self.result = result
        self.error = error
        self.gates = gates or {}
        self.errors = errors or {}
        self.calls: List[Any] = []
        self.started: List[str] = []

    async def execute(self, task_type: Any, payload: Any) -> Any:
        key = getattr(payload, "payload", None)
        self.calls.append((task_type, payload))
        self.started.append(key)
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        if key in self.errors:
            raise self.errors[key]
        if self.error is not None:
            raise self.error
        return self.result if self.result is not None else {"echo": key}


async def settle(rounds: int = 10) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


def route(key: str, **extra: Any) -> Dict[str, Any]:
    """Task config for a route-request task, the cheapest payload to build."""

    config = {"type": "route_request", "data": {"payload": key}}
    config.update(extra)
    return config


def make_orchestrator(max_concurrent: int = 5, **scheduler: Any) -> Orchestrator:
    config = OrchestratorConfig.from_mapping(
        {"scheduler": {"max_concurrent_tasks": max_concurrent, **scheduler}}
    )
    return Orchestrator(config)


@pytest.fixture()
def orchestrator() -> Orchestrator:
    return make_orchestrator()


@pytest.fixture()
def workflow() -> Dict[str, Any]:
    return {
        "id": "wf-1",
        "name": "Support Ticket Triage",
        "nodes": [
            {"id": "1", "name": "Webhook", "type": "n8n-nodes-base.webhook", "parameters": {"path": "tickets"}},
            {
                "id": "2",
                "name": "Fetch Customer",
                "type": "n8n-nodes-base.httpRequest",
                "parameters": {"url": "https://crm.example.com/customers"},
            },
            {
                "id": "3",
                "name": "Is Urgent",
                "type": "n8n-nodes-base.if",
                "parameters": {"conditions": {"boolean": [{"value1": "={{$json.urgent}}"}]}},
            },
            {"id": "4", "name": "Notify Slack", "type": "n8n-nodes-base.slack", "parameters": {"channel": "#support"}},
        ],
        "connections": {
            "Webhook": {"main": [[{"node": "Fetch Customer", "type": "main", "index": 0}]]},
            "Fetch Customer": {"main": [[{"node": "Is Urgent", "type": "main", "index": 0}]]},
            "Is Urgent": {"main": [[{"node": "Notify Slack", "type": "main", "index": 0}], []]},
        },
        "settings": {},
    }
