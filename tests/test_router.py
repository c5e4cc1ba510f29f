import asyncio

import pytest

from conftest import ScriptedCapability, route
from flowtutor.agents.base import Agent, AgentStatus, AgentType
from flowtutor.errors import (
    AGENT_UNAVAILABLE,
    CAPABILITY_FAILED,
    TIMEOUT,
    CapabilityError,
    RoutingError,
    TaskTimeoutError,
)
from flowtutor.events import EventKind
from flowtutor.tasks.base import TaskStatus, TaskType
from flowtutor.tasks.router import BASE_COSTS, task_cost

ROUTER = "tambo-mcp-router"


@pytest.mark.asyncio
async def test_successful_dispatch_completes_task_and_frees_agent(orchestrator):
    capability = ScriptedCapability()
    orchestrator.registry.bind(ROUTER, capability)
    task = orchestrator.store.create_task(route("hello"))

    result = await orchestrator.router.dispatch(task)

    assert result.success
    assert result.data == {"echo": "hello"}
    assert result.resource_usage.api_calls == 1
    assert result.resource_usage.cost == pytest.approx(BASE_COSTS[TaskType.ROUTE_REQUEST])
    assert task.status is TaskStatus.COMPLETED
    assert task.agent_id == ROUTER
    assert orchestrator.registry.get(ROUTER).status is AgentStatus.IDLE
    assert capability.calls[0][0] is TaskType.ROUTE_REQUEST
    kinds = [event.kind for event in orchestrator.events.history()]
    assert EventKind.TASK_STARTED in kinds
    assert EventKind.TASK_COMPLETED in kinds


@pytest.mark.asyncio
async def test_capability_error_fails_task_and_marks_agent(orchestrator):
    orchestrator.registry.bind(ROUTER, ScriptedCapability(error=RuntimeError("upstream down")))
    task = orchestrator.store.create_task(route("x"))

    result = await orchestrator.router.dispatch(task)

    assert not result.success
    assert result.error == "RuntimeError: upstream down"
    assert result.error_reason == CAPABILITY_FAILED
    assert orchestrator.registry.get(ROUTER).status is AgentStatus.ERROR
    with pytest.raises(CapabilityError, match="upstream down"):
        result.raise_for_error()


@pytest.mark.parametrize("status", [AgentStatus.ERROR, AgentStatus.OFFLINE])
@pytest.mark.asyncio
async def test_unavailable_agent_fails_task_without_invoking_work(orchestrator, status):
    capability = ScriptedCapability()
    orchestrator.registry.bind(ROUTER, capability)
    orchestrator.registry.set_status(ROUTER, status)
    task = orchestrator.store.create_task(route("x"))

    result = await orchestrator.router.dispatch(task)

    assert result.error_reason == AGENT_UNAVAILABLE
    assert task.status is TaskStatus.FAILED
    assert task.started_at is None
    assert capability.calls == []
    with pytest.raises(RoutingError) as excinfo:
        result.raise_for_error()
    assert excinfo.value.task_id == task.id


@pytest.mark.asyncio
async def test_timeout_is_a_failure_with_its_own_reason(orchestrator):
    never = asyncio.Event()
    orchestrator.registry.bind(ROUTER, ScriptedCapability(gates={"slow": never}))
    task = orchestrator.store.create_task(route("slow", timeout=0.01))

    result = await orchestrator.router.dispatch(task)

    assert result.error_reason == TIMEOUT
    assert task.status is TaskStatus.FAILED
    assert orchestrator.registry.get(ROUTER).status is AgentStatus.ERROR
    with pytest.raises(TaskTimeoutError):
        result.raise_for_error()


@pytest.mark.asyncio
async def test_highest_priority_agent_of_the_type_is_used(orchestrator):
    default = ScriptedCapability(result={"by": "default"})
    preferred = ScriptedCapability(result={"by": "preferred"})
    orchestrator.registry.bind(ROUTER, default)
    orchestrator.registry.register(
        Agent(id="edge-router", name="Edge Router", type=AgentType.ROUTING, priority=20), preferred
    )
    task = orchestrator.store.create_task(route("x"))

    result = await orchestrator.router.dispatch(task)

    assert result.data == {"by": "preferred"}
    assert default.calls == []


@pytest.mark.asyncio
async def test_reset_agent_makes_it_routable_again(orchestrator):
    capability = ScriptedCapability(errors={"first": RuntimeError("boom")})
    orchestrator.registry.bind(ROUTER, capability)
    first = orchestrator.create_task(route("first"))
    assert not (await orchestrator.execute_task(first)).success

    blocked = orchestrator.create_task(route("blocked"))
    assert (await orchestrator.execute_task(blocked)).error_reason == AGENT_UNAVAILABLE

    agent = orchestrator.reset_agent(ROUTER)
    retried = orchestrator.create_task(route("retried"))

    assert agent.status is AgentStatus.IDLE
    assert (await orchestrator.execute_task(retried)).success
    assert capability.started == ["first", "retried"]


def test_cost_scales_with_minutes_past_the_first():
    assert task_cost(TaskType.CREATE_VIDEO, 30) == pytest.approx(2.0)
    assert task_cost(TaskType.CREATE_VIDEO, 180) == pytest.approx(6.0)
