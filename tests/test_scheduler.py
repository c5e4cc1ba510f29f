import asyncio

import pytest

from conftest import ScriptedCapability, make_orchestrator, route, settle
from flowtutor.agents.base import AgentStatus
from flowtutor.errors import DEPENDENCY_FAILED, SHUT_DOWN, ShutdownError, TaskStateError
from flowtutor.tasks.base import TaskStatus

ROUTER = "tambo-mcp-router"


@pytest.mark.asyncio
async def test_dependent_task_waits_for_its_dependency(orchestrator):
    release = asyncio.Event()
    capability = ScriptedCapability(gates={"t1": release})
    orchestrator.registry.bind(ROUTER, capability)

    t1 = orchestrator.create_task(route("t1"))
    t2 = orchestrator.create_task(route("t2", dependencies=[t1.id]))
    await settle()

    assert t1.status is TaskStatus.RUNNING
    assert t2.status is TaskStatus.PENDING
    assert capability.started == ["t1"]

    release.set()
    result = await orchestrator.execute_task(t2)

    assert result.success
    assert capability.started == ["t1", "t2"]
    assert t2.started_at >= t1.finished_at


@pytest.mark.asyncio
async def test_critical_task_is_dispatched_before_high():
    orchestrator = make_orchestrator(max_concurrent=1)
    release = asyncio.Event()
    capability = ScriptedCapability(gates={"blocker": release})
    orchestrator.registry.bind(ROUTER, capability)

    blocker = orchestrator.create_task(route("blocker"))
    high = orchestrator.create_task(route("high", priority="high"))
    critical = orchestrator.create_task(route("critical", priority="critical"))
    await settle()
    release.set()
    await orchestrator.execute_batch([blocker, high, critical])

    assert capability.started == ["blocker", "critical", "high"]


@pytest.mark.asyncio
async def test_same_priority_tasks_run_in_submission_order():
    orchestrator = make_orchestrator(max_concurrent=1)
    release = asyncio.Event()
    capability = ScriptedCapability(gates={"blocker": release})
    orchestrator.registry.bind(ROUTER, capability)

    tasks = [orchestrator.create_task(route("blocker"))]
    tasks += [orchestrator.create_task(route(key)) for key in ("a", "b", "c")]
    release.set()
    await orchestrator.execute_batch(tasks)

    assert capability.started == ["blocker", "a", "b", "c"]


@pytest.mark.asyncio
async def test_running_tasks_never_exceed_the_ceiling():
    orchestrator = make_orchestrator(max_concurrent=2)
    release = asyncio.Event()
    keys = ["a", "b", "c", "d", "e"]
    capability = ScriptedCapability(gates={key: release for key in keys})
    orchestrator.registry.bind(ROUTER, capability)

    tasks = orchestrator.create_parallel_tasks([route(key) for key in keys])
    await settle()

    assert orchestrator.scheduler.running_count == 2
    assert orchestrator.scheduler.queue_length == 3
    assert len(capability.started) == 2

    release.set()
    results = await orchestrator.execute_batch(tasks)

    assert all(result.success for result in results)
    assert orchestrator.scheduler.peak_running == 2
    assert orchestrator.scheduler.running_count == 0


@pytest.mark.asyncio
async def test_dependency_failure_propagates_to_dependents(orchestrator):
    capability = ScriptedCapability(errors={"t1": RuntimeError("boom")})
    orchestrator.registry.bind(ROUTER, capability)

    t1 = orchestrator.create_task(route("t1"))
    t2 = orchestrator.create_task(route("t2", dependencies=[t1.id]))
    t3 = orchestrator.create_task(route("t3", dependencies=[t2.id]))
    result = await orchestrator.execute_task(t3)

    assert not result.success
    assert result.error_reason == DEPENDENCY_FAILED
    assert t1.status is TaskStatus.FAILED
    assert t2.error_reason == DEPENDENCY_FAILED
    assert t2.id in t3.error
    assert capability.started == ["t1"]


@pytest.mark.asyncio
async def test_task_submitted_after_its_dependency_failed_fails_immediately(orchestrator):
    orchestrator.registry.bind(ROUTER, ScriptedCapability(error=RuntimeError("boom")))
    t1 = orchestrator.create_task(route("t1"))
    await orchestrator.execute_task(t1)

    late = orchestrator.create_task(route("late", dependencies=[t1.id]))

    assert late.status is TaskStatus.FAILED
    assert late.error_reason == DEPENDENCY_FAILED


@pytest.mark.asyncio
async def test_cancel_pending_task_fails_its_dependents():
    orchestrator = make_orchestrator(max_concurrent=1)
    release = asyncio.Event()
    capability = ScriptedCapability(gates={"blocker": release})
    orchestrator.registry.bind(ROUTER, capability)

    blocker = orchestrator.create_task(route("blocker"))
    pending = orchestrator.create_task(route("pending"))
    dependent = orchestrator.create_task(route("dependent", dependencies=[pending.id]))
    await settle()

    orchestrator.cancel_task(pending.id)
    assert orchestrator.scheduler.queue_length == 0
    with pytest.raises(TaskStateError):
        orchestrator.cancel_task(blocker.id)
    release.set()
    cancelled, blocked, finished = await orchestrator.execute_batch([pending, dependent, blocker])

    assert pending.status is TaskStatus.CANCELLED
    assert not cancelled.success
    assert blocked.error_reason == DEPENDENCY_FAILED
    assert finished.success
    assert capability.started == ["blocker"]


@pytest.mark.asyncio
async def test_drain_finishes_in_flight_tasks_and_fails_the_rest():
    orchestrator = make_orchestrator(max_concurrent=1)
    release = asyncio.Event()
    orchestrator.registry.bind(ROUTER, ScriptedCapability(gates={"first": release}))

    first = orchestrator.create_task(route("first"))
    second = orchestrator.create_task(route("second"))
    await settle()
    drain = asyncio.create_task(orchestrator.scheduler.drain())
    await settle()
    assert not drain.done()

    release.set()
    await drain

    assert first.status is TaskStatus.COMPLETED
    assert second.status is TaskStatus.FAILED
    result = await orchestrator.execute_task(second)
    assert result.error_reason == SHUT_DOWN
    with pytest.raises(ShutdownError):
        result.raise_for_error()
    assert orchestrator.scheduler.queue_length == 0


@pytest.mark.asyncio
async def test_cancel_after_admission_but_before_start(orchestrator):
    capability = ScriptedCapability()
    orchestrator.registry.bind(ROUTER, capability)

    task = orchestrator.create_task(route("x"))
    in_flight = orchestrator.scheduler._running[task.id]
    orchestrator.cancel_task(task.id)
    await asyncio.gather(in_flight)

    assert task.status is TaskStatus.CANCELLED
    assert not (await orchestrator.execute_task(task)).success
    assert capability.calls == []
    assert orchestrator.registry.get(ROUTER).status is AgentStatus.IDLE
    assert orchestrator.scheduler.running_count == 0


@pytest.mark.asyncio
async def test_cancelled_admission_frees_its_slot():
    orchestrator = make_orchestrator(max_concurrent=1)
    capability = ScriptedCapability()
    orchestrator.registry.bind(ROUTER, capability)

    first = orchestrator.create_task(route("first"))
    second = orchestrator.create_task(route("second"))
    orchestrator.cancel_task(first.id)

    assert (await orchestrator.execute_task(second)).success
    assert capability.started == ["second"]
