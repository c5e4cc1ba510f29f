import re

import pytest

from flowtutor.errors import TaskStateError, TaskValidationError
from flowtutor.tasks.base import TaskConfig, TaskPriority, TaskStatus, TaskType
from flowtutor.tasks.payloads import QualityCheckPayload, RouteRequestPayload
from flowtutor.tasks.store import TaskStore


def test_create_task_returns_pending_task_with_defaults():
    store = TaskStore(default_timeout=42)

    task = store.create_task({"type": "route_request", "data": {"payload": "hello"}})

    assert task.status is TaskStatus.PENDING
    assert task.priority is TaskPriority.MEDIUM
    assert task.timeout == 42
    assert isinstance(task.data, RouteRequestPayload)
    assert re.fullmatch(r"task-\d+-[0-9a-f]{9}", task.id)


def test_task_ids_are_never_reused():
    store = TaskStore()
    ids = {store.create_task({"type": "route_request", "data": {"payload": str(i)}}).id for i in range(50)}
    assert len(ids) == 50


def test_payload_is_immutable():
    task = TaskStore().create_task({"type": "route_request", "data": {"payload": "x"}})
    with pytest.raises(Exception):
        task.data.payload = "changed"


@pytest.mark.parametrize(
    "config, message",
    [
        ({"data": {}}, "type"),
        ({"type": "deploy_storybook"}, "Unknown task type"),
        ({"type": "route_request", "data": {"payload": "x"}, "priority": "urgent"}, "Unknown priority"),
        ({"type": "route_request", "data": {}}, "Invalid route_request payload"),
        ({"type": "route_request", "data": {"payload": "x"}, "dependencies": ["task-missing"]}, "Unknown dependency"),
        ({"type": "route_request", "data": {"payload": "x"}, "timeout": 0}, "timeout"),
        ({"type": "route_request", "data": {"payload": "x"}, "required_agents": ["telepathy"]}, "required_agents"),
    ],
)
def test_invalid_task_configuration_is_rejected(config, message):
    with pytest.raises(TaskValidationError, match=message):
        TaskStore().create_task(config)


def test_payload_of_the_wrong_kind_is_rejected():
    store = TaskStore()
    payload = RouteRequestPayload(payload="x")
    with pytest.raises(TaskValidationError, match="QualityCheckPayload"):
        store.create_task(TaskConfig(type=TaskType.QUALITY_CHECK, data=payload))


def test_quality_payload_is_built_from_a_mapping():
    task = TaskStore().create_task({"type": "quality_check", "data": {"content": {"title": "Guide"}}})
    assert isinstance(task.data, QualityCheckPayload)
    assert task.data.content.title == "Guide"


def test_state_machine_allows_only_forward_transitions():
    store = TaskStore()
    task = store.create_task({"type": "route_request", "data": {"payload": "x"}})

    store.transition(task, TaskStatus.RUNNING)
    assert task.started_at is not None
    store.complete(task, {"ok": True})

    assert task.status is TaskStatus.COMPLETED
    assert task.progress == 100
    assert task.finished_at is not None
    with pytest.raises(TaskStateError):
        store.fail(task, "late failure")
    assert task.error is None


def test_cancel_rejects_running_tasks_and_accepts_pending_ones():
    store = TaskStore()
    running = store.create_task({"type": "route_request", "data": {"payload": "a"}})
    pending = store.create_task({"type": "route_request", "data": {"payload": "b"}})
    store.transition(running, TaskStatus.RUNNING)

    with pytest.raises(TaskStateError, match="only pending"):
        store.cancel(running)
    store.cancel(pending)

    assert running.status is TaskStatus.RUNNING
    assert pending.status is TaskStatus.CANCELLED


def test_counts_cover_every_state():
    store = TaskStore()
    first = store.create_task({"type": "route_request", "data": {"payload": "a"}})
    store.create_task({"type": "route_request", "data": {"payload": "b"}, "dependencies": [first.id]})
    store.cancel(first)

    counts = store.counts()

    assert counts == {
        "pending": 1,
        "running": 0,
        "completed": 0,
        "failed": 0,
        "cancelled": 1,
        "total": 2,
    }
