from __future__ import annotations

import logging

import allure
import pytest

from katar_queue.events import EventEmitter
from katar_queue.models import Task, TaskStatus
from katar_queue.queue import Queue
from katar_queue.server import QueueServer
from katar_queue.storage import MemoryTaskDatabase

pytestmark = [
    allure.epic("Queue Engine"),
    allure.feature("Lifecycle Events"),
]


def _record(emitter: EventEmitter, events: list[str], log: list[tuple[str, Task]]) -> None:
    for event in events:
        emitter.on(event, lambda payload, name=event: log.append((name, payload)))


def test_insert_emits_local_and_shared_events(server: QueueServer, queue: Queue) -> None:
    log: list[tuple[str, Task]] = []
    _record(queue.events, ["queued"], log)
    _record(server, ["test.queued"], log)

    task = queue.insert({"data": "data"})

    assert [name for name, _ in log] == ["queued", "test.queued"]
    assert all(payload == task for _, payload in log)


def test_insert_emits_under_resulting_status(server: QueueServer, queue: Queue) -> None:
    log: list[tuple[str, Task]] = []
    _record(server, ["test.queued", "test.paused"], log)

    queue.insert({"data": "data", "status": "paused"})

    assert [name for name, _ in log] == ["test.paused"]


def test_transitions_emit_new_status(server: QueueServer, queue: Queue) -> None:
    log: list[tuple[str, Task]] = []
    _record(server, ["test.in progress", "test.cancelled", "test.paused"], log)
    first = queue.insert({"data": "a"})
    second = queue.insert({"data": "b"})

    queue.started(first.id)
    queue.cancel(second.id)

    assert [(name, payload.id) for name, payload in log] == [
        ("test.in progress", first.id),
        ("test.cancelled", second.id),
    ]


def test_failed_precondition_emits_nothing(server: QueueServer, queue: Queue) -> None:
    log: list[tuple[str, Task]] = []
    task = queue.insert({"data": "data", "status": "in progress"})
    _record(server, ["test.cancelled"], log)

    with pytest.raises(RuntimeError):
        queue.cancel(task.id)

    assert log == []


def test_persistent_done_emits_status_only(server: QueueServer, queue: Queue) -> None:
    log: list[tuple[str, Task]] = []
    _record(server, ["test.done", "test.deleted"], log)
    task = queue.insert({"data": "data"})

    queue.done(task.id)

    assert [name for name, _ in log] == ["test.done"]


def test_ephemeral_done_emits_status_then_deleted(
    server: QueueServer,
    ephemeral_queue: Queue,
) -> None:
    log: list[tuple[str, Task]] = []
    _record(ephemeral_queue.events, ["done", "deleted"], log)
    _record(server, ["ephemeral.done", "ephemeral.deleted"], log)
    task = ephemeral_queue.insert({"data": "data"})

    ephemeral_queue.done(task.id)

    assert [name for name, _ in log] == ["done", "ephemeral.done", "deleted", "ephemeral.deleted"]
    assert all(payload.status == TaskStatus.DONE for _, payload in log)


def test_ephemeral_failed_payload_carries_error(
    server: QueueServer,
    ephemeral_queue: Queue,
) -> None:
    log: list[tuple[str, Task]] = []
    _record(server, ["ephemeral.failed", "ephemeral.deleted"], log)
    task = ephemeral_queue.insert({"data": "data"})

    ephemeral_queue.failed(task.id, "boom")

    assert [name for name, _ in log] == ["ephemeral.failed", "ephemeral.deleted"]
    assert all(payload.error == "boom" for _, payload in log)


def test_listener_failure_does_not_reach_caller(
    queue: Queue,
    caplog: pytest.LogCaptureFixture,
) -> None:
    received: list[Task] = []

    def broken(payload: Task) -> None:
        raise RuntimeError("listener exploded")

    queue.events.on("queued", broken)
    queue.events.on("queued", received.append)

    with caplog.at_level(logging.ERROR, logger="katar_queue.events"):
        task = queue.insert({"data": "data"})

    assert received == [task]
    assert "Listener for event 'queued' failed" in caplog.text


def test_shared_sink_failure_does_not_reach_caller(caplog: pytest.LogCaptureFixture) -> None:
    class BrokenSink:
        def emit(self, event: str, payload: object) -> None:
            raise RuntimeError("sink down")

    queue = QueueServer(database=MemoryTaskDatabase(), events=BrokenSink()).add_queue("jobs")

    with caplog.at_level(logging.ERROR, logger="katar_queue.queue"):
        task = queue.insert({"data": "data"})

    assert queue.find_by_id(task.id) is not None
    assert "Shared sink failed on event jobs.queued" in caplog.text


def test_emitter_once_and_off() -> None:
    emitter = EventEmitter()
    calls: list[str] = []

    def always(payload: str) -> None:
        calls.append(f"always:{payload}")

    emitter.on("tick", always)
    emitter.once("tick", lambda payload: calls.append(f"once:{payload}"))

    emitter.emit("tick", "1")
    emitter.emit("tick", "2")
    emitter.off("tick", always)
    emitter.emit("tick", "3")

    assert calls == ["always:1", "once:1", "always:2"]
    assert emitter.listeners("tick") == []
