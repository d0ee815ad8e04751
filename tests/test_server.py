from __future__ import annotations

import logging
from pathlib import Path

import allure
import pytest

from katar_queue.errors import DuplicateQueueError
from katar_queue.events import EventEmitter
from katar_queue.models import QueueOptions
from katar_queue.server import QueueServer
from katar_queue.storage import SqliteTaskDatabase

pytestmark = [
    allure.epic("Queue Engine"),
    allure.feature("Queue Registry"),
]


def test_add_queue_rejects_duplicate_names(server: QueueServer) -> None:
    server.add_queue("jobs")

    with pytest.raises(DuplicateQueueError, match="Duplicate queue: jobs"):
        server.add_queue("jobs", {"persistent": True})


def test_get_queue_returns_registered_queue(server: QueueServer) -> None:
    queue = server.add_queue("jobs")

    assert server.get_queue("jobs") is queue
    assert server.get_queue("other") is None
    assert server.queues == {"jobs": queue}


def test_queues_get_separate_stores(server: QueueServer) -> None:
    jobs = server.add_queue("jobs")
    mail = server.add_queue("mail")

    task = jobs.insert({"data": "job"})

    assert mail.find_by_id(task.id) is None
    assert mail.next() is None


def test_default_memory_store_logs_warning(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="katar_queue.server"):
        QueueServer()

    assert "Using a memory datastore" in caplog.text


def test_sqlite_store_does_not_warn(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    database = SqliteTaskDatabase(tmp_path / "queue.db")
    try:
        with caplog.at_level(logging.WARNING, logger="katar_queue.server"):
            QueueServer(database=database)
    finally:
        database.close()

    assert "memory datastore" not in caplog.text


def test_injected_event_sink_receives_queue_events() -> None:
    sink = EventEmitter()
    received: list[str] = []
    sink.on("jobs.queued", lambda task: received.append(task.data))
    server = QueueServer(events=sink)

    server.add_queue("jobs").insert({"data": "payload"})

    assert received == ["payload"]
    assert server.listeners("jobs.queued") == []


def test_options_mapping_carries_reserved_keys(server: QueueServer) -> None:
    queue = server.add_queue("jobs", {"timeout": 5_000, "concurrency": 4})

    assert queue.options == QueueOptions(timeout_ms=5_000, persistent=False, concurrency=4)


def test_options_reject_unknown_key(server: QueueServer) -> None:
    with pytest.raises(ValueError, match="Unknown queue option: 'retries'"):
        server.add_queue("jobs", {"retries": 3})

    assert server.get_queue("jobs") is None
