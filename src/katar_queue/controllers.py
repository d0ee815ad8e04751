"""Controllers for queue CLI commands."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from katar_queue.config import Settings
from katar_queue.models import Task, TaskCreate
from katar_queue.queue import Queue
from katar_queue.server import QueueServer
from katar_queue.storage.sqlite import SqliteTaskDatabase


@dataclass(slots=True)
class QueueCommand:
    """CLI input for whole-queue operations (next, clear)."""

    db_path: Path | None
    queue_name: str


@dataclass(slots=True)
class EnqueueCommand:
    """CLI input for task insert."""

    db_path: Path | None
    queue_name: str
    data: tuple[str, ...]
    priority: int | None = None
    status: str | None = None


@dataclass(slots=True)
class TaskCommand:
    """CLI input for single-task transitions and lookup."""

    db_path: Path | None
    queue_name: str
    task_id: str


@dataclass(slots=True)
class FailTaskCommand:
    """CLI input for marking a task failed."""

    db_path: Path | None
    queue_name: str
    task_id: str
    error: str


@dataclass(slots=True)
class SetStatusCommand:
    """CLI input for an explicit, optionally guarded, status change."""

    db_path: Path | None
    queue_name: str
    task_id: str
    status: str
    allowed: tuple[str, ...] = ()


class QueueCliController:
    """Runs queue operations against the SQLite store."""

    def enqueue(self, command: EnqueueCommand) -> list[str]:
        payloads = [_parse_data(raw) for raw in command.data] or [None]
        creates = [
            TaskCreate(data=payload, status=command.status, priority=command.priority)
            for payload in payloads
        ]
        with _queue(Settings.from_env(db_path=command.db_path), command.queue_name) as queue:
            tasks = queue.insert(creates) if len(creates) > 1 else [queue.insert(creates[0])]
        return [f"Task enqueued: {_describe(task)}" for task in tasks]

    def next_task(self, command: QueueCommand) -> list[str]:
        with _queue(Settings.from_env(db_path=command.db_path), command.queue_name) as queue:
            claimed = queue.next()
        if claimed is None:
            return [f"No queued tasks in {command.queue_name}"]
        return [
            f"Next task: {claimed.id}",
            f"Data: {json.dumps(claimed.data, ensure_ascii=False)}",
        ]

    def start(self, command: TaskCommand) -> list[str]:
        with _queue(Settings.from_env(db_path=command.db_path), command.queue_name) as queue:
            task = queue.started(command.task_id)
        return [f"Task started: {_describe(task)}"]

    def done(self, command: TaskCommand) -> list[str]:
        with _queue(Settings.from_env(db_path=command.db_path), command.queue_name) as queue:
            task = queue.done(command.task_id)
        return [f"Task done: {_describe(task)}"]

    def fail(self, command: FailTaskCommand) -> list[str]:
        with _queue(Settings.from_env(db_path=command.db_path), command.queue_name) as queue:
            task = queue.failed(command.task_id, command.error)
        return [f"Task failed: {_describe(task)}", f"Error: {task.error}"]

    def cancel(self, command: TaskCommand) -> list[str]:
        with _queue(Settings.from_env(db_path=command.db_path), command.queue_name) as queue:
            task = queue.cancel(command.task_id)
        return [f"Task cancelled: {_describe(task)}"]

    def set_status(self, command: SetStatusCommand) -> list[str]:
        with _queue(Settings.from_env(db_path=command.db_path), command.queue_name) as queue:
            task = queue.status(
                command.task_id,
                command.status,
                command.allowed or None,
            )
        return [f"Task updated: {_describe(task)}"]

    def show(self, command: TaskCommand) -> list[str]:
        with _queue(Settings.from_env(db_path=command.db_path), command.queue_name) as queue:
            task = queue.find_by_id(command.task_id)
        if task is None:
            return [f"Task not found: {command.task_id}"]
        return [
            f"Task: {task.id}",
            f"Status: {task.status.value}",
            f"Priority: {task.priority}",
            f"Error: {task.error or '-'}",
            f"Data: {json.dumps(task.data, ensure_ascii=False)}",
        ]

    def clear(self, command: QueueCommand) -> list[str]:
        with _queue(Settings.from_env(db_path=command.db_path), command.queue_name) as queue:
            queue.clear()
        return [f"Queue cleared: {command.queue_name}"]


@contextmanager
def _queue(settings: Settings, queue_name: str) -> Iterator[Queue]:
    settings.validate()
    database = SqliteTaskDatabase(
        settings.db_path,
        busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    )
    database.init_schema()
    try:
        server = QueueServer(database=database)
        yield server.add_queue(queue_name, settings.queue.to_options())
    finally:
        database.close()


def _parse_data(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as error:
        raise ValueError(f"--data must be valid JSON, got {raw!r}: {error}") from error


def _describe(task: Task) -> str:
    return f"task_id={task.id} status={task.status.value} priority={task.priority}"
