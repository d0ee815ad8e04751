"""Domain models for the task queue engine."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any


class TaskStatus(str, Enum):
    """Closed set of task lifecycle states."""

    PAUSED = "paused"
    QUEUED = "queued"
    IN_PROGRESS = "in progress"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TaskPriority(IntEnum):
    """Named priority presets. Any integer is a legal priority."""

    HIGH = 10
    NORMAL = 0
    LOW = -10


TASK_STATUSES: tuple[TaskStatus, ...] = tuple(TaskStatus)

TERMINAL_STATUSES = frozenset({TaskStatus.DONE, TaskStatus.FAILED, TaskStatus.CANCELLED})


@dataclass(slots=True)
class Task:
    """Stored task record."""

    id: str | None
    data: Any = None
    status: TaskStatus = TaskStatus.QUEUED
    priority: int = TaskPriority.NORMAL.value
    error: str | None = None


@dataclass(slots=True)
class TaskCreate:
    """Input payload for inserting a task."""

    data: Any = None
    status: TaskStatus | str | None = None
    priority: int | None = None


@dataclass(slots=True)
class ClaimedTask:
    """What `Queue.next` hands to a claimant: id and payload only."""

    id: str
    data: Any


TaskInput = TaskCreate | Mapping[str, Any]
BeforeInsertHook = Callable[[TaskInput], TaskInput | None]

_OPTION_KEYS = {
    "timeout": "timeout_ms",
    "timeout_ms": "timeout_ms",
    "persistent": "persistent",
    "concurrency": "concurrency",
    "before_insert": "before_insert",
}


@dataclass(slots=True)
class QueueOptions:
    """Per-queue configuration.

    Only ``persistent`` and ``before_insert`` change behavior. ``timeout_ms`` and
    ``concurrency`` are carried for callers that schedule work around the queue.
    """

    timeout_ms: int = 60_000
    persistent: bool = False
    concurrency: int = 1
    before_insert: BeforeInsertHook | None = None

    @classmethod
    def coerce(cls, value: QueueOptions | Mapping[str, Any] | None) -> QueueOptions:
        """Build options from an instance, a mapping of option keys, or nothing."""

        if value is None:
            return cls()
        if isinstance(value, QueueOptions):
            return value
        kwargs: dict[str, Any] = {}
        for key, option in value.items():
            field_name = _OPTION_KEYS.get(key)
            if field_name is None:
                raise ValueError(f"Unknown queue option: {key!r}")
            kwargs[field_name] = option
        return cls(**kwargs)
