"""Exceptions raised by the queue engine and its registry."""

from __future__ import annotations

from collections.abc import Iterable


class QueueError(RuntimeError):
    """Base class for queue engine failures."""


class MissingTaskIdError(QueueError, ValueError):
    def __init__(self) -> None:
        super().__init__("Missing task id")


class InvalidStatusError(QueueError, ValueError):
    def __init__(self, status: object) -> None:
        super().__init__(f"Invalid status: {status!r}")
        self.status = status


class TaskNotFoundError(QueueError):
    def __init__(self, task_id: object) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class StatusPreconditionError(QueueError):
    """Current task status is outside the allowed set of a guarded transition."""

    def __init__(self, *, task_id: str, current: str, allowed: Iterable[str]) -> None:
        self.allowed = tuple(allowed)
        super().__init__(
            f"Task status must be one of {', '.join(self.allowed)} "
            f"(task_id={task_id}, status={current})",
        )
        self.task_id = task_id
        self.current = current


class MissingErrorError(QueueError, ValueError):
    """`Queue.failed` was called without an exception or a non-empty message."""

    def __init__(self) -> None:
        super().__init__("Missing error")


class TaskValidationError(QueueError):
    def __init__(self, errors: Iterable[str]) -> None:
        self.errors = tuple(errors)
        super().__init__("Invalid task record: " + "; ".join(self.errors))


class StoreContractError(QueueError, TypeError):
    def __init__(self, verb: str) -> None:
        super().__init__(f"Task store is missing function `{verb}`")
        self.verb = verb


class DuplicateQueueError(QueueError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Duplicate queue: {name}")
        self.name = name
