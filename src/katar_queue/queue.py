"""Per-queue task lifecycle engine."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, overload

from katar_queue.errors import (
    InvalidStatusError,
    MissingErrorError,
    MissingTaskIdError,
    StatusPreconditionError,
    TaskNotFoundError,
    TaskValidationError,
)
from katar_queue.events import EventEmitter, EventSink
from katar_queue.models import (
    ClaimedTask,
    QueueOptions,
    Task,
    TaskCreate,
    TaskInput,
    TaskPriority,
    TaskStatus,
)
from katar_queue.storage.base import NEXT_TASK_SORT, SortKey, TaskStore, assert_task_store
from katar_queue.validator import parse_status, validate_task_record

logger = logging.getLogger(__name__)

DELETED_EVENT = "deleted"

CANCELLABLE_STATUSES = (TaskStatus.PAUSED, TaskStatus.QUEUED)


class Queue:
    """Lifecycle operations for the tasks of one named queue.

    Every successful mutation is published twice: on ``self.events`` under the
    resulting status, and on the shared sink under ``"<name>.<status>"``.
    In ephemeral mode (``persistent=False``) ``done``/``failed`` delete the task
    from the store and additionally publish ``deleted``.
    """

    def __init__(
        self,
        name: str,
        store: TaskStore,
        *,
        events: EventSink | None = None,
        options: QueueOptions | Mapping[str, Any] | None = None,
    ) -> None:
        assert_task_store(store)
        self.name = name
        self.store = store
        self.options = QueueOptions.coerce(options)
        self.events = EventEmitter()
        self.shared_events = events

    def clear(self) -> None:
        """Remove every task of this queue."""

        self.store.wipe()

    @overload
    def insert(self, tasks: TaskInput) -> Task: ...

    @overload
    def insert(self, tasks: list[TaskInput] | tuple[TaskInput, ...]) -> list[Task]: ...

    def insert(self, tasks):
        """Insert one task, or a list of tasks in order.

        A failure on one element of a list stops the remaining ones; tasks
        inserted before it stay inserted.
        """

        if isinstance(tasks, list | tuple):
            logger.debug("insert - got %d tasks for queue %s", len(tasks), self.name)
            return [self._insert_one(task) for task in tasks]
        return self._insert_one(tasks)

    def next(self) -> ClaimedTask | None:
        """Return the highest-priority, earliest queued task without claiming it.

        TODO: selection and ``started`` are separate store calls, so two callers
        can receive the same task. Exactly-once claiming needs a conditional
        queued -> in progress update in the store contract.
        """

        task = self.store.find_one({"status": TaskStatus.QUEUED}, sort=NEXT_TASK_SORT)
        if task is None or task.id is None:
            return None
        return ClaimedTask(id=task.id, data=task.data)

    def status(
        self,
        task_id: str,
        status: TaskStatus | str,
        allowed_statuses: Iterable[TaskStatus | str] | None = None,
        error: str | None = None,
    ) -> Task:
        """Move a task to ``status``.

        Without ``allowed_statuses`` the update is unconditional, including out
        of terminal states. With it, the current status must be in the set.
        """

        if not task_id:
            raise MissingTaskIdError()
        target = parse_status(status)
        if target is None:
            raise InvalidStatusError(status)

        if allowed_statuses is None:
            updates: dict[str, Any] = {"status": target}
            if error is not None:
                updates["error"] = error
            task = self.store.update(task_id, updates)
            if task is None:
                raise TaskNotFoundError(task_id)
        else:
            allowed = _parse_statuses(allowed_statuses)
            current = self.find_by_id(task_id)
            if current is None:
                raise TaskNotFoundError(task_id)
            if current.status not in allowed:
                raise StatusPreconditionError(
                    task_id=task_id,
                    current=current.status.value,
                    allowed=[item.value for item in allowed],
                )
            task = self.store.update(task_id, {"status": target, "error": error})
            if task is None:
                raise TaskNotFoundError(task_id)

        logger.debug("status - task %s in queue %s is now %s", task_id, self.name, target.value)
        self._emit_task_event(task)
        return task

    def started(self, task_id: str) -> Task:
        return self.status(task_id, TaskStatus.IN_PROGRESS)

    def cancel(self, task_id: str) -> Task:
        """Cancel a task that is still paused or queued."""

        return self.status(task_id, TaskStatus.CANCELLED, CANCELLABLE_STATUSES)

    def done(self, task_id: str) -> Task:
        return self._finish(task_id, TaskStatus.DONE)

    def failed(self, task_id: str, error: BaseException | str | None) -> Task:
        """Mark a task failed with an exception or a non-empty message."""

        if isinstance(error, BaseException):
            message = f"{type(error).__name__}: {error}"
        elif isinstance(error, str) and error:
            message = error
        else:
            raise MissingErrorError()
        return self._finish(task_id, TaskStatus.FAILED, message)

    def find_by_id(self, task_id: str) -> Task | None:
        return self.store.find_by_id(task_id)

    def find_one(
        self,
        query: Mapping[str, Any],
        sort: Sequence[SortKey] | None = None,
    ) -> Task | None:
        return self.store.find_one(query, sort)

    def _insert_one(self, task: TaskInput) -> Task:
        logger.debug("insert - got task %r", task)

        if self.options.before_insert is not None:
            replacement = self.options.before_insert(task)
            if replacement is not None:
                task = replacement

        record = _normalize(task)
        result = validate_task_record(
            {
                "data": record["data"],
                "status": record["status"],
                "priority": record["priority"],
            },
        )
        if not result.is_valid:
            raise TaskValidationError(result.errors)

        logger.debug("insert - inserting task %r into queue %s", record, self.name)
        stored = self.store.insert(
            Task(
                id=None,
                data=record["data"],
                status=parse_status(record["status"]) or TaskStatus.QUEUED,
                priority=record["priority"],
            ),
        )
        self._emit_task_event(stored)
        return stored

    def _finish(self, task_id: str, status: TaskStatus, error: str | None = None) -> Task:
        if self.options.persistent:
            return self.status(task_id, status, error=error)

        if not task_id:
            raise MissingTaskIdError()
        task = self.store.delete(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)

        task.status = status
        if error:
            task.error = error
        logger.debug(
            "finish - task %s removed from queue %s as %s",
            task_id,
            self.name,
            status.value,
        )
        self._emit_task_event(task)
        self._emit_task_event(task, DELETED_EVENT)
        return task

    def _emit_task_event(self, task: Task, event: str | None = None) -> None:
        name = event or task.status.value
        self.events.emit(name, task)
        if self.shared_events is None:
            return
        try:
            self.shared_events.emit(f"{self.name}.{name}", task)
        except Exception:
            logger.exception("Shared sink failed on event %s.%s", self.name, name)


def _normalize(task: TaskInput) -> dict[str, Any]:
    if isinstance(task, TaskCreate):
        data, status, priority = task.data, task.status, task.priority
    else:
        data, status, priority = task.get("data"), task.get("status"), task.get("priority")
    return {
        "data": data,
        "status": status or TaskStatus.QUEUED,
        "priority": TaskPriority.NORMAL.value if priority is None else priority,
    }


def _parse_statuses(values: Iterable[TaskStatus | str]) -> tuple[TaskStatus, ...]:
    parsed: list[TaskStatus] = []
    for value in values:
        status = parse_status(value)
        if status is None:
            raise InvalidStatusError(value)
        parsed.append(status)
    return tuple(parsed)
