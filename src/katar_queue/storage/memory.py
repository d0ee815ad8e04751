"""Process-local task store. Data is lost when the process exits."""

from __future__ import annotations

import threading
from copy import deepcopy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Any
from uuid import uuid4

from katar_queue.models import Task
from katar_queue.storage.base import (
    SortKey,
    SortOrder,
    check_query,
    check_sort,
    check_update,
)


@dataclass(slots=True)
class _Row:
    sequence: int
    task: Task


class MemoryTaskStore:
    """Dict-backed store for one queue; every verb is atomic under a lock."""

    def __init__(self, queue_name: str) -> None:
        self.queue_name = queue_name
        self._lock = threading.Lock()
        self._rows: dict[str, _Row] = {}
        self._sequence = 0

    def wipe(self) -> None:
        with self._lock:
            self._rows.clear()

    def insert(self, record: Task) -> Task:
        with self._lock:
            self._sequence += 1
            task = replace(deepcopy(record), id=uuid4().hex)
            self._rows[task.id] = _Row(sequence=self._sequence, task=task)
            return deepcopy(task)

    def update(self, task_id: str, fields: Mapping[str, Any]) -> Task | None:
        check_update(fields)
        with self._lock:
            row = self._rows.get(task_id)
            if row is None:
                return None
            row.task = replace(row.task, **deepcopy(dict(fields)))
            return deepcopy(row.task)

    def delete(self, task_id: str) -> Task | None:
        with self._lock:
            row = self._rows.pop(task_id, None)
        return deepcopy(row.task) if row is not None else None

    def find_one(
        self,
        query: Mapping[str, Any],
        sort: Sequence[SortKey] | None = None,
    ) -> Task | None:
        check_query(query)
        check_sort(sort)
        with self._lock:
            matches = [row for row in self._rows.values() if _matches(row.task, query)]
            if not matches:
                return None
            # Stable sorts applied from the least significant key up.
            ordered = sorted(matches, key=lambda row: row.sequence)
            for field_name, order in reversed(tuple(sort or ())):
                ordered.sort(
                    key=lambda row, name=field_name: _sort_value(row, name),
                    reverse=order == SortOrder.DESC,
                )
            return deepcopy(ordered[0].task)

    def find_by_id(self, task_id: str) -> Task | None:
        with self._lock:
            row = self._rows.get(task_id)
            return deepcopy(row.task) if row is not None else None


class MemoryTaskDatabase:
    """Store factory handing out one in-memory store per queue name."""

    name = "memorydb"

    def __init__(self) -> None:
        self._stores: dict[str, MemoryTaskStore] = {}

    def model(self, queue_name: str) -> MemoryTaskStore:
        store = self._stores.get(queue_name)
        if store is None:
            store = MemoryTaskStore(queue_name)
            self._stores[queue_name] = store
        return store


def _matches(task: Task, query: Mapping[str, Any]) -> bool:
    return all(getattr(task, field_name) == value for field_name, value in query.items())


def _sort_value(row: _Row, field_name: str) -> int:
    if field_name == "sequence":
        return row.sequence
    return getattr(row.task, field_name)
