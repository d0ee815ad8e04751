"""Store interface consumed by the queue engine."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import IntEnum
from typing import Any, Protocol

from katar_queue.errors import StoreContractError
from katar_queue.models import Task

STORE_VERBS = ("wipe", "insert", "update", "delete", "find_one", "find_by_id")

QUERY_FIELDS = frozenset({"id", "status", "priority", "error"})
SORT_FIELDS = frozenset({"priority", "sequence"})
UPDATE_FIELDS = frozenset({"data", "status", "priority", "error"})


class SortOrder(IntEnum):
    ASC = 1
    DESC = -1


SortKey = tuple[str, SortOrder]

# Highest priority first, then earliest inserted.
NEXT_TASK_SORT: tuple[SortKey, ...] = (
    ("priority", SortOrder.DESC),
    ("sequence", SortOrder.ASC),
)


class TaskStore(Protocol):
    """Minimal verb set a backing store implements for one queue."""

    def wipe(self) -> None:
        """Remove all tasks of this queue."""

    def insert(self, record: Task) -> Task:
        """Store a record without id and return it with its assigned id."""

    def update(self, task_id: str, fields: Mapping[str, Any]) -> Task | None:
        """Set fields on one task; None when the id is unknown."""

    def delete(self, task_id: str) -> Task | None:
        """Remove one task and return its last state; None when the id is unknown."""

    def find_one(
        self,
        query: Mapping[str, Any],
        sort: Sequence[SortKey] | None = None,
    ) -> Task | None:
        """Return the first task matching field equality filters under ``sort``."""

    def find_by_id(self, task_id: str) -> Task | None:
        """Return one task by id."""


class TaskStoreFactory(Protocol):
    """Produces one store per queue name."""

    name: str

    def model(self, queue_name: str) -> TaskStore:
        """Return the store bound to ``queue_name``."""


def assert_task_store(store: object) -> None:
    """Raise when ``store`` does not implement every store verb."""

    for verb in STORE_VERBS:
        if not callable(getattr(store, verb, None)):
            raise StoreContractError(verb)


def check_query(query: Mapping[str, Any]) -> None:
    unknown = set(query) - QUERY_FIELDS
    if unknown:
        raise ValueError(f"Unsupported query field(s): {', '.join(sorted(unknown))}")


def check_sort(sort: Sequence[SortKey] | None) -> None:
    for field_name, _ in sort or ():
        if field_name not in SORT_FIELDS:
            raise ValueError(f"Unsupported sort field: {field_name!r}")


def check_update(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - UPDATE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported update field(s): {', '.join(sorted(unknown))}")
