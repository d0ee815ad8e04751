"""Task store implementations."""

from katar_queue.storage.base import (
    NEXT_TASK_SORT,
    SortKey,
    SortOrder,
    TaskStore,
    TaskStoreFactory,
    assert_task_store,
)
from katar_queue.storage.memory import MemoryTaskDatabase, MemoryTaskStore
from katar_queue.storage.sqlite import SqliteTaskDatabase, SqliteTaskStore

__all__ = [
    "NEXT_TASK_SORT",
    "MemoryTaskDatabase",
    "MemoryTaskStore",
    "SortKey",
    "SortOrder",
    "SqliteTaskDatabase",
    "SqliteTaskStore",
    "TaskStore",
    "TaskStoreFactory",
    "assert_task_store",
]
