"""Embeddable task queue engine.

A ``Queue`` moves tasks through a fixed status state machine over a pluggable
store and publishes lifecycle events; ``QueueServer`` hosts named queues.
"""

from katar_queue.errors import (
    DuplicateQueueError,
    InvalidStatusError,
    MissingErrorError,
    MissingTaskIdError,
    QueueError,
    StatusPreconditionError,
    StoreContractError,
    TaskNotFoundError,
    TaskValidationError,
)
from katar_queue.events import EventEmitter, EventSink
from katar_queue.models import (
    TASK_STATUSES,
    ClaimedTask,
    QueueOptions,
    Task,
    TaskCreate,
    TaskPriority,
    TaskStatus,
)
from katar_queue.queue import Queue
from katar_queue.server import QueueServer

__version__ = "0.3.0"

__all__ = [
    "TASK_STATUSES",
    "ClaimedTask",
    "DuplicateQueueError",
    "EventEmitter",
    "EventSink",
    "InvalidStatusError",
    "MissingErrorError",
    "MissingTaskIdError",
    "Queue",
    "QueueError",
    "QueueOptions",
    "QueueServer",
    "StatusPreconditionError",
    "StoreContractError",
    "Task",
    "TaskCreate",
    "TaskNotFoundError",
    "TaskPriority",
    "TaskStatus",
    "TaskValidationError",
    "__version__",
]
