"""Registry binding queue names to engines and stores."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from katar_queue.errors import DuplicateQueueError
from katar_queue.events import EventEmitter, EventSink
from katar_queue.models import QueueOptions
from katar_queue.queue import Queue
from katar_queue.storage.base import TaskStoreFactory
from katar_queue.storage.memory import MemoryTaskDatabase

logger = logging.getLogger(__name__)


class QueueServer(EventEmitter):
    """Hosts named task queues inside one process.

    Each queue gets its own store from ``database``. Queue events are published
    on ``events`` under ``"<queue>.<status>"``; without an injected sink the
    server itself is the sink, so listeners can subscribe with ``server.on``.
    """

    def __init__(
        self,
        database: TaskStoreFactory | None = None,
        events: EventSink | None = None,
    ) -> None:
        super().__init__()
        self.database: TaskStoreFactory = database or MemoryTaskDatabase()
        self.events: EventSink = events or self
        self.queues: dict[str, Queue] = {}

        if self.database.name == MemoryTaskDatabase.name:
            logger.warning(
                "Using a memory datastore. Use a persistent datastore in production",
            )

    def add_queue(
        self,
        name: str,
        options: QueueOptions | Mapping[str, Any] | None = None,
    ) -> Queue:
        """Create and register a queue; names are unique per server."""

        if name in self.queues:
            raise DuplicateQueueError(name)

        queue = Queue(name, self.database.model(name), events=self.events, options=options)
        self.queues[name] = queue
        logger.debug("Registered queue %s (persistent=%s)", name, queue.options.persistent)
        return queue

    def get_queue(self, name: str) -> Queue | None:
        return self.queues.get(name)
