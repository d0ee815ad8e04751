"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from katar_queue.queue import Queue
from katar_queue.server import QueueServer
from katar_queue.storage import MemoryTaskDatabase, SqliteTaskDatabase, TaskStoreFactory


@pytest.fixture(params=["memory", "sqlite"])
def database(request, tmp_path) -> Iterator[TaskStoreFactory]:
    """Every store-backed test runs against both bundled stores."""

    if request.param == "memory":
        yield MemoryTaskDatabase()
    else:
        sqlite_db = SqliteTaskDatabase(tmp_path / "queue.db")
        sqlite_db.init_schema()
        yield sqlite_db
        sqlite_db.close()


@pytest.fixture()
def server(database: TaskStoreFactory) -> QueueServer:
    return QueueServer(database=database)


@pytest.fixture()
def queue(server: QueueServer) -> Queue:
    return server.add_queue("test", {"persistent": True})


@pytest.fixture()
def ephemeral_queue(server: QueueServer) -> Queue:
    return server.add_queue("ephemeral")
