"""Durable task store backed by SQLModel + SQLite."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, Text, event
from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from sqlmodel import Field, Session, SQLModel, col, create_engine, select

from katar_queue.models import Task, TaskStatus
from katar_queue.storage.base import (
    SortKey,
    SortOrder,
    check_query,
    check_sort,
    check_update,
)


class QueueTask(SQLModel, table=True):
    __tablename__ = "queue_tasks"  # type: ignore[bad-override]
    __table_args__ = (
        Index("idx_queue_tasks_next", "queue_name", "status", "priority", "sequence"),
    )

    sequence: int | None = Field(default=None, primary_key=True)
    task_id: str = Field(unique=True, index=True)
    queue_name: str = Field(index=True)
    status: str = Field(index=True)
    priority: int
    data_json: str | None = Field(default=None, sa_column=Column(Text))
    error: str | None = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


_QUERY_COLUMNS = {
    "id": QueueTask.task_id,
    "status": QueueTask.status,
    "priority": QueueTask.priority,
    "error": QueueTask.error,
}

_SORT_COLUMNS = {
    "priority": QueueTask.priority,
    "sequence": QueueTask.sequence,
}


class SqliteTaskStore:
    """Store for one queue; each verb runs in its own session."""

    def __init__(self, engine: Engine, queue_name: str) -> None:
        self.engine = engine
        self.queue_name = queue_name

    def wipe(self) -> None:
        with Session(self.engine) as session:
            session.exec(sa_delete(QueueTask).where(col(QueueTask.queue_name) == self.queue_name))
            session.commit()

    def insert(self, record: Task) -> Task:
        now = _utc_now()
        with Session(self.engine) as session:
            row = QueueTask(
                task_id=uuid4().hex,
                queue_name=self.queue_name,
                status=_status_value(record.status),
                priority=record.priority,
                data_json=_dump_data(record.data),
                error=record.error,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_task(row)

    def update(self, task_id: str, fields: Mapping[str, Any]) -> Task | None:
        check_update(fields)
        values: dict[str, Any] = {"updated_at": _utc_now()}
        for field_name, value in fields.items():
            if field_name == "data":
                values["data_json"] = _dump_data(value)
            elif field_name == "status":
                values["status"] = _status_value(value)
            else:
                values[field_name] = value

        with Session(self.engine) as session:
            result = session.exec(
                sa_update(QueueTask)
                .where(
                    col(QueueTask.task_id) == task_id,
                    col(QueueTask.queue_name) == self.queue_name,
                )
                .values(**values),
            )
            if result.rowcount != 1:
                session.rollback()
                return None
            row = self._get_row(session=session, task_id=task_id)
            task = _to_task(row) if row is not None else None
            session.commit()
            return task

    def delete(self, task_id: str) -> Task | None:
        with Session(self.engine) as session:
            row = self._get_row(session=session, task_id=task_id)
            if row is None:
                return None
            task = _to_task(row)
            session.delete(row)
            session.commit()
            return task

    def find_one(
        self,
        query: Mapping[str, Any],
        sort: Sequence[SortKey] | None = None,
    ) -> Task | None:
        check_query(query)
        check_sort(sort)
        statement = select(QueueTask).where(col(QueueTask.queue_name) == self.queue_name)
        for field_name, value in query.items():
            if field_name == "status":
                value = _status_value(value)
            statement = statement.where(col(_QUERY_COLUMNS[field_name]) == value)
        for field_name, order in sort or ():
            column = col(_SORT_COLUMNS[field_name])
            statement = statement.order_by(column.desc() if order == SortOrder.DESC else column.asc())
        statement = statement.order_by(col(QueueTask.sequence).asc()).limit(1)

        with Session(self.engine) as session:
            row = session.exec(statement).first()
            return _to_task(row) if row is not None else None

    def find_by_id(self, task_id: str) -> Task | None:
        with Session(self.engine) as session:
            row = self._get_row(session=session, task_id=task_id)
            return _to_task(row) if row is not None else None

    def _get_row(self, *, session: Session, task_id: str) -> QueueTask | None:
        return session.exec(
            select(QueueTask).where(
                QueueTask.task_id == task_id,
                QueueTask.queue_name == self.queue_name,
            ),
        ).one_or_none()


class SqliteTaskDatabase:
    """Store factory sharing one SQLite database between queues."""

    name = "sqlite"

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5_000) -> None:
        self.db_path = db_path
        self.engine = _sqlite_engine(db_path, busy_timeout_ms)

    def init_schema(self) -> None:
        """Create the task table when missing."""

        SQLModel.metadata.create_all(self.engine, tables=[QueueTask.__table__])

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def model(self, queue_name: str) -> SqliteTaskStore:
        return SqliteTaskStore(self.engine, queue_name)


def _status_value(status: TaskStatus | str) -> str:
    return status.value if isinstance(status, TaskStatus) else str(status)


def _dump_data(data: Any) -> str | None:
    if data is None:
        return None
    return json.dumps(data, ensure_ascii=False)


def _to_task(row: QueueTask) -> Task:
    return Task(
        id=row.task_id,
        data=json.loads(row.data_json) if row.data_json is not None else None,
        status=TaskStatus(row.status),
        priority=row.priority,
        error=row.error,
    )


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _sqlite_engine(db_path: Path, busy_timeout_ms: int) -> Engine:
    """WAL-mode engine, one connection per session."""

    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={
            "check_same_thread": False,
            "timeout": max(1.0, busy_timeout_ms / 1000.0),
        },
        poolclass=NullPool,
    )

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record) -> None:  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode = WAL")
            cursor.execute(f"PRAGMA busy_timeout = {max(1, busy_timeout_ms)}")
        finally:
            cursor.close()

    return engine
