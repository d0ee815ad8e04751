"""Runtime configuration for hosted queues."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from katar_queue.models import QueueOptions


@dataclass(slots=True)
class QueueDefaults:
    """Options applied to queues created by the host process."""

    timeout_ms: int = 60_000
    persistent: bool = False
    concurrency: int = 1

    def to_options(self) -> QueueOptions:
        return QueueOptions(
            timeout_ms=self.timeout_ms,
            persistent=self.persistent,
            concurrency=self.concurrency,
        )


@dataclass(slots=True)
class Settings:
    """Application settings."""

    db_path: Path = Path(".katar_queue.db")
    sqlite_busy_timeout_ms: int = 5_000
    queue: QueueDefaults = field(default_factory=QueueDefaults)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("KATAR_QUEUE_DB_PATH", ".katar_queue.db")),
            sqlite_busy_timeout_ms=int(os.getenv("KATAR_QUEUE_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            queue=QueueDefaults(
                timeout_ms=int(os.getenv("KATAR_QUEUE_TIMEOUT_MS", "60000")),
                persistent=_env_bool("KATAR_QUEUE_PERSISTENT", default=False),
                concurrency=int(os.getenv("KATAR_QUEUE_CONCURRENCY", "1")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error on out-of-range values."""

        if self.sqlite_busy_timeout_ms <= 0:
            raise ValueError("KATAR_QUEUE_SQLITE_BUSY_TIMEOUT_MS must be > 0.")
        if self.queue.timeout_ms <= 0:
            raise ValueError("KATAR_QUEUE_TIMEOUT_MS must be > 0.")
        if self.queue.concurrency < 1:
            raise ValueError("KATAR_QUEUE_CONCURRENCY must be >= 1.")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
