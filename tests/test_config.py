from __future__ import annotations

from pathlib import Path

import allure
import pytest

from katar_queue.config import QueueDefaults, Settings
from katar_queue.models import QueueOptions

pytestmark = [
    allure.epic("Host Process"),
    allure.feature("Configuration"),
]


def test_from_env_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "KATAR_QUEUE_DB_PATH",
        "KATAR_QUEUE_SQLITE_BUSY_TIMEOUT_MS",
        "KATAR_QUEUE_TIMEOUT_MS",
        "KATAR_QUEUE_PERSISTENT",
        "KATAR_QUEUE_CONCURRENCY",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.db_path == Path(".katar_queue.db")
    assert settings.sqlite_busy_timeout_ms == 5_000
    assert settings.queue == QueueDefaults(timeout_ms=60_000, persistent=False, concurrency=1)


def test_from_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("KATAR_QUEUE_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("KATAR_QUEUE_TIMEOUT_MS", "1500")
    monkeypatch.setenv("KATAR_QUEUE_PERSISTENT", "yes")
    monkeypatch.setenv("KATAR_QUEUE_CONCURRENCY", "4")

    settings = Settings.from_env()

    assert settings.db_path == tmp_path / "env.db"
    assert settings.queue.to_options() == QueueOptions(
        timeout_ms=1_500,
        persistent=True,
        concurrency=4,
    )


def test_explicit_db_path_wins(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("KATAR_QUEUE_DB_PATH", str(tmp_path / "env.db"))

    assert Settings.from_env(db_path=tmp_path / "cli.db").db_path == tmp_path / "cli.db"


def test_from_env_rejects_invalid_bool(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KATAR_QUEUE_PERSISTENT", "maybe")

    with pytest.raises(ValueError, match="Invalid boolean value for KATAR_QUEUE_PERSISTENT"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (Settings(sqlite_busy_timeout_ms=0), "BUSY_TIMEOUT_MS"),
        (Settings(queue=QueueDefaults(timeout_ms=0)), "KATAR_QUEUE_TIMEOUT_MS"),
        (Settings(queue=QueueDefaults(concurrency=0)), "KATAR_QUEUE_CONCURRENCY"),
    ],
)
def test_validate_rejects_out_of_range_values(settings: Settings, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        settings.validate()
