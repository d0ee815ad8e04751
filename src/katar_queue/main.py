"""CLI entrypoint for katar-queue."""

from collections.abc import Callable
from pathlib import Path

import rich_click as click

from katar_queue import __version__
from katar_queue.controllers import (
    EnqueueCommand,
    FailTaskCommand,
    QueueCliController,
    QueueCommand,
    SetStatusCommand,
    TaskCommand,
)
from katar_queue.errors import QueueError
from katar_queue.models import TASK_STATUSES

click.rich_click.USE_MARKDOWN = True
QUEUE_CONTROLLER = QueueCliController()

STATUS_CHOICES = [status.value for status in TASK_STATUSES]


def db_path_option(func: Callable) -> Callable:
    return click.option(
        "--db-path",
        type=click.Path(path_type=Path),
        default=None,
        help="SQLite DB path.",
    )(func)


def queue_option(func: Callable) -> Callable:
    return click.option(
        "--queue",
        "queue_name",
        default="default",
        show_default=True,
        help="Queue name.",
    )(func)


def task_id_option(func: Callable) -> Callable:
    return click.option("--task-id", required=True, help="Task id.")(func)


@click.group()
@click.version_option(version=__version__, prog_name="katar-queue")
def katar_queue() -> None:
    """Task queue CLI."""


@katar_queue.command("enqueue")
@db_path_option
@queue_option
@click.option(
    "--data",
    "data",
    multiple=True,
    help="Task payload as JSON. Repeat to insert several tasks in order.",
)
@click.option("--priority", type=int, default=None, help="Task priority, higher runs first.")
@click.option(
    "--status",
    type=click.Choice(STATUS_CHOICES, case_sensitive=False),
    default=None,
    help="Initial status (default: queued).",
)
def enqueue(
    db_path: Path | None,
    queue_name: str,
    data: tuple[str, ...],
    priority: int | None,
    status: str | None,
) -> None:
    """Insert one or more tasks."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.enqueue(
            EnqueueCommand(
                db_path=db_path,
                queue_name=queue_name,
                data=data,
                priority=priority,
                status=status.lower() if status else None,
            ),
        ),
    )


@katar_queue.command("next")
@db_path_option
@queue_option
def next_task(db_path: Path | None, queue_name: str) -> None:
    """Show the task a worker would pick next (does not start it)."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.next_task(QueueCommand(db_path=db_path, queue_name=queue_name)),
    )


@katar_queue.command("start")
@db_path_option
@queue_option
@task_id_option
def start(db_path: Path | None, queue_name: str, task_id: str) -> None:
    """Mark a task in progress."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.start(
            TaskCommand(db_path=db_path, queue_name=queue_name, task_id=task_id),
        ),
    )


@katar_queue.command("done")
@db_path_option
@queue_option
@task_id_option
def done(db_path: Path | None, queue_name: str, task_id: str) -> None:
    """Mark a task done."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.done(
            TaskCommand(db_path=db_path, queue_name=queue_name, task_id=task_id),
        ),
    )


@katar_queue.command("fail")
@db_path_option
@queue_option
@task_id_option
@click.option("--error", required=True, help="Failure message stored on the task.")
def fail(db_path: Path | None, queue_name: str, task_id: str, error: str) -> None:
    """Mark a task failed."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.fail(
            FailTaskCommand(
                db_path=db_path,
                queue_name=queue_name,
                task_id=task_id,
                error=error,
            ),
        ),
    )


@katar_queue.command("cancel")
@db_path_option
@queue_option
@task_id_option
def cancel(db_path: Path | None, queue_name: str, task_id: str) -> None:
    """Cancel a queued or paused task."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.cancel(
            TaskCommand(db_path=db_path, queue_name=queue_name, task_id=task_id),
        ),
    )


@katar_queue.command("set-status")
@db_path_option
@queue_option
@task_id_option
@click.option(
    "--status",
    type=click.Choice(STATUS_CHOICES, case_sensitive=False),
    required=True,
    help="New status.",
)
@click.option(
    "--allowed",
    type=click.Choice(STATUS_CHOICES, case_sensitive=False),
    multiple=True,
    help="Only update when the current status is one of these. Can be repeated.",
)
def set_status(
    db_path: Path | None,
    queue_name: str,
    task_id: str,
    status: str,
    allowed: tuple[str, ...],
) -> None:
    """Set a task status, unconditionally unless --allowed is given."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.set_status(
            SetStatusCommand(
                db_path=db_path,
                queue_name=queue_name,
                task_id=task_id,
                status=status.lower(),
                allowed=tuple(value.lower() for value in allowed),
            ),
        ),
    )


@katar_queue.command("show")
@db_path_option
@queue_option
@task_id_option
def show(db_path: Path | None, queue_name: str, task_id: str) -> None:
    """Show one task."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.show(
            TaskCommand(db_path=db_path, queue_name=queue_name, task_id=task_id),
        ),
    )


@katar_queue.command("clear")
@db_path_option
@queue_option
def clear(db_path: Path | None, queue_name: str) -> None:
    """Delete every task in the queue."""

    _emit_lines(
        lambda: QUEUE_CONTROLLER.clear(QueueCommand(db_path=db_path, queue_name=queue_name)),
    )


def _emit_lines(run: Callable[[], list[str]]) -> None:
    try:
        lines = run()
    except (QueueError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    katar_queue()
