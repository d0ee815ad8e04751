"""Validation rules for normalized task records."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from katar_queue.models import TaskStatus

# status/priority are required; error must be a string when set; data is free-form.
TASK_SCHEMA: Mapping[str, Mapping[str, Any]] = {
    "status": {"type": "string", "enum": tuple(s.value for s in TaskStatus), "required": True},
    "priority": {"type": "number", "required": True},
    "error": {"type": "string"},
    "data": {"type": "any"},
}


@dataclass(slots=True)
class ValidationResult:
    """Result of task record validation."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_task_record(record: Mapping[str, Any]) -> ValidationResult:
    """Check a normalized record against the task schema."""

    errors: list[str] = []

    if record.get("status") is None:
        errors.append("status is required")
    elif not _is_status(record["status"]):
        errors.append(f"status must be one of {list(TASK_SCHEMA['status']['enum'])}")

    priority = record.get("priority")
    if priority is None:
        errors.append("priority is required")
    elif isinstance(priority, bool) or not isinstance(priority, int | float):
        errors.append(f"priority must be a number, got {type(priority).__name__}")

    error = record.get("error")
    if error is not None and not isinstance(error, str):
        errors.append(f"error must be a string, got {type(error).__name__}")

    return ValidationResult(is_valid=not errors, errors=errors)


def parse_status(value: object) -> TaskStatus | None:
    """Return the matching status or None when value is outside the closed set."""

    if isinstance(value, TaskStatus):
        return value
    if not isinstance(value, str):
        return None
    try:
        return TaskStatus(value)
    except ValueError:
        return None


def _is_status(value: object) -> bool:
    return parse_status(value) is not None
