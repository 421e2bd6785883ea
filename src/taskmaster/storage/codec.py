# src/taskmaster/storage/codec.py

"""
Flat record codec shared by the snapshot backends.

A record carries exactly the persistent Task fields. The runtime-only
"notified" state of the reminder scheduler is never written.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Any

from ..tasks.task_models import (
    Priority,
    Task,
    clean_description,
    clean_due_at,
    clean_lead_minutes,
    clean_title,
)

logger = logging.getLogger(__name__)

RECORD_FIELDS = (
    "id",
    "title",
    "description",
    "due_at",
    "priority",
    "reminder_lead_minutes",
    "completed",
    "created_at",
)


def encode_task(task: Task) -> dict[str, Any]:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "due_at": task.due_at,
        "priority": task.priority.value,
        "reminder_lead_minutes": task.reminder_lead_minutes,
        "completed": task.completed,
        "created_at": task.created_at,
    }


def decode_task(record: dict[str, Any]) -> Task:
    """Build a Task from a stored record. Raises ValueError on invalid data."""
    if not isinstance(record, dict):
        raise ValueError("record is not an object")

    task_id = record.get("id")
    if not isinstance(task_id, str) or not task_id.strip():
        raise ValueError("record has no id")

    created_at = record.get("created_at")
    if isinstance(created_at, bool) or not isinstance(created_at, (int, float)):
        raise ValueError("record has no created_at")
    if not math.isfinite(created_at):
        raise ValueError(f"record has a non-finite created_at: {created_at!r}")

    return Task(
        id=task_id,
        title=clean_title(record.get("title")),
        created_at=float(created_at),
        description=clean_description(record.get("description")),
        due_at=clean_due_at(record.get("due_at")),
        priority=Priority.parse(record.get("priority")),
        reminder_lead_minutes=clean_lead_minutes(record.get("reminder_lead_minutes", 0)),
        completed=bool(record.get("completed", False)),
    )


def decode_records(records: Iterable[Any]) -> list[Task]:
    """
    Decode records, skipping the ones that fail validation.

    Duplicate ids keep the first occurrence so the loaded set honours id
    uniqueness.
    """
    out: list[Task] = []
    seen: set[str] = set()
    for idx, record in enumerate(records):
        try:
            task = decode_task(record)
        except ValueError as e:
            logger.warning("Skipping invalid task record #%d: %s", idx, e)
            continue
        if task.id in seen:
            logger.warning("Skipping duplicate task id=%s in snapshot", task.id)
            continue
        seen.add(task.id)
        out.append(task)
    return out
