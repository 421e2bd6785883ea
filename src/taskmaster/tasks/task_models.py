# src/taskmaster/tasks/task_models.py

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import StrEnum


def _parse_key(raw: object, what: str) -> str:
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise ValueError(f"{what} must be a string, got {raw!r}")
    return raw.strip().lower()


class Priority(StrEnum):
    """
    Task priority.

    Notes:
    - parse() also accepts single-letter aliases and the Spanish labels
      used by the first releases of the app ("baja", "media", "alta").
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @classmethod
    def parse(cls, raw: Priority | str | None) -> Priority:
        if isinstance(raw, Priority):
            return raw
        key = _parse_key(raw, "priority")
        if not key:
            return cls.MEDIUM
        try:
            return _PRIORITY_ALIASES[key]
        except KeyError:
            raise ValueError(f"unknown priority: {raw!r}") from None


_PRIORITY_RANK = {Priority.LOW: 0, Priority.MEDIUM: 1, Priority.HIGH: 2}

_PRIORITY_ALIASES = {
    "low": Priority.LOW,
    "l": Priority.LOW,
    "baja": Priority.LOW,
    "medium": Priority.MEDIUM,
    "med": Priority.MEDIUM,
    "m": Priority.MEDIUM,
    "media": Priority.MEDIUM,
    "high": Priority.HIGH,
    "h": Priority.HIGH,
    "alta": Priority.HIGH,
}


class StatusFilter(StrEnum):
    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: StatusFilter | str) -> StatusFilter:
        if isinstance(raw, StatusFilter):
            return raw
        key = _parse_key(raw, "status filter")
        aliases = {
            "todas": cls.ALL,
            "open": cls.PENDING,
            "todo": cls.PENDING,
            "pendientes": cls.PENDING,
            "done": cls.COMPLETED,
            "completadas": cls.COMPLETED,
            "hechas": cls.COMPLETED,
        }
        if key in aliases:
            return aliases[key]
        return cls(key)


class PriorityFilter(StrEnum):
    ALL = "all"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, raw: PriorityFilter | Priority | str) -> PriorityFilter:
        if isinstance(raw, PriorityFilter):
            return raw
        key = _parse_key(raw, "priority filter")
        if key in ("all", "todas", "*"):
            return cls.ALL
        return cls(Priority.parse(key).value)

    def matches(self, priority: Priority) -> bool:
        return self is PriorityFilter.ALL or self.value == priority.value


@dataclass(slots=True)
class Task:
    id: str
    title: str
    created_at: float

    description: str = ""
    due_at: float | None = None
    priority: Priority = Priority.MEDIUM
    reminder_lead_minutes: int = 0
    completed: bool = False


def clean_title(raw: object) -> str:
    title = raw.strip() if isinstance(raw, str) else ""
    if not title:
        raise ValueError("title is required")
    return title


def clean_description(raw: object) -> str:
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raise ValueError("description must be a string")
    return raw.strip()


def clean_due_at(raw: object) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise ValueError(f"due_at must be epoch seconds, got {raw!r}")
    value = float(raw)
    if not math.isfinite(value):
        raise ValueError(f"due_at must be a finite timestamp, got {raw!r}")
    return value


def clean_lead_minutes(raw: object) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValueError(f"reminder_lead_minutes must be an integer, got {raw!r}")
    if raw < 0:
        raise ValueError("reminder_lead_minutes must be >= 0")
    return raw


class TaskEventKind(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    TOGGLED = "toggled"
    DELETED = "deleted"
    RESTORED = "restored"


@dataclass(slots=True, frozen=True)
class TaskEvent:
    """
    Published by TaskStore after a successful mutation.

    schedule_changed is True only for updates that changed due_at or
    reminder_lead_minutes; the reminder scheduler re-arms on it.

    undoable marks a delete that an undo slot still holds, so its reminder
    state must survive until the slot is discarded.
    """

    kind: TaskEventKind
    task: Task
    schedule_changed: bool = False
    undoable: bool = False
