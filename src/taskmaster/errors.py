# src/taskmaster/errors.py

"""
Error taxonomy of the task engine.

None of these are fatal: callers log them and keep operating on the
in-memory state.
"""

from __future__ import annotations


class TaskError(Exception):
    """Base class for task engine errors."""


class InvalidTaskInput(TaskError, ValueError):
    """Rejected before any mutation (e.g. empty title)."""


class TaskNotFound(TaskError, KeyError):
    def __init__(self, task_id: str) -> None:
        super().__init__(task_id)
        self.task_id = task_id

    def __str__(self) -> str:
        return f"task not found: {self.task_id}"


class TaskConflict(TaskError):
    """Restore collided with a live task id."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"task id already exists: {task_id}")
        self.task_id = task_id


class PersistenceFailure(TaskError):
    """Snapshot could not be written or read."""


class SnapshotCorrupt(PersistenceFailure):
    """Stored snapshot exists but cannot be parsed."""


class NotificationUnavailable(TaskError):
    """Notification permission denied or transport missing."""
