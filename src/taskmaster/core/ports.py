# src/taskmaster/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task engine depends on Protocols instead of concrete implementations.
This keeps the clock, notification transport and snapshot storage swappable
and makes testing easier.
"""

from enum import StrEnum
from typing import TYPE_CHECKING, Awaitable, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import Task


class Clock(Protocol):
    """Wall clock in epoch seconds."""
    def now(self) -> float: ...


class PermissionState(StrEnum):
    UNDETERMINED = "undetermined"
    GRANTED = "granted"
    DENIED = "denied"


class Notifier(Protocol):
    """
    Connector-side port: how the reminder scheduler shows a user-visible alert.

    emit() is fire-and-forget from the scheduler's point of view: failures are
    logged by the caller and never surfaced to the user as errors.
    """

    permission: PermissionState

    def request_permission(self) -> PermissionState: ...

    def emit(self, title: str, body: str) -> Awaitable[None]: ...


class SnapshotRepo(Protocol):
    """
    Full-snapshot persistence.

    load() returns None when nothing was stored yet and raises SnapshotCorrupt
    when stored data cannot be parsed.
    """

    def load(self) -> list[Task] | None: ...
    def save(self, tasks: list[Task]) -> None: ...
