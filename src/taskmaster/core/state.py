# src/taskmaster/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..storage.writer import SnapshotWriter
from ..tasks.task_models import PriorityFilter, StatusFilter, Task
from ..tasks.task_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore
from ..tasks.undo import UndoBroker
from .ports import Clock, Notifier


@dataclass
class AppState:
    """
    The single owned aggregate of a running app.

    Only TaskStore writes the task set; everything else reads it or goes
    through its operations.
    """

    settings: Any

    clock: Clock
    store: TaskStore
    undo: UndoBroker
    scheduler: ReminderScheduler
    notifier: Notifier
    writer: SnapshotWriter | None = None

    status_filter: StatusFilter = StatusFilter.ALL
    priority_filter: PriorityFilter = PriorityFilter.ALL

    # Rows of the last rendered list, so the console can refer to "row 2".
    last_view: list[Task] = field(default_factory=list)
    startup_warnings: list[str] = field(default_factory=list)
