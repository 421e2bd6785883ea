# src/taskmaster/tasks/task_view.py

"""
Derived task list.

Pure functions over a task collection: nothing here mutates or caches, the
caller recomputes the view on every read.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .task_models import Priority, PriorityFilter, StatusFilter, Task


def matches(task: Task, status: StatusFilter, priority: PriorityFilter) -> bool:
    if status is StatusFilter.PENDING and task.completed:
        return False
    if status is StatusFilter.COMPLETED and not task.completed:
        return False
    return priority.matches(task.priority)


def sort_key(task: Task) -> tuple[int, float]:
    # High first, then newest first.
    return (-task.priority.rank, -task.created_at)


def view(
    tasks: Iterable[Task],
    status: StatusFilter | str = StatusFilter.ALL,
    priority: PriorityFilter | str = PriorityFilter.ALL,
) -> list[Task]:
    status_f = StatusFilter.parse(status)
    priority_f = PriorityFilter.parse(priority)
    return sorted((t for t in tasks if matches(t, status_f, priority_f)), key=sort_key)


def counts_by_priority(tasks: Iterable[Task]) -> dict[PriorityFilter, int]:
    """Badge counts over the unfiltered set, so they stay stable while filtering."""
    counts = {f: 0 for f in PriorityFilter}
    for task in tasks:
        counts[PriorityFilter.ALL] += 1
        counts[PriorityFilter(task.priority.value)] += 1
    return counts


def format_due(ts: float | None) -> str:
    if ts is None:
        return ""
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M")


def priority_label(priority: Priority) -> str:
    return priority.value.capitalize()
