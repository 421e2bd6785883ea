# src/taskmaster/tasks/task_api.py

"""
UI intents.

Each helper performs one mutation through the store (or the undo broker)
and routes a confirmation through the shared banner. InvalidTaskInput is
raised to the caller so the form can stay open; an unknown task id is
logged and turns the intent into a no-op (None).
"""

from __future__ import annotations

import logging
from typing import Any

from ..core.state import AppState
from ..errors import TaskConflict, TaskNotFound
from .task_models import Priority, PriorityFilter, StatusFilter, Task
from .task_view import counts_by_priority, view

logger = logging.getLogger(__name__)


def create_task(
    state: AppState,
    *,
    title: str,
    description: str = "",
    priority: Priority | str = Priority.MEDIUM,
    due_at: float | None = None,
    reminder_lead_minutes: int = 0,
) -> Task:
    task = state.store.create(
        title=title,
        description=description,
        priority=priority,
        due_at=due_at,
        reminder_lead_minutes=reminder_lead_minutes,
    )
    state.undo.show_message("New task created")
    return task


def update_task(state: AppState, task_id: str, **fields: Any) -> Task | None:
    try:
        task = state.store.update(task_id, **fields)
    except TaskNotFound:
        logger.warning("update_task: no task id=%s", task_id)
        return None
    state.undo.show_message("Task updated")
    return task


def toggle_task(state: AppState, task_id: str) -> Task | None:
    try:
        task = state.store.toggle_completed(task_id)
    except TaskNotFound:
        logger.warning("toggle_task: no task id=%s", task_id)
        return None
    state.undo.show_message("Task completed" if task.completed else "Task reopened")
    return task


def delete_task(state: AppState, task_id: str) -> Task | None:
    try:
        return state.undo.delete(task_id)
    except TaskNotFound:
        logger.warning("delete_task: no task id=%s", task_id)
        return None


def undo_delete(state: AppState) -> Task | None:
    try:
        return state.undo.undo()
    except TaskConflict:
        return None


def dismiss_banner(state: AppState) -> None:
    state.undo.dismiss()


def set_status_filter(state: AppState, value: StatusFilter | str) -> StatusFilter:
    state.status_filter = StatusFilter.parse(value)
    return state.status_filter


def set_priority_filter(state: AppState, value: PriorityFilter | str) -> PriorityFilter:
    state.priority_filter = PriorityFilter.parse(value)
    return state.priority_filter


def visible_tasks(state: AppState) -> list[Task]:
    """Recompute the filtered, ordered list from the store on every call."""
    rows = view(state.store.list_tasks(), state.status_filter, state.priority_filter)
    state.last_view = rows
    return rows


def priority_counts(state: AppState) -> dict[PriorityFilter, int]:
    return counts_by_priority(state.store.list_tasks())
