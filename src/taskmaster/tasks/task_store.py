# src/taskmaster/tasks/task_store.py

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from ..core.clock import SystemClock
from ..core.ports import Clock, SnapshotRepo
from ..errors import InvalidTaskInput, PersistenceFailure, TaskConflict, TaskNotFound
from ..storage.writer import SnapshotWriter
from .task_models import (
    Priority,
    Task,
    TaskEvent,
    TaskEventKind,
    clean_description,
    clean_due_at,
    clean_lead_minutes,
    clean_title,
)

logger = logging.getLogger(__name__)

TaskListener = Callable[[TaskEvent], None]

EDITABLE_FIELDS = frozenset(
    {"title", "description", "priority", "due_at", "reminder_lead_minutes"}
)
SCHEDULE_FIELDS = frozenset({"due_at", "reminder_lead_minutes"})


def _new_task_id() -> str:
    return uuid.uuid4().hex


class TaskStore:
    """
    Canonical in-memory task set.

    All writes go through create/update/toggle_completed/delete/restore.
    Every method hands out copies, so a caller holding a Task cannot change
    the store behind its back.

    Side effects of a successful mutation, in order:
    - the in-memory set is updated
    - a full snapshot write is submitted to the writer (not awaited)
    - listeners receive a TaskEvent

    Thread-safety:
    - none; callers serialise mutations (the console runs them on one loop)
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        writer: SnapshotWriter | None = None,
        tasks: list[Task] | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._writer = writer
        self._tasks: dict[str, Task] = {}
        self._listeners: list[TaskListener] = []
        self.load_warning: str | None = None

        for task in tasks or []:
            if task.id in self._tasks:
                logger.warning("Ignoring duplicate task id=%s on load", task.id)
                continue
            self._tasks[task.id] = replace(task)

    @classmethod
    def from_repo(
        cls,
        repo: SnapshotRepo,
        *,
        clock: Clock | None = None,
        writer: SnapshotWriter | None = None,
    ) -> TaskStore:
        """
        Load the startup snapshot.

        A missing snapshot gives an empty store. A corrupt one also gives an
        empty store, with the reason kept in load_warning.
        """
        warning = None
        try:
            tasks = repo.load() or []
        except PersistenceFailure as e:
            logger.warning("Discarding unreadable task snapshot: %s", e)
            warning = f"Saved tasks could not be read and were ignored ({e})."
            tasks = []

        store = cls(clock=clock, writer=writer, tasks=tasks)
        store.load_warning = warning
        logger.info("TaskStore ready total=%s", store.count_tasks())
        return store

    # ---- low-level helpers ----

    def _require(self, task_id: str) -> Task:
        try:
            return self._tasks[task_id]
        except KeyError:
            raise TaskNotFound(task_id) from None

    def _committed(
        self,
        kind: TaskEventKind,
        task: Task,
        *,
        schedule_changed: bool = False,
        undoable: bool = False,
    ) -> Task:
        if self._writer is not None:
            self._writer.submit(self.snapshot())

        event = TaskEvent(
            kind=kind,
            task=replace(task),
            schedule_changed=schedule_changed,
            undoable=undoable,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Task listener failed kind=%s id=%s", kind.value, task.id)
        return replace(task)

    @staticmethod
    def _clean_fields(fields: dict[str, Any]) -> dict[str, Any]:
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise InvalidTaskInput(f"cannot edit fields: {', '.join(sorted(unknown))}")

        cleaners: dict[str, Callable[[Any], Any]] = {
            "title": clean_title,
            "description": clean_description,
            "priority": Priority.parse,
            "due_at": clean_due_at,
            "reminder_lead_minutes": clean_lead_minutes,
        }
        out: dict[str, Any] = {}
        for name, value in fields.items():
            try:
                out[name] = cleaners[name](value)
            except ValueError as e:
                raise InvalidTaskInput(str(e)) from e
        return out

    # ---- public API ----

    def subscribe(self, listener: TaskListener) -> Callable[[], None]:
        """Register a mutation listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def count_tasks(self) -> int:
        return len(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def get(self, task_id: str) -> Task | None:
        task = self._tasks.get(task_id)
        return replace(task) if task is not None else None

    def list_tasks(self) -> list[Task]:
        return [replace(t) for t in self._tasks.values()]

    def snapshot(self) -> list[Task]:
        """Full ordered task list as handed to the persistence port."""
        return self.list_tasks()

    def create(
        self,
        *,
        title: str,
        description: str = "",
        priority: Priority | str = Priority.MEDIUM,
        due_at: float | None = None,
        reminder_lead_minutes: int = 0,
    ) -> Task:
        fields = self._clean_fields(
            {
                "title": title,
                "description": description,
                "priority": priority,
                "due_at": due_at,
                "reminder_lead_minutes": reminder_lead_minutes,
            }
        )

        task_id = _new_task_id()
        while task_id in self._tasks:
            task_id = _new_task_id()

        task = Task(id=task_id, created_at=self._clock.now(), completed=False, **fields)
        self._tasks[task.id] = task
        logger.debug(
            "Task created id=%s priority=%s due_at=%s lead=%s",
            task.id,
            task.priority.value,
            task.due_at,
            task.reminder_lead_minutes,
        )
        return self._committed(TaskEventKind.CREATED, task)

    def update(self, task_id: str, **fields: Any) -> Task:
        current = self._require(task_id)
        changes = self._clean_fields(fields)

        schedule_changed = any(
            name in SCHEDULE_FIELDS and getattr(current, name) != value
            for name, value in changes.items()
        )
        updated = replace(current, **changes)
        self._tasks[task_id] = updated
        logger.debug(
            "Task updated id=%s fields=%s schedule_changed=%s",
            task_id,
            sorted(changes),
            schedule_changed,
        )
        return self._committed(TaskEventKind.UPDATED, updated, schedule_changed=schedule_changed)

    def toggle_completed(self, task_id: str) -> Task:
        task = self._require(task_id)
        task.completed = not task.completed
        logger.debug("Task toggled id=%s completed=%s", task_id, task.completed)
        return self._committed(TaskEventKind.TOGGLED, task)

    def delete(self, task_id: str, *, undoable: bool = False) -> Task:
        task = self._require(task_id)
        del self._tasks[task_id]
        logger.debug("Task deleted id=%s undoable=%s", task_id, undoable)
        return self._committed(TaskEventKind.DELETED, task, undoable=undoable)

    def restore(self, task: Task) -> Task:
        """Re-insert a deleted task with its original id and created_at."""
        if task.id in self._tasks:
            raise TaskConflict(task.id)
        try:
            clean_title(task.title)
        except ValueError as e:
            raise InvalidTaskInput(str(e)) from e

        restored = replace(task)
        self._tasks[restored.id] = restored
        logger.debug("Task restored id=%s", restored.id)
        return self._committed(TaskEventKind.RESTORED, restored)
