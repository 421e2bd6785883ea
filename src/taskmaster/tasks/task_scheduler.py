# src/taskmaster/tasks/task_scheduler.py

from __future__ import annotations

"""
Reminder scheduler.

A small polling loop that:
- scans the task store on a fixed interval,
- picks pending tasks whose reminder window contains "now",
- emits one alert per task per due cycle via an injected notifier port.

The notified set is keyed by task id and cleared whenever a task's due time
or reminder lead changes, so a rescheduled task reminds again.
"""

import asyncio
import logging
from dataclasses import dataclass

from ..core.clock import SystemClock
from ..core.ports import Clock, Notifier, PermissionState
from ..errors import NotificationUnavailable
from .task_models import Task, TaskEvent, TaskEventKind
from .task_store import TaskStore
from .task_view import format_due, priority_label

logger = logging.getLogger(__name__)

DEFAULT_GRACE_SECONDS = 60.0


@dataclass(slots=True, frozen=True)
class Reminder:
    """What the scheduler wants the notifier to show."""

    task_id: str
    title: str
    body: str


def reminder_window(task: Task, grace_seconds: float = DEFAULT_GRACE_SECONDS) -> tuple[float, float] | None:
    """
    Half-open window [due - lead, due + grace) in which a reminder may fire.

    None when the task cannot remind at all (completed, no due time, no lead).
    """
    if task.completed or task.due_at is None or task.reminder_lead_minutes <= 0:
        return None
    notify_at = task.due_at - task.reminder_lead_minutes * 60
    return notify_at, task.due_at + max(0.0, grace_seconds)


def build_reminder(task: Task) -> Reminder:
    body = f"Due {format_due(task.due_at)} (priority: {priority_label(task.priority)})"
    return Reminder(task_id=task.id, title=task.title, body=body)


class ReminderScheduler:
    def __init__(
        self,
        store: TaskStore,
        notifier: Notifier,
        *,
        clock: Clock | None = None,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._clock = clock or SystemClock()
        self._grace = max(0.0, float(grace_seconds))

        self._notified: set[str] = set()
        self._missed: set[str] = set()
        self._unavailable_logged = False

    def attach(self) -> None:
        """Subscribe to store events so schedule edits re-arm reminders."""
        self._store.subscribe(self.handle_event)

    def handle_event(self, event: TaskEvent) -> None:
        if event.kind is TaskEventKind.UPDATED and event.schedule_changed:
            self.forget(event.task.id)
        elif event.kind is TaskEventKind.DELETED and not event.undoable:
            # Undoable deletes are forgotten when the undo slot lets go.
            self.forget(event.task.id)

    def forget(self, task_id: str) -> None:
        if task_id in self._notified or task_id in self._missed:
            logger.debug("Reminder marks cleared task_id=%s", task_id)
        self._notified.discard(task_id)
        self._missed.discard(task_id)

    def is_notified(self, task_id: str) -> bool:
        return task_id in self._notified

    def _due_now(self, now_ts: float) -> list[Task]:
        out: list[Task] = []
        for task in self._store.list_tasks():
            if task.id in self._notified:
                continue
            window = reminder_window(task, self._grace)
            if window is None:
                continue
            start, end = window
            if now_ts < start:
                continue
            if now_ts >= end:
                # Stale reminders are worse than silence: never fire late.
                if task.id not in self._missed:
                    self._missed.add(task.id)
                    logger.info("Reminder window missed task_id=%s", task.id)
                continue
            out.append(task)
        return out

    async def _emit(self, reminder: Reminder) -> None:
        if self._notifier.permission is PermissionState.DENIED:
            raise NotificationUnavailable("notification permission denied")
        await self._notifier.emit(reminder.title, reminder.body)

    async def tick(self) -> list[Reminder]:
        """One scheduler pass. Returns the reminders that were attempted."""
        now_ts = self._clock.now()
        sent: list[Reminder] = []

        for task in self._due_now(now_ts):
            # Mark first: one attempt per cycle even if the transport fails.
            self._notified.add(task.id)

            try:
                reminder = build_reminder(task)
                sent.append(reminder)
                await self._emit(reminder)
                logger.info("Reminder sent task_id=%s", task.id)
            except NotificationUnavailable as e:
                if not self._unavailable_logged:
                    logger.warning("Notifications unavailable, reminders are silent: %s", e)
                    self._unavailable_logged = True
            except Exception:
                logger.exception("Reminder emit failed task_id=%s", task.id)

        return sent


async def run_reminder_scheduler(
        scheduler: ReminderScheduler,
        *,
        interval_seconds: float = 15.0,
) -> None:
    """
    Simple polling loop.

    Every interval_seconds run scheduler.tick(); errors are logged and the
    loop keeps going. To stop the scheduler, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            await scheduler.tick()
        except Exception:
            logger.exception("Reminder tick failed")

        await asyncio.sleep(sleep_s)
