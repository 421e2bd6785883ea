# tests/test_task_scheduler.py

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from taskmaster.core.ports import PermissionState
from taskmaster.tasks.task_models import Priority, Task
from taskmaster.tasks.task_scheduler import (
    ReminderScheduler,
    build_reminder,
    reminder_window,
    run_reminder_scheduler,
)
from taskmaster.tasks.task_store import TaskStore
from taskmaster.tasks.undo import UndoBroker

from .fakes import FakeClock, FakeNotifier

MINUTE = 60.0


def _at(hour: int, minute: int, second: int = 0) -> float:
    return datetime(2026, 10, 19, hour, minute, second).timestamp()


def test_reminder_window_bounds() -> None:
    task = Task(
        id="t",
        title="t",
        created_at=0.0,
        due_at=_at(14, 0),
        reminder_lead_minutes=10,
    )
    assert reminder_window(task, 60.0) == (_at(13, 50), _at(14, 1))

    task.reminder_lead_minutes = 0
    assert reminder_window(task) is None
    task.reminder_lead_minutes = 10
    task.completed = True
    assert reminder_window(task) is None
    task.completed = False
    task.due_at = None
    assert reminder_window(task) is None


@pytest.mark.asyncio
async def test_fires_inside_window_only(
    store: TaskStore, scheduler: ReminderScheduler, notifier: FakeNotifier, clock: FakeClock
) -> None:
    clock.set(_at(13, 0))
    store.create(title="Pay rent", priority=Priority.HIGH, due_at=_at(14, 0), reminder_lead_minutes=10)

    clock.set(_at(13, 49))
    assert await scheduler.tick() == []
    assert notifier.sent == []

    clock.set(_at(13, 51))
    sent = await scheduler.tick()
    assert len(sent) == 1
    assert notifier.sent[0].title == "Pay rent"
    assert "High" in notifier.sent[0].body


@pytest.mark.asyncio
async def test_notifies_at_most_once_per_cycle(
    store: TaskStore, scheduler: ReminderScheduler, notifier: FakeNotifier, clock: FakeClock
) -> None:
    now = clock.now()
    task = store.create(title="t", due_at=now + 10 * MINUTE, reminder_lead_minutes=15)

    for _ in range(20):
        await scheduler.tick()
        clock.advance(MINUTE)

    assert len(notifier.sent) == 1
    assert scheduler.is_notified(task.id)


@pytest.mark.asyncio
async def test_grace_window_and_missed_reminders(
    store: TaskStore, scheduler: ReminderScheduler, notifier: FakeNotifier, clock: FakeClock
) -> None:
    due = clock.now() + 5 * MINUTE
    late = store.create(title="late", due_at=due, reminder_lead_minutes=10)
    missed = store.create(title="missed", due_at=due - 2 * MINUTE, reminder_lead_minutes=10)

    clock.set(due + 30)
    await scheduler.tick()

    assert [a.title for a in notifier.sent] == ["late"]
    assert scheduler.is_notified(late.id)
    assert not scheduler.is_notified(missed.id)

    clock.advance(MINUTE)
    await scheduler.tick()
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_completed_task_is_never_notified(
    store: TaskStore, scheduler: ReminderScheduler, notifier: FakeNotifier, clock: FakeClock
) -> None:
    now = clock.now()
    task = store.create(title="t", due_at=now + 10 * MINUTE, reminder_lead_minutes=15)
    store.toggle_completed(task.id)

    for _ in range(12):
        await scheduler.tick()
        clock.advance(MINUTE)

    assert notifier.sent == []


@pytest.mark.asyncio
async def test_deleted_task_is_never_notified(
    store: TaskStore, scheduler: ReminderScheduler, notifier: FakeNotifier, clock: FakeClock
) -> None:
    task = store.create(title="t", due_at=clock.now() + 5 * MINUTE, reminder_lead_minutes=10)
    store.delete(task.id)

    await scheduler.tick()
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_rescheduling_rearms_exactly_one_reminder(
    store: TaskStore, scheduler: ReminderScheduler, notifier: FakeNotifier, clock: FakeClock
) -> None:
    task = store.create(title="t", due_at=clock.now() + 5 * MINUTE, reminder_lead_minutes=10)
    await scheduler.tick()
    assert len(notifier.sent) == 1

    store.update(task.id, due_at=clock.now() + 60 * MINUTE, reminder_lead_minutes=20)
    assert not scheduler.is_notified(task.id)

    await scheduler.tick()
    assert len(notifier.sent) == 1

    clock.advance(41 * MINUTE)
    for _ in range(5):
        await scheduler.tick()
        clock.advance(MINUTE)
    assert len(notifier.sent) == 2


@pytest.mark.asyncio
async def test_non_schedule_edit_keeps_notified_mark(
    store: TaskStore, scheduler: ReminderScheduler, notifier: FakeNotifier, clock: FakeClock
) -> None:
    task = store.create(title="t", due_at=clock.now() + 5 * MINUTE, reminder_lead_minutes=10)
    await scheduler.tick()

    store.update(task.id, title="renamed", priority=Priority.LOW)
    await scheduler.tick()

    assert len(notifier.sent) == 1
    assert scheduler.is_notified(task.id)


@pytest.mark.asyncio
async def test_denied_permission_marks_without_emitting(
    store: TaskStore, clock: FakeClock
) -> None:
    notifier = FakeNotifier(permission=PermissionState.DENIED)
    scheduler = ReminderScheduler(store, notifier, clock=clock)
    task = store.create(title="t", due_at=clock.now() + 5 * MINUTE, reminder_lead_minutes=10)

    attempted = await scheduler.tick()
    await scheduler.tick()

    assert len(attempted) == 1
    assert notifier.sent == []
    assert scheduler.is_notified(task.id)


@pytest.mark.asyncio
async def test_emit_failure_is_swallowed(store: TaskStore, clock: FakeClock) -> None:
    notifier = FakeNotifier(fail=True)
    scheduler = ReminderScheduler(store, notifier, clock=clock)
    task = store.create(title="t", due_at=clock.now() + 5 * MINUTE, reminder_lead_minutes=10)

    await scheduler.tick()
    notifier.fail = False
    await scheduler.tick()

    assert notifier.sent == []
    assert scheduler.is_notified(task.id)


@pytest.mark.asyncio
async def test_undo_discard_forgets_notified_task(
    store: TaskStore, scheduler: ReminderScheduler, clock: FakeClock
) -> None:
    broker = UndoBroker(store, clock=clock, on_discard=lambda t: scheduler.forget(t.id))
    task = store.create(title="t", due_at=clock.now() + 5 * MINUTE, reminder_lead_minutes=10)
    await scheduler.tick()

    broker.delete(task.id)
    assert scheduler.is_notified(task.id)

    clock.advance(broker.window_seconds)
    assert broker.undo() is None
    assert not scheduler.is_notified(task.id)


def test_build_reminder_body() -> None:
    task = Task(
        id="t1",
        title="Pay rent",
        created_at=0.0,
        due_at=_at(14, 0),
        priority=Priority.HIGH,
        reminder_lead_minutes=10,
    )
    reminder = build_reminder(task)
    assert reminder.task_id == "t1"
    assert reminder.title == "Pay rent"
    assert reminder.body.startswith("Due 2026-10-19 14:00")
    assert "priority: High" in reminder.body


@pytest.mark.asyncio
async def test_scheduler_loop_sends_due_reminder(store: TaskStore, clock: FakeClock) -> None:
    notifier = FakeNotifier()
    scheduler = ReminderScheduler(store, notifier, clock=clock)
    store.create(title="ping", due_at=clock.now() + MINUTE, reminder_lead_minutes=5)

    runner = asyncio.create_task(run_reminder_scheduler(scheduler, interval_seconds=0.01))

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert len(notifier.sent) == 1, "Scheduler should remind exactly once"
    assert notifier.sent[0].title == "ping"


@pytest.mark.asyncio
async def test_plain_delete_clears_reminder_marks(
    store: TaskStore, scheduler: ReminderScheduler, clock: FakeClock
) -> None:
    task = store.create(title="t", due_at=clock.now() + 5 * MINUTE, reminder_lead_minutes=10)
    await scheduler.tick()
    assert scheduler.is_notified(task.id)

    store.delete(task.id)
    assert not scheduler.is_notified(task.id)


@pytest.mark.asyncio
async def test_undoable_delete_keeps_marks_until_undo(
    store: TaskStore, scheduler: ReminderScheduler, notifier: FakeNotifier, clock: FakeClock
) -> None:
    broker = UndoBroker(store, clock=clock, on_discard=lambda t: scheduler.forget(t.id))
    task = store.create(title="t", due_at=clock.now() + 5 * MINUTE, reminder_lead_minutes=10)
    await scheduler.tick()

    broker.delete(task.id)
    assert scheduler.is_notified(task.id)

    broker.undo()
    await scheduler.tick()
    assert len(notifier.sent) == 1


class _FirstEmitFails(FakeNotifier):
    async def emit(self, title: str, body: str) -> None:
        if not self.sent and not getattr(self, "_failed_once", False):
            self._failed_once = True
            raise ValueError("bad payload")
        await FakeNotifier.emit(self, title, body)


@pytest.mark.asyncio
async def test_one_bad_task_does_not_block_other_reminders(store: TaskStore, clock: FakeClock) -> None:
    notifier = _FirstEmitFails()
    scheduler = ReminderScheduler(store, notifier, clock=clock)
    due = clock.now() + 5 * MINUTE
    store.create(title="first", due_at=due, reminder_lead_minutes=10)
    store.create(title="second", due_at=due, reminder_lead_minutes=10)

    attempted = await scheduler.tick()

    assert len(attempted) == 2
    assert len(notifier.sent) == 1
