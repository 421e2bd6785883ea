# tests/conftest.py

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskmaster.cli.bootstrap import create_initial_state, shutdown_state
from taskmaster.core.state import AppState
from taskmaster.tasks.task_scheduler import ReminderScheduler
from taskmaster.tasks.task_store import TaskStore
from taskmaster.tasks.undo import UndoBroker

from .fakes import FakeClock, FakeNotifier, MemorySnapshotRepo


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def store(clock: FakeClock) -> TaskStore:
    return TaskStore(clock=clock)


@pytest.fixture()
def scheduler(store: TaskStore, notifier: FakeNotifier, clock: FakeClock) -> ReminderScheduler:
    sched = ReminderScheduler(store, notifier, clock=clock, grace_seconds=60.0)
    sched.attach()
    return sched


@pytest.fixture()
def discarded() -> list:
    return []


@pytest.fixture()
def undo(store: TaskStore, clock: FakeClock, discarded: list) -> UndoBroker:
    return UndoBroker(store, clock=clock, window_seconds=5.0, on_discard=discarded.append)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than reading the real
    environment, to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskmaster-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        storage="json",
        snapshot_path=tmp_path / "tasks.json",
        undo_window_seconds=5.0,
        reminder_interval_seconds=0.01,
        reminder_grace_seconds=60.0,
        notifier="console",
    )


@pytest.fixture()
def repo() -> MemorySnapshotRepo:
    return MemorySnapshotRepo()


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    clock: FakeClock,
    notifier: FakeNotifier,
    repo: MemorySnapshotRepo,
) -> Iterator[AppState]:
    """
    AppState wired through the real composition root with deterministic fakes.
    """
    app = create_initial_state(settings=settings, clock=clock, notifier=notifier, repo=repo)
    yield app
    shutdown_state(app)
