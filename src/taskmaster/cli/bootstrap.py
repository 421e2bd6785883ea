# src/taskmaster/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (storage/clock/notifier),
- connects the reminder scheduler and the undo broker to the store.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.notifiers import build_notifier, ensure_permission
from ..core.clock import SystemClock
from ..core.ports import Clock, Notifier, PermissionState, SnapshotRepo
from ..core.state import AppState
from ..errors import PersistenceFailure
from ..storage.json_store import JsonSnapshotRepo
from ..storage.sqlite_store import SqliteSnapshotRepo
from ..storage.writer import SnapshotWriter
from ..tasks.task_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore
from ..tasks.undo import UndoBroker

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.snapshot_path.parent.mkdir(parents=True, exist_ok=True)


def build_snapshot_repo(settings) -> SnapshotRepo:
    if getattr(settings, "storage", "json") == "sqlite":
        return SqliteSnapshotRepo(settings.snapshot_path)
    return JsonSnapshotRepo(settings.snapshot_path)


def create_initial_state(
    *,
    settings=None,
    clock: Clock | None = None,
    notifier: Notifier | None = None,
    repo: SnapshotRepo | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and ports injectable makes the app easier to test and
    avoids hidden global config reads. If settings is None, falls back to
    get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    warnings: list[str] = []
    clock = clock or SystemClock()

    if repo is None:
        try:
            repo = build_snapshot_repo(settings)
        except PersistenceFailure as e:
            # Degrade to a JSON snapshot next to the configured path.
            logger.warning("Snapshot backend unavailable (%s); using JSON", e)
            warnings.append(f"Storage backend unavailable, using JSON instead ({e}).")
            repo = JsonSnapshotRepo(settings.snapshot_path.with_suffix(".json"))

    writer = SnapshotWriter(repo)
    store = TaskStore.from_repo(repo, clock=clock, writer=writer)
    if store.load_warning:
        warnings.append(store.load_warning)

    if notifier is None:
        notifier = build_notifier(settings.notifier, app_name=settings.app_name)
    if ensure_permission(notifier) is PermissionState.DENIED:
        warnings.append("Notifications are unavailable; reminders will be silent.")

    scheduler = ReminderScheduler(
        store,
        notifier,
        clock=clock,
        grace_seconds=settings.reminder_grace_seconds,
    )
    scheduler.attach()

    undo = UndoBroker(
        store,
        clock=clock,
        window_seconds=settings.undo_window_seconds,
        on_discard=lambda task: scheduler.forget(task.id),
    )

    return AppState(
        settings=settings,
        clock=clock,
        store=store,
        undo=undo,
        scheduler=scheduler,
        notifier=notifier,
        writer=writer,
        startup_warnings=warnings,
    )


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.undo.close()
    except Exception:
        logger.debug("Undo broker close failed.", exc_info=True)

    if state.writer is not None:
        try:
            state.writer.close()
        except Exception:
            logger.exception("Failed to flush task snapshot.")
