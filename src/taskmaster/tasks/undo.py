# src/taskmaster/tasks/undo.py

from __future__ import annotations

"""
Single-slot banner with an undoable delete.

States:
- idle:     no deleted task is recoverable
- pending:  exactly one deleted task can be restored until its deadline

A new delete replaces the pending task (the old one stays deleted for good).
Any other banner message also replaces the banner; since the undo control
lives on the banner, a pending task is dropped at that point too.

The broker owns one asyncio timer handle and cancels it before arming a new
one. Without a running event loop the deadline is still enforced lazily from
the clock on every read.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..core.clock import SystemClock
from ..core.ports import Clock
from ..errors import TaskConflict
from .task_models import Task
from .task_store import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 5.0


@dataclass(slots=True, frozen=True)
class Banner:
    message: str
    undo_available: bool
    expires_at: float


class UndoBroker:
    def __init__(
        self,
        store: TaskStore,
        *,
        clock: Clock | None = None,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        on_discard: Callable[[Task], None] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._window = max(0.0, float(window_seconds))
        self._on_discard = on_discard

        self._banner: Banner | None = None
        self._pending: Task | None = None
        self._deadline: float | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def window_seconds(self) -> float:
        return self._window

    # ---- timer ----

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm_timer(self) -> None:
        self._cancel_timer()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop: expiry is applied lazily by _expire_if_due().
            return
        self._timer = loop.call_later(self._window, self._on_timeout)

    def _on_timeout(self) -> None:
        self._timer = None
        self._expire()

    # ---- state transitions ----

    def _discard_pending(self, reason: str) -> None:
        task = self._pending
        self._pending = None
        self._deadline = None
        if task is None:
            return
        logger.info("Deletion of task %s is now permanent (%s)", task.id, reason)
        self._run_discard_hook(task)

    def _run_discard_hook(self, task: Task) -> None:
        if self._on_discard is None:
            return
        try:
            self._on_discard(task)
        except Exception:
            logger.exception("on_discard hook failed task_id=%s", task.id)

    def _expire(self) -> None:
        self._banner = None
        self._discard_pending("undo window elapsed")

    def _expire_if_due(self) -> None:
        if self._banner is not None and self._clock.now() >= self._banner.expires_at:
            self._cancel_timer()
            self._expire()

    def _show(self, message: str, *, undo_available: bool) -> Banner:
        self._banner = Banner(
            message=message,
            undo_available=undo_available,
            expires_at=self._clock.now() + self._window,
        )
        self._arm_timer()
        return self._banner

    # ---- public API ----

    def current_banner(self) -> Banner | None:
        self._expire_if_due()
        return self._banner

    def pending_task(self) -> Task | None:
        self._expire_if_due()
        return self._pending

    def pending_deadline(self) -> float | None:
        self._expire_if_due()
        return self._deadline

    def show_message(self, message: str) -> Banner:
        """Plain confirmation. Supersedes whatever banner is visible."""
        self._expire_if_due()
        self._discard_pending("banner superseded")
        return self._show(message, undo_available=False)

    def delete(self, task_id: str, *, message: str = "Task deleted") -> Task:
        """
        Delete through the store and make the task the only undo candidate.

        TaskNotFound propagates and leaves the broker untouched.
        """
        task = self._store.delete(task_id, undoable=True)
        self._expire_if_due()
        self._discard_pending("superseded by a newer delete")

        self._pending = task
        banner = self._show(message, undo_available=True)
        self._deadline = banner.expires_at
        return task

    def undo(self) -> Task | None:
        """
        Restore the pending task. No-op (None) when nothing is pending or the
        window has elapsed. TaskConflict from the store is re-raised after the
        copy is discarded; the original delete stands.
        """
        self._expire_if_due()
        task = self._pending
        if task is None:
            return None

        self._cancel_timer()
        self._banner = None
        self._pending = None
        self._deadline = None
        try:
            restored = self._store.restore(task)
        except TaskConflict:
            logger.warning("Undo rejected: task id %s already exists", task.id)
            self._run_discard_hook(task)
            raise
        logger.info("Undo restored task %s", restored.id)
        return restored

    def dismiss(self) -> None:
        """User closed the banner."""
        self._cancel_timer()
        self._banner = None
        self._discard_pending("banner dismissed")

    def close(self) -> None:
        self._cancel_timer()
