# src/taskmaster/storage/writer.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait

from ..core.ports import SnapshotRepo
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """
    Best-effort background snapshot writer.

    submit() returns immediately; a single worker thread keeps saves in
    submission order, so the last snapshot written is always the newest.
    A failed save is logged, kept in last_error and passed to on_error;
    the next successful save clears it.
    """

    def __init__(
        self,
        repo: SnapshotRepo,
        *,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self._repo = repo
        self._on_error = on_error
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="snapshot")
        self._pending: set[Future[None]] = set()
        self._lock = threading.Lock()
        self._closed = False
        self.last_error: Exception | None = None

    @property
    def repo(self) -> SnapshotRepo:
        return self._repo

    def submit(self, tasks: list[Task]) -> Future[None] | None:
        if self._closed:
            logger.warning("SnapshotWriter is closed; dropping snapshot of %d tasks", len(tasks))
            return None
        fut = self._executor.submit(self._save, tasks)
        with self._lock:
            self._pending.add(fut)
        fut.add_done_callback(self._forget)
        return fut

    def _forget(self, fut: Future[None]) -> None:
        with self._lock:
            self._pending.discard(fut)

    def _save(self, tasks: list[Task]) -> None:
        try:
            self._repo.save(tasks)
        except Exception as e:
            self.last_error = e
            logger.warning("Snapshot save failed (changes kept in memory): %s", e)
            if self._on_error is not None:
                try:
                    self._on_error(e)
                except Exception:
                    logger.exception("SnapshotWriter on_error hook failed")
            return
        self.last_error = None

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for queued saves. Returns False on timeout."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self, timeout: float | None = 10.0) -> None:
        if self._closed:
            return
        self.flush(timeout=timeout)
        self._closed = True
        self._executor.shutdown(wait=False)
