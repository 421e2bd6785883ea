# src/taskmaster/storage/json_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path

from ..errors import PersistenceFailure, SnapshotCorrupt
from ..tasks.task_models import Task
from .codec import decode_records, encode_task

logger = logging.getLogger(__name__)


class JsonSnapshotRepo:
    """
    Snapshot stored as a JSON array of task records.

    Writes go to a temp file first and are moved into place with os.replace,
    so a crash mid-write leaves the previous snapshot intact.
    """

    def __init__(self, path: str | Path = "tasks.json") -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[Task] | None:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SnapshotCorrupt(f"cannot parse {self._path}: {e}") from e
        if not isinstance(data, list):
            raise SnapshotCorrupt(f"{self._path}: expected a JSON array of tasks")
        tasks = decode_records(data)
        logger.info("Loaded snapshot: %d tasks from %s", len(tasks), self._path)
        return tasks

    def save(self, tasks: list[Task]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            payload = [encode_task(t) for t in tasks]
            tmp.write_text(json.dumps(payload, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailure(f"cannot write {self._path}: {e}") from e
        with contextlib.suppress(Exception):
            os.chmod(self._path, 0o600)
        logger.debug("Saved snapshot: %d tasks to %s", len(tasks), self._path)
