# src/taskmaster/storage/sqlite_store.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from pathlib import Path

from ..errors import PersistenceFailure, SnapshotCorrupt
from ..tasks.task_models import Task
from .codec import decode_records, encode_task

logger = logging.getLogger(__name__)


class SqliteSnapshotRepo:
    """
    SQLite snapshot store.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    save() rewrites the whole table in one transaction; there are no
    incremental writes. Each call opens its own connection, so the repo can
    be used from the snapshot writer thread.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("SqliteSnapshotRepo ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    position INTEGER NOT NULL,
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    due_at REAL,
                    priority TEXT NOT NULL DEFAULT 'medium',
                    reminder_lead_minutes INTEGER NOT NULL DEFAULT 0,
                    completed INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("SqliteSnapshotRepo migration: added column %s", name)

            add_col("description", "TEXT NOT NULL DEFAULT ''")
            add_col("due_at", "REAL")
            add_col("priority", "TEXT NOT NULL DEFAULT 'medium'")
            add_col("reminder_lead_minutes", "INTEGER NOT NULL DEFAULT 0")
            add_col("completed", "INTEGER NOT NULL DEFAULT 0")

            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"cannot prepare {self._db_path}: {e}") from e
        finally:
            conn.close()

    # ---- public API ----

    def load(self) -> list[Task] | None:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise SnapshotCorrupt(f"cannot open {self._db_path}: {e}") from e
        try:
            rows = conn.execute("SELECT * FROM tasks ORDER BY position ASC").fetchall()
        except sqlite3.Error as e:
            raise SnapshotCorrupt(f"cannot read {self._db_path}: {e}") from e
        finally:
            conn.close()

        if not rows:
            return None

        records = []
        for row in rows:
            rec = {k: row[k] for k in row.keys() if k != "position"}
            rec["completed"] = bool(rec.get("completed"))
            records.append(rec)
        tasks = decode_records(records)
        logger.info("Loaded snapshot: %d tasks from %s", len(tasks), self._db_path)
        return tasks

    def save(self, tasks: list[Task]) -> None:
        rows = []
        for pos, task in enumerate(tasks):
            rec = encode_task(task)
            rows.append(
                (
                    pos,
                    rec["id"],
                    rec["title"],
                    rec["description"],
                    rec["due_at"],
                    rec["priority"],
                    rec["reminder_lead_minutes"],
                    int(rec["completed"]),
                    rec["created_at"],
                )
            )

        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"cannot open {self._db_path}: {e}") from e
        try:
            with conn:
                conn.execute("DELETE FROM tasks")
                conn.executemany(
                    """
                    INSERT INTO tasks(
                        position, id, title, description, due_at,
                        priority, reminder_lead_minutes, completed, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
        except sqlite3.Error as e:
            raise PersistenceFailure(f"cannot write {self._db_path}: {e}") from e
        finally:
            conn.close()
        logger.debug("Saved snapshot: %d tasks to %s", len(tasks), self._db_path)
