# src/taskmaster/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing is required at import time; every value has a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKMASTER"

STORAGE_BACKENDS = ("json", "sqlite")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Front-end ----
    console_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    storage: str
    snapshot_path: Path

    # ---- Engine timing ----
    undo_window_seconds: float
    reminder_interval_seconds: float
    reminder_grace_seconds: float

    # ---- Notifications ----
    notifier: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskmaster").strip() or "taskmaster"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskmaster"))

        storage = _env(_k("STORAGE"), "json").strip().lower()
        if storage not in STORAGE_BACKENDS:
            storage = "json"
        default_snapshot = data_dir / ("tasks.sqlite3" if storage == "sqlite" else "tasks.json")
        snapshot_path = _env_path(_k("SNAPSHOT_PATH"), default_snapshot)

        undo_window_seconds = max(0.0, _env_float(_k("UNDO_WINDOW_SECONDS"), 5.0))
        reminder_interval_seconds = max(0.5, _env_float(_k("REMINDER_INTERVAL_SECONDS"), 15.0))
        reminder_grace_seconds = max(0.0, _env_float(_k("REMINDER_GRACE_SECONDS"), 60.0))

        notifier = _env(_k("NOTIFIER"), "console").strip().lower() or "console"

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            storage=storage,
            snapshot_path=snapshot_path,
            undo_window_seconds=undo_window_seconds,
            reminder_interval_seconds=reminder_interval_seconds,
            reminder_grace_seconds=reminder_grace_seconds,
            notifier=notifier,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings; .env is read on first use, never overriding real env vars."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
