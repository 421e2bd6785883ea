# src/taskmaster/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FILE_NAME = "taskmaster.log"

# Minimum level per logger prefix on the console. The REPL prints its own
# replies, so engine internals only surface when something goes wrong.
CONSOLE_LEVELS: dict[str, int] = {
    "taskmaster.cli": logging.INFO,
    "taskmaster.connectors": logging.INFO,
    "taskmaster.tasks": logging.WARNING,
    "taskmaster.storage": logging.WARNING,
    "py.warnings": logging.ERROR,
}
CONSOLE_DEFAULT_LEVEL = logging.ERROR

_OWNED = "_taskmaster_handler"


class _ConsoleNoiseFilter(logging.Filter):
    """
    Per-prefix level floor for the interactive console.

    The longest matching prefix wins; unknown loggers (third-party) need
    CONSOLE_DEFAULT_LEVEL.
    """

    def __init__(self, levels: dict[str, int] | None = None, default: int = CONSOLE_DEFAULT_LEVEL) -> None:
        super().__init__()
        self._levels = sorted((levels or CONSOLE_LEVELS).items(), key=lambda kv: len(kv[0]), reverse=True)
        self._default = default

    def floor_for(self, name: str) -> int:
        for prefix, level in self._levels:
            if name == prefix or name.startswith(prefix + "."):
                return level
        return self._default

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self.floor_for(record.name)


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskmaster",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
) -> Path:
    """
    Console gets a filtered stream on stderr (stdout belongs to the REPL);
    the data dir gets a rotating log with everything at file_level.

    Safe to call more than once: only handlers installed here are replaced.
    Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        if getattr(h, _OWNED, False):
            root.removeHandler(h)
            h.close()

    fmt = logging.Formatter(
        fmt="%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    setattr(ch, _OWNED, True)
    root.addHandler(ch)

    fh = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    setattr(fh, _OWNED, True)
    root.addHandler(fh)

    logging.captureWarnings(True)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    return log_file
