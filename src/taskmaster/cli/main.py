# src/taskmaster/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the engine loop (reminders + undo timer) in a background thread,
- the console REPL in the main thread (optional).
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..cli.engine import start_engine_in_background
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)
    logger.debug("Full log: %s", log_file)

    state = create_initial_state(settings=settings)

    engine = start_engine_in_background(state)
    if engine is None:
        logger.error("Engine failed to start; reminders are disabled for this session.")

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
        if not settings.console_enabled:
            signal.signal(signal.SIGINT, _handle_signal)
    except Exception:
        # Some platforms may not support SIGTERM, etc.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(state, dispatch=engine.call if engine is not None else None)
            stop_main.set()
        else:
            logger.info("Console disabled. Running reminders only. Press Ctrl+C to stop.")
            stop_main.wait()

    finally:
        if engine is not None:
            engine.stop()
            engine.join(timeout=10.0)

        shutdown_state(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
