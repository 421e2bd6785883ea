# src/taskmaster/connectors/console_connector.py

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TypeVar

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Runs a callable on the engine loop (or inline when there is no engine).
Dispatcher = Callable[[Callable[[], T]], T]


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _inline(fn: Callable[[], T]) -> T:
    return fn()


def render_banner(state: AppState) -> str | None:
    banner = state.undo.current_banner()
    if banner is None:
        return None
    if banner.undo_available:
        return f"[{banner.message}] type /undo within {state.undo.window_seconds:.0f}s to restore"
    return f"[{banner.message}]"


def render_persistence_warning(state: AppState) -> str | None:
    writer = state.writer
    if writer is None or writer.last_error is None:
        return None
    return f"[WARN] Changes are kept in memory but could not be saved: {writer.last_error}"


def run_console_loop(state: AppState, dispatch: Dispatcher | None = None) -> None:
    """
    Interactive REPL. Every command runs through `dispatch`, which the CLI
    points at the engine loop so mutations never interleave with reminder
    ticks or undo timers.
    """
    run = dispatch or _inline
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Manage your tasks. Use /help for commands. Use /exit to quit.\n")

    for warning in state.startup_warnings:
        _print_ts(f"[WARN] {warning}")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = input(">>> ").strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            # Bare text is a quick add.
            user_input = f"/add {user_input}"

        try:
            response = run(lambda: command_registry.handle(state, user_input, emit=emit))
            banner = run(lambda: render_banner(state))
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."
            banner = None

        if response is not None:
            print(f"[{_ts_local()}] {response}")
        if banner:
            print(f"[{_ts_local()}] {banner}")

        warning = render_persistence_warning(state)
        if warning:
            print(f"[{_ts_local()}] {warning}")

    logger.info("Console connector finished.")
