# src/taskmaster/cli/engine.py

"""
Background event loop for the engine.

The console REPL is blocking (input()), while the reminder loop and the undo
timer need a running asyncio loop. The loop lives in a daemon thread and the
console submits every command to it, so all store mutations run on that one
thread, one at a time.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from ..core.state import AppState
from ..tasks.task_scheduler import run_reminder_scheduler

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class EngineRunner:
    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def call(self, fn: Callable[[], T], timeout: float | None = 30.0) -> T:
        """Run fn on the engine loop and return its result (exceptions propagate)."""

        async def _run() -> T:
            return fn()

        fut = asyncio.run_coroutine_threadsafe(_run(), self.loop)
        return fut.result(timeout=timeout)

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal engine stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)


async def _run_engine(state: AppState, stop_event: asyncio.Event) -> None:
    interval = float(getattr(state.settings, "reminder_interval_seconds", 15.0))
    reminders = asyncio.create_task(
        run_reminder_scheduler(state.scheduler, interval_seconds=interval),
        name="reminder-scheduler",
    )
    logger.info("Engine started (reminder interval=%.1fs).", interval)
    try:
        await stop_event.wait()
    finally:
        reminders.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reminders
        state.undo.close()
        logger.info("Engine stopped.")


def start_engine_in_background(state: AppState) -> EngineRunner | None:
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_engine(state, stop_event))
        finally:
            with contextlib.suppress(Exception):
                loop.stop()
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="taskmaster-engine", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Engine thread did not initialize properly.")
        return None

    return EngineRunner(thread=t, loop=loop, stop_event=stop_event)
