# src/taskmaster/connectors/notifiers.py

from __future__ import annotations

import asyncio
import logging
import shutil
from datetime import datetime

from ..core.ports import Notifier, PermissionState
from ..errors import NotificationUnavailable

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotifier:
    """Prints reminders into the interactive console."""

    def __init__(self) -> None:
        self.permission = PermissionState.UNDETERMINED

    def request_permission(self) -> PermissionState:
        self.permission = PermissionState.GRANTED
        return self.permission

    async def emit(self, title: str, body: str) -> None:
        print(f"\n[{_ts_local()}] [REMINDER] {title}: {body}", flush=True)


class DesktopNotifier:
    """
    Desktop notifications through the freedesktop `notify-send` tool.

    Permission is "denied" when the tool is not installed.
    """

    def __init__(self, app_name: str = "taskmaster", *, binary: str = "notify-send") -> None:
        self.permission = PermissionState.UNDETERMINED
        self._app_name = app_name
        self._binary = binary
        self._path: str | None = None

    def request_permission(self) -> PermissionState:
        self._path = shutil.which(self._binary)
        if self._path is None:
            logger.warning("%s not found; desktop reminders disabled", self._binary)
            self.permission = PermissionState.DENIED
        else:
            self.permission = PermissionState.GRANTED
        return self.permission

    async def emit(self, title: str, body: str) -> None:
        if self._path is None:
            raise NotificationUnavailable(f"{self._binary} is not available")
        proc = await asyncio.create_subprocess_exec(
            self._path,
            "--app-name",
            self._app_name,
            title,
            body,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        _, err = await proc.communicate()
        if proc.returncode != 0:
            raise RuntimeError(
                f"{self._binary} exited with {proc.returncode}: {err.decode(errors='replace').strip()}"
            )


class NullNotifier:
    """Notifications switched off."""

    def __init__(self) -> None:
        self.permission = PermissionState.DENIED

    def request_permission(self) -> PermissionState:
        return self.permission

    async def emit(self, title: str, body: str) -> None:
        raise NotificationUnavailable("notifications are disabled")


def build_notifier(kind: str, *, app_name: str = "taskmaster") -> Notifier:
    key = (kind or "").strip().lower()
    if key == "desktop":
        return DesktopNotifier(app_name)
    if key in ("none", "off", "null"):
        return NullNotifier()
    if key not in ("", "console"):
        logger.warning("Unknown notifier %r, falling back to console", kind)
    return ConsoleNotifier()


def ensure_permission(notifier: Notifier) -> PermissionState:
    """Ask once at startup if the state is still undetermined. Never raises."""
    if notifier.permission is not PermissionState.UNDETERMINED:
        return notifier.permission
    try:
        return notifier.request_permission()
    except Exception:
        logger.exception("Notification permission request failed")
        notifier.permission = PermissionState.DENIED
        return notifier.permission
