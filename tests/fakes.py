# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field, replace

from taskmaster.core.ports import PermissionState
from taskmaster.errors import PersistenceFailure, SnapshotCorrupt
from taskmaster.tasks.task_models import Task


class FakeClock:
    """Manually advanced clock (epoch seconds)."""

    def __init__(self, now: float = 1_800_000_000.0) -> None:
        self.now_ts = now

    def now(self) -> float:
        return self.now_ts

    def advance(self, seconds: float) -> None:
        self.now_ts += seconds

    def set(self, ts: float) -> None:
        self.now_ts = ts


@dataclass(slots=True)
class SentAlert:
    title: str
    body: str


@dataclass(slots=True)
class FakeNotifier:
    """
    Fake Notifier used by scheduler tests.
    """

    permission: PermissionState = PermissionState.GRANTED
    fail: bool = False
    sent: list[SentAlert] = field(default_factory=list)
    permission_requests: int = 0

    def request_permission(self) -> PermissionState:
        self.permission_requests += 1
        if self.permission is PermissionState.UNDETERMINED:
            self.permission = PermissionState.GRANTED
        return self.permission

    async def emit(self, title: str, body: str) -> None:
        if self.fail:
            raise RuntimeError("transport down")
        self.sent.append(SentAlert(title=title, body=body))


class MemorySnapshotRepo:
    """In-memory SnapshotRepo that records every saved snapshot."""

    def __init__(self, tasks: list[Task] | None = None) -> None:
        self._initial = tasks
        self.saved: list[list[Task]] = []

    def load(self) -> list[Task] | None:
        if self._initial is None:
            return None
        return [replace(t) for t in self._initial]

    def save(self, tasks: list[Task]) -> None:
        self.saved.append([replace(t) for t in tasks])


class FailingSnapshotRepo(MemorySnapshotRepo):
    """Fails the first `failures` saves, then behaves."""

    def __init__(self, failures: int = 1_000_000) -> None:
        super().__init__()
        self.failures = failures

    def save(self, tasks: list[Task]) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise PersistenceFailure("disk full")
        super().save(tasks)


class CorruptSnapshotRepo(MemorySnapshotRepo):
    def load(self) -> list[Task] | None:
        raise SnapshotCorrupt("not json")
