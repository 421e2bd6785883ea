# src/taskmaster/cli/commands.py

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, cast

from ..core.state import AppState
from ..errors import InvalidTaskInput
from ..tasks import task_api
from ..tasks.task_models import Priority, PriorityFilter, StatusFilter, Task
from ..tasks.task_view import format_due, priority_label

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_RELATIVE_DUE = re.compile(r"^\+(\d+)([mhd])$")
_CLOCK_TIME = re.compile(r"^(\d{1,2}):(\d{2})$")
_UNITS = {"m": "minutes", "h": "hours", "d": "days"}


class CommandError(ValueError):
    """Bad command arguments; the message is shown to the user."""


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except (CommandError, InvalidTaskInput) as e:
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append(
            "Fields: !low|!medium|!high  @2026-10-20T14:00|@14:00|@+30m|@none  ~<reminder minutes>  -- <description>"
        )
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument parsing ----


def parse_due(raw: str, now_ts: float) -> float | None:
    """
    Parse the value of an "@" token.

    Accepts "none", a relative offset ("+30m", "+2h", "+1d"), a clock time
    for today ("14:00") or an ISO datetime in local time.
    """
    value = raw.strip().lower()
    if value in ("none", "-", ""):
        return None

    m = _RELATIVE_DUE.match(value)
    if m:
        delta = timedelta(**{_UNITS[m.group(2)]: int(m.group(1))})
        return now_ts + delta.total_seconds()

    m = _CLOCK_TIME.match(value)
    if m:
        today = datetime.fromtimestamp(now_ts)
        try:
            due = today.replace(hour=int(m.group(1)), minute=int(m.group(2)), second=0, microsecond=0)
        except ValueError:
            raise CommandError(f"invalid time: {raw}") from None
        return due.timestamp()

    try:
        return datetime.fromisoformat(raw.strip()).timestamp()
    except ValueError:
        raise CommandError(f"invalid due date: {raw}") from None


def parse_fields(args: list[str], now_ts: float) -> dict[str, Any]:
    """Turn "/add" style arguments into store fields (only those given)."""
    fields: dict[str, Any] = {}
    title_words: list[str] = []

    for idx, token in enumerate(args):
        if token == "--":
            fields["description"] = " ".join(args[idx + 1 :])
            break
        if token.startswith("!") and len(token) > 1:
            try:
                fields["priority"] = Priority.parse(token[1:])
            except ValueError:
                raise CommandError(f"unknown priority: {token[1:]}") from None
        elif token.startswith("@") and len(token) > 1:
            fields["due_at"] = parse_due(token[1:], now_ts)
        elif token.startswith("~") and len(token) > 1:
            try:
                fields["reminder_lead_minutes"] = int(token[1:])
            except ValueError:
                raise CommandError(f"reminder minutes must be a number: {token[1:]}") from None
        else:
            title_words.append(token)

    if title_words:
        fields["title"] = " ".join(title_words)
    return fields


def resolve_ref(state: AppState, ref: str) -> Task:
    """A row number from the last listing, or a unique id prefix."""
    if ref.isdigit():
        idx = int(ref)
        if 1 <= idx <= len(state.last_view):
            row = state.last_view[idx - 1]
            task = state.store.get(row.id)
            if task is not None:
                return task
            raise CommandError(f"task #{idx} no longer exists")

    matches = [t for t in state.store.list_tasks() if t.id.startswith(ref.lower())]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise CommandError(f"ambiguous task reference: {ref}")
    raise CommandError(f"no such task: {ref} (use /list to see row numbers)")


# ---- rendering ----


def format_row(state: AppState, idx: int, task: Task) -> str:
    check = "x" if task.completed else " "
    due = f"  due {format_due(task.due_at)}" if task.due_at is not None else ""
    remind = f" ~{task.reminder_lead_minutes}m" if task.reminder_lead_minutes and task.due_at else ""
    bell = " (reminded)" if state.scheduler.is_notified(task.id) else ""
    return f"{idx:>2}. [{check}] {task.title} [{priority_label(task.priority)}]{due}{remind}{bell}  ({task.id[:6]})"


def format_counts(counts: dict[PriorityFilter, int]) -> str:
    return " | ".join(f"{f.value.capitalize()}: {counts[f]}" for f in PriorityFilter)


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_list(state: AppState, args: list[str]) -> str:
    rows = task_api.visible_tasks(state)
    header = (
        f"Tasks (status: {state.status_filter.value}, priority: {state.priority_filter.value}) "
        f"- {format_counts(task_api.priority_counts(state))}"
    )
    if not rows:
        return f"{header}\nAll clear. No tasks to show. Use /add to create one."
    lines = [header]
    lines.extend(format_row(state, i, t) for i, t in enumerate(rows, start=1))
    return "\n".join(lines)


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title> [!priority] [@due] [~minutes] [-- description]
    """
    fields = parse_fields(args, state.clock.now())
    if "title" not in fields:
        raise CommandError("title is required. Usage: /add <title> [!high] [@+1h] [~10] [-- details]")
    task = task_api.create_task(state, **fields)
    return f"Created: {task.title} [{priority_label(task.priority)}]"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <row|id> [new title] [!priority] [@due|@none] [~minutes] [-- description]
    """
    if len(args) < 2:
        raise CommandError("Usage: /edit <row|id> [title] [!priority] [@due|@none] [~minutes] [-- details]")
    task = resolve_ref(state, args[0])
    fields = parse_fields(args[1:], state.clock.now())
    if not fields:
        return "Nothing to change."
    updated = task_api.update_task(state, task.id, **fields)
    if updated is None:
        return "Task no longer exists."
    return f"Updated: {updated.title}"


def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        raise CommandError("Usage: /done <row|id>")
    task = resolve_ref(state, args[0])
    toggled = task_api.toggle_task(state, task.id)
    if toggled is None:
        return "Task no longer exists."
    return f"{'Completed' if toggled.completed else 'Reopened'}: {toggled.title}"


def cmd_del(state: AppState, args: list[str]) -> str:
    if not args:
        raise CommandError("Usage: /del <row|id>")
    task = resolve_ref(state, args[0])
    deleted = task_api.delete_task(state, task.id)
    if deleted is None:
        return "Task no longer exists."
    return f"Deleted: {deleted.title}"


def cmd_undo(state: AppState, args: list[str]) -> str:
    restored = task_api.undo_delete(state)
    if restored is None:
        return "Nothing to undo."
    return f"Restored: {restored.title}"


def cmd_dismiss(state: AppState, args: list[str]) -> str:
    task_api.dismiss_banner(state)
    return "Dismissed."


def cmd_filter(state: AppState, args: list[str]) -> str:
    """
    /filter                     -> show current filters
    /filter status <all|pending|completed>
    /filter priority <all|low|medium|high>
    /filter reset
    """
    if not args:
        return f"Filters: status={state.status_filter.value} priority={state.priority_filter.value}"

    sub = args[0].lower()
    if sub == "reset":
        task_api.set_status_filter(state, StatusFilter.ALL)
        task_api.set_priority_filter(state, PriorityFilter.ALL)
        return "Filters reset."

    if len(args) < 2:
        raise CommandError("Usage: /filter status <value> | /filter priority <value> | /filter reset")

    try:
        if sub in ("status", "s"):
            value = task_api.set_status_filter(state, args[1])
            return f"Status filter: {value.value}"
        if sub in ("priority", "p"):
            pvalue = task_api.set_priority_filter(state, args[1])
            return f"Priority filter: {pvalue.value}"
    except ValueError:
        raise CommandError(f"invalid {sub} filter: {args[1]}") from None

    raise CommandError(f"unknown filter: {sub}")


def cmd_counts(state: AppState, args: list[str]) -> str:
    return format_counts(task_api.priority_counts(state))


def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        raise CommandError("Usage: /show <row|id>")
    task = resolve_ref(state, args[0])
    lines = [
        f"{task.title}",
        f"  id: {task.id}",
        f"  priority: {priority_label(task.priority)}",
        f"  status: {'completed' if task.completed else 'pending'}",
        f"  created: {format_due(task.created_at)}",
    ]
    if task.due_at is not None:
        lines.append(f"  due: {format_due(task.due_at)}")
    if task.reminder_lead_minutes:
        lines.append(f"  reminder: {task.reminder_lead_minutes} min before")
    if task.description:
        lines.append(f"  details: {task.description}")
    return "\n".join(lines)


def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    writer = state.writer
    saving = "OK"
    if writer is None:
        saving = "disabled"
    elif writer.last_error is not None:
        saving = f"FAILING ({writer.last_error})"
    return (
        "Status:\n"
        f"  Tasks: {state.store.count_tasks()}\n"
        f"  Storage: {getattr(settings, 'storage', 'json')} at {getattr(settings, 'snapshot_path', '?')} ({saving})\n"
        f"  Notifications: {state.notifier.permission.value}\n"
        f"  Undo window: {state.undo.window_seconds:.0f}s\n"
        f"  Reminder check every {getattr(settings, 'reminder_interval_seconds', 15.0):.0f}s"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("list", cmd_list, help_text="List tasks with the current filters.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Create a task: /add <title> [fields].", aliases=["new"])
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <row|id> [fields].")
registry.register("done", cmd_done, help_text="Toggle completion: /done <row|id>.", aliases=["toggle"])
registry.register("del", cmd_del, help_text="Delete a task (undoable for a few seconds).", aliases=["rm"])
registry.register("undo", cmd_undo, help_text="Restore the last deleted task.")
registry.register("dismiss", cmd_dismiss, help_text="Close the current banner.")
registry.register(
    "filter", cmd_filter, help_text="Filter: /filter status <v> | /filter priority <v> | /filter reset."
)
registry.register("counts", cmd_counts, help_text="Task counts per priority.")
registry.register("show", cmd_show, help_text="Show task details: /show <row|id>.")
registry.register("status", cmd_status, help_text="Show storage/notification/timing status.")
