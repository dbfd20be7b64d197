# src/quest_tracker/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from dataclasses import replace
from typing import cast

from ..core.errors import DecodeError
from ..core.state import AppState
from ..tasks.progress import ProgressOutcome
from ..tasks.task_models import DEFAULT_GOAL_DAYS, Task, TaskCategory, TaskStatus

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, /progress, ...)."""

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
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def format_task(task: Task, state: AppState | None = None) -> str:
    tz = getattr(getattr(state, "settings", None), "tz", None)
    now = state.tasks.now() if state is not None else None
    done_today = " (done today)" if task.progress_updated_today(now, tz) else ""
    streak = f" \U0001f525 {task.streak}" if task.streak > 0 else ""
    status = " [completed]" if task.is_completed else ""
    return (
        f"#{task.id} {task.category.icon} {task.title}{status} - {task.category.display_name}"
        f" - {task.current_progress}/{task.goal_days} days ({task.progress_percentage:.0%})"
        f"{streak}{done_today}"
    )


def _format_list(title: str, tasks: list[Task], state: AppState) -> str:
    if not tasks:
        return f"{title}: none."
    lines = [f"{title} ({len(tasks)}):"]
    lines.extend(f"  {format_task(t, state)}" for t in tasks)
    return "\n".join(lines)


def _parse_id(args: list[str]) -> int | None:
    if not args:
        return None
    try:
        return int(args[0].lstrip("#"))
    except ValueError:
        return None


def _parse_goal(raw: str) -> int:
    try:
        goal = int(raw)
    except ValueError:
        raise ValueError(f"goal days must be a number, got {raw!r}") from None
    if goal <= 0:
        raise ValueError("goal days must be positive")
    return goal


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    active = state.tasks.list_by_status(TaskStatus.IN_PROGRESS)
    completed = state.tasks.list_by_status(TaskStatus.COMPLETED)
    today = state.tasks.list_progressed_today()
    tz_name = getattr(state.settings, "timezone_name", "") or "local"
    return (
        "Status:\n"
        f"  Database: {state.task_store.db_path} (schema v{state.task_store.schema_version()})\n"
        f"  Timezone: {tz_name}\n"
        f"  In progress: {len(active)}, completed: {len(completed)}\n"
        f"  Progressed today: {len(today)}"
    )


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list             -> tasks in progress
    /list completed   -> completed tasks
    /list all         -> everything
    /list <category>  -> tasks of one category
    """
    sub = args[0].lower() if args else "active"

    if sub == "all":
        return _format_list("All tasks", state.tasks.list_all(), state)

    status = {"active": TaskStatus.IN_PROGRESS, "done": TaskStatus.COMPLETED}.get(sub)
    if status is None:
        with contextlib.suppress(DecodeError):
            status = TaskStatus.parse(sub)
    if status is not None:
        title = "In progress" if status == TaskStatus.IN_PROGRESS else "Completed"
        return _format_list(title, state.tasks.list_by_status(status), state)

    try:
        category = TaskCategory.parse(sub)
    except DecodeError:
        names = ", ".join(c.value for c in TaskCategory)
        return f"Usage: /list [active|completed|all|<category>]. Categories: {names}."
    return _format_list(category.display_name, state.tasks.list_by_category(category), state)


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title> [| description] [| category] [| goal days]
    """
    fields = [p.strip() for p in " ".join(args).split("|")]
    title = fields[0] if fields else ""
    if not title:
        return "Usage: /add <title> [| description] [| category] [| goal days]"

    description = fields[1] if len(fields) > 1 else ""
    try:
        category = TaskCategory.parse(fields[2]) if len(fields) > 2 and fields[2] else TaskCategory.OTHER
        goal_days = _parse_goal(fields[3]) if len(fields) > 3 and fields[3] else DEFAULT_GOAL_DAYS
    except ValueError as e:
        return f"Cannot add task: {e}"

    task = state.tasks.create(
        Task(
            title=title,
            description=description,
            category=category,
            goal_days=goal_days,
            created_at=state.tasks.now(),
        )
    )
    return f"Task added: {format_task(task, state)}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <id> title=...; description=...; category=...; goal=...
    """
    task_id = _parse_id(args)
    if task_id is None or len(args) < 2:
        return "Usage: /edit <id> title=...; description=...; category=...; goal=..."

    task = state.tasks.get_by_id(task_id)
    if task is None:
        return f"Task #{task_id} not found."

    changes: dict[str, object] = {}
    try:
        for pair in " ".join(args[1:]).split(";"):
            if not pair.strip():
                continue
            key, sep, value = pair.partition("=")
            key = key.strip().lower()
            value = value.strip()
            if not sep:
                return f"Expected field=value, got {pair.strip()!r}."
            if key == "title":
                changes["title"] = value
            elif key in ("description", "desc"):
                changes["description"] = value
            elif key == "category":
                changes["category"] = TaskCategory.parse(value)
            elif key in ("goal", "goal_days", "goaldays"):
                changes["goal_days"] = _parse_goal(value)
            else:
                return f"Unknown field {key!r}. Editable: title, description, category, goal."

        edited = replace(task, **changes)
        state.tasks.edit(edited)
    except ValueError as e:
        return f"Cannot edit task: {e}"

    return f"Task updated: {format_task(edited, state)}"


def cmd_show(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /show <id>"
    task = state.tasks.get_by_id(task_id)
    if task is None:
        return f"Task #{task_id} not found."

    last = task.last_progress_date.strftime("%Y-%m-%d %H:%M") if task.last_progress_date else "never"
    lines = [
        format_task(task, state),
        f"  Description: {task.description or '-'}",
        f"  Status: {task.status.value}",
        f"  Created: {task.created_at.strftime('%Y-%m-%d %H:%M')}",
        f"  Last progress: {last}",
        f"  Streak: {task.streak}",
    ]
    return "\n".join(lines)


def cmd_progress(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /progress <id>"

    result = state.tasks.record_progress(task_id)

    if result.outcome == ProgressOutcome.NOT_FOUND:
        return f"Task #{task_id} not found."
    if result.outcome == ProgressOutcome.ALREADY_UPDATED_TODAY:
        return "Progress already updated today!"

    task = result.task
    if task is None:
        return f"Task #{task_id} not found."
    if emit is not None and task.current_progress == task.goal_days:
        emit(f"Goal reached for #{task.id}: {task.goal_days} days! Use /complete {task.id}.")
    return f"Progress updated! Day {task.current_progress}/{task.goal_days} (Streak: {task.streak})"


def cmd_complete(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /complete <id>"
    if state.tasks.get_by_id(task_id) is None:
        return f"Task #{task_id} not found."
    state.tasks.complete(task_id)
    return f"Task #{task_id} marked as completed."


def cmd_reopen(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /reopen <id>"
    if state.tasks.get_by_id(task_id) is None:
        return f"Task #{task_id} not found."
    state.tasks.reopen(task_id)
    return f"Task #{task_id} moved back to in progress."


def cmd_remove(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /rm <id>"
    state.tasks.remove(task_id)
    return f"Task #{task_id} deleted."


def cmd_today(state: AppState, args: list[str]) -> str:
    return _format_list("Progressed today", state.tasks.list_progressed_today(), state)


def cmd_active(state: AppState, args: list[str]) -> str:
    return _format_list("Still to go", state.tasks.list_active_with_progress(), state)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show database and task totals.")
registry.register(
    "list", cmd_list, help_text="List tasks: /list [active|completed|all|<category>].", aliases=["ls"]
)
registry.register(
    "add", cmd_add, help_text="Add a task: /add <title> [| description] [| category] [| goal days]."
)
registry.register(
    "edit", cmd_edit, help_text="Edit a task: /edit <id> title=...; category=...; goal=..."
)
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register(
    "progress", cmd_progress, help_text="Record today's progress: /progress <id>.", aliases=["p"]
)
registry.register("complete", cmd_complete, help_text="Mark a task completed: /complete <id>.")
registry.register("reopen", cmd_reopen, help_text="Move a task back to in progress: /reopen <id>.")
registry.register("rm", cmd_remove, help_text="Delete a task: /rm <id>.", aliases=["delete"])
registry.register("today", cmd_today, help_text="Tasks with progress recorded today.")
registry.register("active", cmd_active, help_text="In-progress tasks that have not reached their goal.")
