# src/taskgraph/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import time
from collections.abc import Callable
from typing import cast

from ..core.state import AppState
from ..errors import TaskGraphError
from ..tasks.task_models import Task, TaskDependency, TaskFields

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class UsageError(ValueError):
    """Bad command arguments; the message is the usage text shown to the user."""


class CommandRegistry:
    """Simple slash-command registry used by the admin console (/help, /task, /dep ...)."""

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

        Typed core failures and usage errors become one-line replies; anything
        else propagates to the caller.
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

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except UsageError as e:
            return str(e)
        except TaskGraphError as e:
            logger.debug("/%s failed: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting / parsing ----


def _fmt_task(t: Task) -> str:
    parts = [f"#{t.id} {t.title}"]
    if t.due_date is not None:
        parts.append(f"due {t.due_date.isoformat()}")
    if t.completed_at is not None:
        parts.append("done")
    if t.is_deleted:
        parts.append("[deleted]")
    return "  ".join(parts)


def _fmt_tasks(header: str, tasks: list[Task]) -> str:
    if not tasks:
        return f"{header}: none."
    return "\n".join([f"{header}:", *(f"  {_fmt_task(t)}" for t in tasks)])


def _fmt_edge(e: TaskDependency) -> str:
    return f"#{e.task_id} depends on #{e.depends_on_task_id}"


def _ids(args: list[str], n: int, usage: str) -> list[int]:
    if len(args) < n:
        raise UsageError(usage)
    try:
        return [int(a) for a in args[:n]]
    except ValueError:
        raise UsageError(usage) from None


def _active_only(args: list[str], n: int) -> bool:
    return any(a.lower() in ("active", "--active") for a in args[n:])


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    policy = "allowed" if state.dependencies.allow_self_loops else "rejected"
    return (
        "Status:\n"
        f"  Database: {state.db.path}\n"
        f"  Tasks: {state.tasks.count_tasks()} active, "
        f"{state.tasks.count_tasks(include_deleted=True)} total\n"
        f"  Dependencies: {state.dependencies.count_edges()}\n"
        f"  Self-loops: {policy}"
    )


_TASK_USAGE = (
    "Usage:\n"
    "  /task add <title...>      - create a task\n"
    "  /task show <id> [all]     - show a task (all: include deleted)\n"
    "  /task edit <id> <title...> - change the title\n"
    "  /task done <id>           - mark completed\n"
    "  /task rm <id>             - soft delete\n"
    "  /task purge <id>          - hard delete (removes its dependencies)\n"
    "  /task list                - active tasks\n"
    "  /task deleted             - soft-deleted tasks"
)


def cmd_task(
    state: AppState,
    args: list[str],
    emit: CommandEmitter | None = None,
) -> str:
    if not args:
        return _TASK_USAGE

    sub, rest = args[0].lower(), args[1:]

    if sub == "add":
        title = " ".join(rest).strip()
        if not title:
            raise UsageError("Usage: /task add <title...>")
        task = state.tasks.create(TaskFields(title=title))
        return f"Created {_fmt_task(task)}"

    if sub == "show":
        (task_id,) = _ids(rest, 1, "Usage: /task show <id> [all]")
        include_all = any(a.lower() in ("all", "--all") for a in rest[1:])
        task = state.tasks.find_any_by_id(task_id) if include_all else state.tasks.find_active_by_id(task_id)
        deps = state.graph.count_dependencies_of(task_id)
        dependents = state.graph.count_dependents_of(task_id)
        return f"{_fmt_task(task)}\n  depends on {deps} task(s), blocks {dependents} task(s)"

    if sub == "edit":
        (task_id,) = _ids(rest, 1, "Usage: /task edit <id> <title...>")
        title = " ".join(rest[1:]).strip()
        if not title:
            raise UsageError("Usage: /task edit <id> <title...>")
        fields = state.tasks.find_any_by_id(task_id).fields()
        fields.title = title
        return f"Updated {_fmt_task(state.tasks.replace(task_id, fields))}"

    if sub == "done":
        (task_id,) = _ids(rest, 1, "Usage: /task done <id>")
        fields = state.tasks.find_any_by_id(task_id).fields()
        fields.completed_at = time.time()
        return f"Completed {_fmt_task(state.tasks.replace(task_id, fields))}"

    if sub == "rm":
        (task_id,) = _ids(rest, 1, "Usage: /task rm <id>")
        state.tasks.soft_delete(task_id)
        return f"Task #{task_id} soft-deleted (its dependencies are kept)."

    if sub == "purge":
        (task_id,) = _ids(rest, 1, "Usage: /task purge <id>")
        if emit:
            with contextlib.suppress(Exception):
                emit(f"Purging task #{task_id} and every dependency that references it...")
        state.tasks.hard_delete(task_id)
        return f"Task #{task_id} permanently deleted."

    if sub == "list":
        limit = int(getattr(state.settings, "console_list_limit", 50))
        return _fmt_tasks("Active tasks", state.tasks.list_tasks(limit=limit))

    if sub == "deleted":
        return _fmt_tasks("Soft-deleted tasks", state.tasks.list_deleted())

    return _TASK_USAGE


_DEP_USAGE = (
    "Usage:\n"
    "  /dep add <task> <on>              - <task> depends on <on>\n"
    "  /dep rm <task> <on>               - remove the dependency\n"
    "  /dep move <task> <on> <task2> <on2> - re-point a dependency\n"
    "  /dep has <task> <on>              - check a dependency\n"
    "  /dep on <task> [active]           - what <task> depends on\n"
    "  /dep for <task> [active]          - what depends on <task>\n"
    "  /dep count <task> [active]        - both counts"
)


def cmd_dep(state: AppState, args: list[str]) -> str:
    if not args:
        return _DEP_USAGE

    sub, rest = args[0].lower(), args[1:]

    if sub == "add":
        a, b = _ids(rest, 2, "Usage: /dep add <task> <on>")
        return f"Created: {_fmt_edge(state.dependencies.create_edge(a, b))}"

    if sub == "rm":
        a, b = _ids(rest, 2, "Usage: /dep rm <task> <on>")
        state.dependencies.delete_edge(a, b)
        return f"Removed: #{a} no longer depends on #{b}"

    if sub == "move":
        a, b, c, d = _ids(rest, 4, "Usage: /dep move <task> <on> <task2> <on2>")
        return f"Moved: {_fmt_edge(state.dependencies.replace_edge((a, b), c, d))}"

    if sub == "has":
        a, b = _ids(rest, 2, "Usage: /dep has <task> <on>")
        return "yes" if state.dependencies.exists_edge(a, b) else "no"

    if sub == "on":
        (task_id,) = _ids(rest, 1, "Usage: /dep on <task> [active]")
        tasks = state.graph.direct_dependencies_of(task_id, include_deleted=not _active_only(rest, 1))
        return _fmt_tasks(f"Task #{task_id} depends on", tasks)

    if sub == "for":
        (task_id,) = _ids(rest, 1, "Usage: /dep for <task> [active]")
        tasks = state.graph.direct_dependents_of(task_id, include_deleted=not _active_only(rest, 1))
        return _fmt_tasks(f"Tasks depending on #{task_id}", tasks)

    if sub == "count":
        (task_id,) = _ids(rest, 1, "Usage: /dep count <task> [active]")
        include_deleted = not _active_only(rest, 1)
        deps = state.graph.count_dependencies_of(task_id, include_deleted=include_deleted)
        dependents = state.graph.count_dependents_of(task_id, include_deleted=include_deleted)
        return f"Task #{task_id}: {deps} dependencies, {dependents} dependents"

    return _DEP_USAGE


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show database path, counts and graph policy.")
registry.register(
    "task", cmd_task, help_text="Tasks: /task add | show | edit | done | rm | purge | list | deleted."
)
registry.register(
    "dep", cmd_dep, help_text="Dependencies: /dep add | rm | move | has | on | for | count."
)
