# src/taskboard/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from datetime import datetime, timezone

from ..core.state import AppState
from ..tasks.task_models import (
    UNSET,
    CreateTaskPayload,
    FilterState,
    KanbanStatus,
    Quadrant,
    Task,
    UpdateTaskPatch,
)

CommandHandler = Callable[[AppState, list[str]], str]

logger = logging.getLogger(__name__)

# New tasks land in the least urgent quadrant unless told otherwise.
DEFAULT_QUADRANT = Quadrant.NOT_URGENT_NOT_IMPORTANT

_OPTION_KEYS = {
    "q": "quadrant",
    "quadrant": "quadrant",
    "s": "status",
    "status": "status",
    "due": "due",
    "desc": "description",
    "description": "description",
    "title": "title",
}


class CommandError(ValueError):
    """Bad command arguments; the message is shown to the user as-is."""


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

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

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}."
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args)
        except CommandError as e:
            return str(e)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def _split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate `key=value` options (known keys only) from positional words."""
    words: list[str] = []
    options: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        canonical = _OPTION_KEYS.get(key.lower()) if sep else None
        if canonical is None:
            words.append(arg)
        else:
            options[canonical] = value
    return words, options


def _parse_quadrant(raw: str) -> Quadrant:
    quadrant = Quadrant.parse(raw)
    if quadrant is None:
        raise CommandError(f"Unknown quadrant: {raw}. Use q1..q4 or do/schedule/delegate/eliminate.")
    return quadrant


def _parse_status(raw: str) -> KanbanStatus:
    status = KanbanStatus.parse(raw)
    if status is None:
        raise CommandError(f"Unknown status: {raw}. Use todo/in_progress/review/done.")
    return status


def _parse_due(raw: str) -> datetime | None:
    if raw.strip().lower() in ("", "none", "-"):
        return None
    try:
        due = datetime.fromisoformat(raw.strip())
    except ValueError:
        raise CommandError(f"Bad due date: {raw}. Use YYYY-MM-DD or an ISO timestamp.") from None
    if due.tzinfo is None:
        due = due.replace(tzinfo=timezone.utc)
    return due


def _resolve_task(state: AppState, ref: str) -> Task:
    """A task reference is either its id or its position in the global list."""
    store = state.task_store
    task = store.get_task(ref)
    if task is not None:
        return task
    if ref.isdigit():
        tasks = store.get_all_tasks()
        pos = int(ref)
        if pos < len(tasks):
            return tasks[pos]
    raise CommandError(f"No task matches {ref!r}.")


def format_task(task: Task) -> str:
    due = f" due {task.due_date:%Y-%m-%d}" if task.due_date is not None else ""
    return (
        f"[{task.order}] {task.title} "
        f"({task.quadrant.label} / {task.kanban_status.label}){due} id={task.id}"
    )


def _format_list(tasks: list[Task], empty: str = "  (none)") -> str:
    if not tasks:
        return empty
    return "\n".join(f"  {format_task(t)}" for t in tasks)


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add Buy milk q=do status=todo due=2024-12-31 desc="2 bottles"
    """
    words, opts = _split_options(args)
    title = " ".join(words).strip() or opts.get("title", "").strip()
    if not title:
        raise CommandError("Usage: /add <title> [q=..] [status=..] [due=YYYY-MM-DD] [desc=..]")

    payload = CreateTaskPayload(
        title=title,
        description=opts.get("description", ""),
        quadrant=_parse_quadrant(opts["quadrant"]) if "quadrant" in opts else DEFAULT_QUADRANT,
        kanban_status=_parse_status(opts["status"]) if "status" in opts else None,
        due_date=_parse_due(opts["due"]) if "due" in opts else None,
    )
    task = state.task_store.add_task(payload)
    return f"Added {format_task(task)}"


def cmd_list(state: AppState, args: list[str]) -> str:
    tasks = state.task_store.get_all_tasks()
    return f"Tasks ({len(tasks)}):\n" + _format_list(tasks)


def cmd_board(state: AppState, args: list[str]) -> str:
    lines: list[str] = []
    for status, tasks in state.task_store.kanban_columns().items():
        lines.append(f"{status.label} ({len(tasks)}):")
        lines.append(_format_list(tasks))
    return "\n".join(lines)


def cmd_matrix(state: AppState, args: list[str]) -> str:
    lines: list[str] = []
    for quadrant, tasks in state.task_store.eisenhower_matrix().items():
        lines.append(f"{quadrant.label} [{quadrant.value}] ({len(tasks)}):")
        lines.append(_format_list(tasks))
    return "\n".join(lines)


def cmd_show(state: AppState, args: list[str]) -> str:
    if not args:
        raise CommandError("Usage: /show <id|position>")
    task = _resolve_task(state, args[0])
    created = task.created_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    updated = task.updated_at.astimezone().strftime("%Y-%m-%d %H:%M:%S")
    return (
        f"{format_task(task)}\n"
        f"  Description: {task.description or '-'}\n"
        f"  Created: {created}\n"
        f"  Updated: {updated}"
    )


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <id|position> title=".." desc=".." q=.. status=.. due=YYYY-MM-DD|none
    """
    if not args:
        raise CommandError("Usage: /edit <id|position> [title=..] [desc=..] [q=..] [status=..] [due=..|none]")
    task = _resolve_task(state, args[0])
    _, opts = _split_options(args[1:])

    patch = UpdateTaskPatch(
        title=opts.get("title", UNSET),
        description=opts.get("description", UNSET),
        quadrant=_parse_quadrant(opts["quadrant"]) if "quadrant" in opts else UNSET,
        kanban_status=_parse_status(opts["status"]) if "status" in opts else UNSET,
        due_date=_parse_due(opts["due"]) if "due" in opts else UNSET,
    )
    if patch.is_empty():
        raise CommandError("Nothing to change. Pass at least one of title=, desc=, q=, status=, due=.")
    if patch.title is not UNSET and not str(patch.title).strip():
        raise CommandError("Title cannot be empty.")

    updated = state.task_store.update_task(task.id, patch)
    if updated is None:
        return f"Task {task.id} disappeared."
    return f"Updated {format_task(updated)}"


def cmd_move(state: AppState, args: list[str]) -> str:
    if len(args) < 2 or not args[1].lstrip("-").isdigit():
        raise CommandError("Usage: /move <id|position> <new position>")
    task = _resolve_task(state, args[0])
    state.task_store.reorder_tasks(task.id, int(args[1]))
    moved = state.task_store.get_task(task.id)
    return f"Moved {format_task(moved)}" if moved else f"Task {task.id} disappeared."


def cmd_status(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        raise CommandError("Usage: /status <id|position> <todo|in_progress|review|done>")
    task = _resolve_task(state, args[0])
    updated = state.task_store.update_kanban_status(task.id, _parse_status(args[1]))
    return f"Updated {format_task(updated)}" if updated else f"Task {task.id} disappeared."


def cmd_quadrant(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        raise CommandError("Usage: /quadrant <id|position> <q1..q4|do|schedule|delegate|eliminate>")
    task = _resolve_task(state, args[0])
    updated = state.task_store.update_task(task.id, UpdateTaskPatch(quadrant=_parse_quadrant(args[1])))
    return f"Updated {format_task(updated)}" if updated else f"Task {task.id} disappeared."


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        raise CommandError("Usage: /del <id|position>")
    task = _resolve_task(state, args[0])
    if state.task_store.delete_task(task.id):
        return f"Deleted {task.title!r}."
    return f"Task {task.id} was already gone."


def cmd_find(state: AppState, args: list[str]) -> str:
    """
    /find <text> [status=..] [q=..]
    """
    words, opts = _split_options(args)
    filter_state = FilterState(
        search=" ".join(words),
        statuses=frozenset([_parse_status(opts["status"])]) if "status" in opts else frozenset(),
        quadrants=frozenset([_parse_quadrant(opts["quadrant"])]) if "quadrant" in opts else frozenset(),
    )
    tasks = state.task_store.filter_tasks(filter_state)
    return f"Matches ({len(tasks)}):\n" + _format_list(tasks)


def cmd_save(state: AppState, args: list[str]) -> str:
    if state.task_store.persist_to_storage():
        return f"Saved {state.task_store.count_tasks()} tasks."
    return "Save failed (see log)."


def cmd_clear(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() != "yes":
        return "This deletes every task and the stored copy. Confirm with: /clear yes"
    state.task_store.clear_storage()
    logger.info("Task storage cleared from console.")
    return "All tasks cleared."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register(
    "add", cmd_add, help_text="Add a task: /add <title> [q=..] [status=..] [due=YYYY-MM-DD] [desc=..]."
)
registry.register("list", cmd_list, help_text="List all tasks in global order.", aliases=["ls"])
registry.register("board", cmd_board, help_text="Show the Kanban board.")
registry.register("matrix", cmd_matrix, help_text="Show the Eisenhower matrix.")
registry.register("show", cmd_show, help_text="Show one task: /show <id|position>.")
registry.register("edit", cmd_edit, help_text="Edit fields: /edit <id|position> key=value ...")
registry.register("move", cmd_move, help_text="Reorder: /move <id|position> <new position>.")
registry.register("status", cmd_status, help_text="Set Kanban status: /status <id|position> <status>.")
registry.register("quadrant", cmd_quadrant, help_text="Set quadrant: /quadrant <id|position> <quadrant>.")
registry.register("del", cmd_delete, help_text="Delete a task: /del <id|position>.", aliases=["rm"])
registry.register("find", cmd_find, help_text="Search: /find <text> [status=..] [q=..].")
registry.register("save", cmd_save, help_text="Write tasks to storage now.")
registry.register("clear", cmd_clear, help_text="Delete all tasks: /clear yes.")
