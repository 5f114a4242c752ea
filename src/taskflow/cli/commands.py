# src/taskflow/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from pathlib import Path
from typing import cast

from ..core.state import AppState
from ..dates.date_parser import format_due_date, is_overdue
from ..tasks.task_api import (
    add_subtask_from_input,
    add_task_from_input,
    create_task_below,
    edit_task_text,
    indent_failure_reason,
    outdent_failure_reason,
)
from ..tasks.task_engine import TaskEngine
from ..tasks.task_models import Task, TaskFilter

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

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

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("Plain text (no leading /) adds a task.")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----


def _parse_id(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.lstrip("#"))
    except ValueError:
        return None


def format_task_line(engine: TaskEngine, task: Task) -> str:
    mark = "x" if task.completed else " "
    line = f"{'  ' * task.indent_level}[{mark}] #{task.id} {task.text}"

    sub = engine.subtask_stats(task.id)
    if sub.total:
        line += f" ({sub.completed}/{sub.total})"

    if task.due_date is not None:
        label = format_due_date(task.due_date)
        if not task.completed and is_overdue(task.due_date):
            label += ", overdue"
        line += f" [due: {label}]"
    return line


def _format_list(engine: TaskEngine, tasks: list[Task], empty: str) -> str:
    if not tasks:
        return empty
    return "\n".join(format_task_line(engine, t) for t in tasks)


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    return (
        "Status:\n"
        f"  Storage: {getattr(s, 'storage_backend', '?')} ({getattr(s, 'storage_path', '?')})\n"
        f"  Autosave: {'ON' if state.autosave else 'OFF'}\n"
        f"  Unsaved changes: {'yes' if state.dirty else 'no'}\n"
        f"  Tasks: {len(state.engine)}"
    )


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list            -> all tasks
    /list active     -> open tasks
    /list completed  -> finished tasks
    """
    flt = TaskFilter.parse(args[0] if args else None)
    return _format_list(state.engine, state.engine.by_filter(flt), f"No tasks ({flt.value}).")


def cmd_add(state: AppState, args: list[str]) -> str:
    task = add_task_from_input(state, " ".join(args))
    if task is None:
        return "Usage: /add <text>. Task text cannot be empty."
    if task.due_date is not None:
        return f"Task added #{task.id} (Due: {format_due_date(task.due_date)})"
    return f"Task added #{task.id}"


def cmd_sub(state: AppState, args: list[str]) -> str:
    parent_id = _parse_id(args[0] if args else None)
    if parent_id is None or len(args) < 2:
        return "Usage: /sub <parent_id> <text>"
    if state.engine.get(parent_id) is None:
        return f"Task #{parent_id} not found."
    task = add_subtask_from_input(state, parent_id, " ".join(args[1:]))
    if task is None:
        return "Cannot add subtask (empty text or maximum nesting depth reached)."
    return f"Subtask added #{task.id} under #{parent_id}"


def cmd_below(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args[0] if args else None)
    if task_id is None or len(args) < 2:
        return "Usage: /below <id> <text>"
    task = create_task_below(state, task_id, " ".join(args[1:]))
    if task is None:
        return f"Cannot create task below #{task_id}."
    return f"New task created #{task.id}"


def cmd_edit(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args[0] if args else None)
    if task_id is None:
        return "Usage: /edit <id> <text> (empty text deletes the task)"
    text = " ".join(args[1:])
    task = edit_task_text(state, task_id, text)
    if task is None:
        return f"Task #{task_id} not found."
    if not text.strip():
        return f"Task deleted #{task_id}"
    return f"Task updated #{task_id}"


def cmd_done(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args[0] if args else None)
    if task_id is None:
        return "Usage: /done <id>"
    task = state.engine.toggle_complete(task_id)
    if task is None:
        return f"Task #{task_id} not found."
    state.dirty = True
    return f"Task completed #{task_id}" if task.completed else f"Task reopened #{task_id}"


def cmd_rm(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args[0] if args else None)
    if task_id is None:
        return "Usage: /rm <id>"
    deleted = state.engine.delete(task_id)
    if deleted is None:
        return f"Task #{task_id} not found."
    state.dirty = True
    return f"Task deleted #{task_id}"


def cmd_indent(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args[0] if args else None)
    if task_id is None:
        return "Usage: /indent <id>"
    reason = indent_failure_reason(state.engine, task_id)
    task = state.engine.indent(task_id)
    if task is None:
        return f"Cannot indent: {reason or 'unknown reason'}"
    state.dirty = True
    return f"Task #{task_id} is now a subtask of #{task.parent_id}"


def cmd_outdent(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args[0] if args else None)
    if task_id is None:
        return "Usage: /outdent <id>"
    reason = outdent_failure_reason(state.engine, task_id)
    task = state.engine.outdent(task_id)
    if task is None:
        return f"Cannot outdent: {reason or 'unknown reason'}"
    state.dirty = True
    if task.parent_id is None:
        return f"Task #{task_id} moved to the top level"
    return f"Task #{task_id} moved to level {task.indent_level}"


def cmd_move(state: AppState, args: list[str]) -> str:
    """/move <id> <position>  (positions start at 1, as in /list all)"""
    task_id = _parse_id(args[0] if args else None)
    position = _parse_id(args[1] if len(args) > 1 else None)
    if task_id is None or position is None:
        return "Usage: /move <id> <position>"
    from_index = state.engine.index_of(task_id)
    if from_index is None:
        return f"Task #{task_id} not found."
    if not state.engine.reorder(from_index, position - 1):
        return "Task not moved (same or invalid position)."
    state.dirty = True
    return f"Task #{task_id} moved to position {position}"


def cmd_clear(state: AppState, args: list[str]) -> str:
    count = state.engine.clear_completed()
    if count == 0:
        return "No completed tasks to clear."
    state.dirty = True
    return f"{count} completed {'task' if count == 1 else 'tasks'} cleared"


def cmd_find(state: AppState, args: list[str]) -> str:
    query = " ".join(args)
    if not query.strip():
        return "Usage: /find <query>"
    results = state.engine.search(query)
    return _format_list(state.engine, results, f"No tasks match {query!r}.")


def cmd_stats(state: AppState, args: list[str]) -> str:
    st = state.engine.stats()
    return (
        f"Total: {st.total}  Active: {st.active}  Completed: {st.completed}  "
        f"({st.completion_rate}% done)"
    )


def cmd_export(state: AppState, args: list[str]) -> str:
    """
    /export          -> print the snapshot
    /export <path>   -> write the snapshot to a file
    """
    payload = state.engine.export_snapshot()
    if not args:
        return payload
    path = Path(args[0]).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(payload, "utf-8")
    except OSError:
        logger.exception("Export to %s failed.", path)
        return f"Export failed: cannot write {path}."
    return f"Tasks exported to {path}"


def cmd_import(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /import <path>"
    path = Path(args[0]).expanduser()
    try:
        payload = path.read_text("utf-8")
    except OSError:
        logger.exception("Import from %s failed.", path)
        return f"Import failed: cannot read {path}."

    if emit:
        emit(f"Importing {path} (this replaces the current list)...")
    if not state.engine.import_snapshot(payload):
        return "Import failed: not a TaskFlow export."
    state.dirty = True
    return f"Imported {len(state.engine)} tasks."


def cmd_reset(state: AppState, args: list[str]) -> str:
    if not args or args[0].lower() != "yes":
        return "This deletes every task. Confirm with: /reset yes"
    count = state.engine.clear_all()
    state.dirty = True
    return f"Removed {count} tasks."


def cmd_save(state: AppState, args: list[str]) -> str:
    if not state.engine.save():
        return "Save failed (see log)."
    state.dirty = False
    return "Saved."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage/autosave status.")
registry.register("list", cmd_list, help_text="List tasks: /list [all|active|completed].", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task (understands 'tomorrow', 'in 3 days', ...).", aliases=["a"])
registry.register("sub", cmd_sub, help_text="Add a subtask: /sub <parent_id> <text>.")
registry.register("below", cmd_below, help_text="Add a task right after another: /below <id> <text>.")
registry.register("edit", cmd_edit, help_text="Change task text: /edit <id> <text>.")
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.", aliases=["x", "toggle"])
registry.register("rm", cmd_rm, help_text="Delete a task and its subtasks: /rm <id>.", aliases=["del"])
registry.register("indent", cmd_indent, help_text="Make a task a subtask of the one above: /indent <id>.")
registry.register("outdent", cmd_outdent, help_text="Move a task one level up: /outdent <id>.")
registry.register("move", cmd_move, help_text="Move a task: /move <id> <position>.")
registry.register("clear", cmd_clear, help_text="Remove all completed tasks.")
registry.register("find", cmd_find, help_text="Fuzzy search: /find <query>.", aliases=["search"])
registry.register("stats", cmd_stats, help_text="Show totals and completion rate.")
registry.register("export", cmd_export, help_text="Export JSON: /export [path].")
registry.register("import", cmd_import, help_text="Replace tasks from an export: /import <path>.")
registry.register("reset", cmd_reset, help_text="Delete everything: /reset yes.")
registry.register("save", cmd_save, help_text="Save now.")
