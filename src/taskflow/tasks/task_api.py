# src/taskflow/tasks/task_api.py

from __future__ import annotations

import logging

from ..core.state import AppState
from .task_engine import TaskEngine
from .task_models import MAX_INDENT_LEVEL, Task

logger = logging.getLogger(__name__)


def add_task_from_input(state: AppState, raw_text: str) -> Task | None:
    """
    Create a top-level task from raw user input.

    The date extractor strips phrases like "tomorrow" and supplies the due date.
    """
    if not raw_text or not raw_text.strip():
        return None
    parsed = state.date_parser.parse(raw_text)
    task = state.engine.create(parsed.clean_text, due_date=parsed.due_date)
    if task is not None:
        state.dirty = True
    return task


def add_subtask_from_input(state: AppState, parent_id: int, raw_text: str) -> Task | None:
    """Create a child of `parent_id`, one level below it. Text is stored verbatim (trimmed)."""
    task = state.engine.create(raw_text, parent_id=parent_id)
    if task is not None:
        state.dirty = True
    return task


def create_task_below(state: AppState, task_id: int, text: str) -> Task | None:
    """Create a top-level task and move it right after `task_id`."""
    engine = state.engine
    anchor = engine.index_of(task_id)
    if anchor is None:
        return None

    task = engine.create(text)
    if task is None:
        return None

    new_index = engine.index_of(task.id)
    if new_index is not None and new_index != anchor + 1:
        engine.reorder(new_index, anchor + 1)
    state.dirty = True
    return task


def edit_task_text(state: AppState, task_id: int, text: str) -> Task | None:
    """
    Update a task's text; empty text deletes the task (and its subtree).

    Returns the updated or deleted task, None if it does not exist.
    """
    if not (text or "").strip():
        deleted = state.engine.delete(task_id)
        if deleted is not None:
            logger.debug("Empty edit routed to delete id=%s", task_id)
            state.dirty = True
        return deleted

    task = state.engine.update(task_id, text)
    if task is not None:
        state.dirty = True
    return task


def indent_failure_reason(engine: TaskEngine, task_id: int) -> str | None:
    """
    Explain why indent() would fail, or None if it would succeed.

    indent() only returns None; the reason is re-derived from position and level.
    """
    idx = engine.index_of(task_id)
    if idx is None:
        return f"Task #{task_id} not found."
    if idx == 0:
        return "The first task cannot be indented."
    tasks = engine.tasks
    if tasks[idx].indent_level >= MAX_INDENT_LEVEL:
        return f"Maximum nesting depth ({MAX_INDENT_LEVEL}) reached."
    if tasks[idx - 1].indent_level >= MAX_INDENT_LEVEL:
        return f"The task above is already at maximum depth ({MAX_INDENT_LEVEL})."
    return None


def outdent_failure_reason(engine: TaskEngine, task_id: int) -> str | None:
    task = engine.get(task_id)
    if task is None:
        return f"Task #{task_id} not found."
    if task.indent_level == 0:
        return "Task is already at the top level."
    return None
