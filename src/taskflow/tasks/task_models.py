# src/taskflow/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

MAX_INDENT_LEVEL = 3


class TaskFilter(StrEnum):
    """List filter used by the presentation layer."""

    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: str | None) -> TaskFilter:
        if not raw:
            return cls.ALL
        try:
            return cls(raw.strip().lower())
        except Exception:
            return cls.ALL


@dataclass(slots=True)
class Task:
    id: int
    text: str
    completed: bool
    parent_id: int | None
    indent_level: int
    created_at: int  # epoch ms
    updated_at: int  # epoch ms
    due_date: int | None = None  # epoch ms

    def to_record(self) -> dict[str, Any]:
        """Persisted (camelCase) shape of a task."""
        return {
            "id": self.id,
            "text": self.text,
            "completed": self.completed,
            "parentId": self.parent_id,
            "indentLevel": self.indent_level,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "dueDate": self.due_date,
        }

    @classmethod
    def from_record(cls, raw: Any) -> Task:
        """
        Build a Task from a persisted record.

        Older records may lack parentId/indentLevel; they default to None/0.
        Raises ValueError for records that cannot describe a task.
        """
        if not isinstance(raw, dict):
            raise ValueError(f"task record must be an object, got {type(raw).__name__}")

        task_id = raw.get("id")
        if not isinstance(task_id, int) or isinstance(task_id, bool):
            raise ValueError(f"task record has invalid id: {task_id!r}")

        text = raw.get("text")
        if not isinstance(text, str):
            raise ValueError(f"task {task_id} has invalid text")

        indent_level = _int_or_none(raw.get("indentLevel")) or 0
        if not 0 <= indent_level <= MAX_INDENT_LEVEL:
            raise ValueError(f"task {task_id} has indentLevel {indent_level} outside 0..{MAX_INDENT_LEVEL}")

        created_at = _int_or_none(raw.get("createdAt"))
        updated_at = _int_or_none(raw.get("updatedAt"))

        return cls(
            id=task_id,
            text=text,
            completed=bool(raw.get("completed", False)),
            parent_id=_int_or_none(raw.get("parentId")) or None,
            indent_level=indent_level,
            created_at=created_at or 0,
            updated_at=updated_at if updated_at is not None else (created_at or 0),
            due_date=_int_or_none(raw.get("dueDate")),
        )


def _int_or_none(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    raise ValueError(f"expected a number, got {value!r}")


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int
    active: int
    completed: int
    completion_rate: int  # integer percentage

    def to_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "active": self.active,
            "completed": self.completed,
            "completionRate": self.completion_rate,
        }


@dataclass(frozen=True, slots=True)
class SubtaskStats:
    total: int
    completed: int
    active: int
