# src/taskflow/tasks/task_engine.py

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from ..core.ports import KeyValueStore
from .task_models import MAX_INDENT_LEVEL, SubtaskStats, Task, TaskFilter, TaskStats
from .task_search import DEFAULT_SEARCH_CACHE_SIZE, SearchCache, matches_query, normalize_query

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "taskflow-data"
DEFAULT_STATS_TTL_MS = 100
EXPORT_VERSION = "1.0"

_INITIAL_ID = 1


def now_ms() -> int:
    return int(time.time() * 1000)


class TaskEngine:
    """
    In-memory task hierarchy.

    The ordered list `_tasks` is the source of truth: it encodes both display order
    and hierarchy position (indent looks at the previous element, outdent scans
    backwards). Two derived maps are rebuilt after every structural change:
    - id -> position
    - parent_id -> [child ids] (in list order)

    Every mutating call invalidates the search and stats caches exactly once.
    Failures are reported as None/False, never raised.
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        storage_key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], int] | None = None,
        search_cache_size: int = DEFAULT_SEARCH_CACHE_SIZE,
        stats_ttl_ms: int = DEFAULT_STATS_TTL_MS,
    ) -> None:
        self._store = store
        self._storage_key = storage_key
        self._clock = clock or now_ms
        self._stats_ttl_ms = int(stats_ttl_ms)

        self._tasks: list[Task] = []
        self._next_id = _INITIAL_ID

        self._positions: dict[int, int] = {}
        self._children: dict[int | None, list[int]] = {}
        # Bumped on every structural change (including reorder); part of the search cache key.
        self._revision = 0

        self._search_cache: SearchCache[list[Task]] = SearchCache(search_cache_size)
        self._stats_cache: TaskStats | None = None
        self._stats_cached_at = 0

    # ---- index / cache helpers ----

    def _reindex(self) -> None:
        positions: dict[int, int] = {}
        children: dict[int | None, list[int]] = {}
        for i, task in enumerate(self._tasks):
            positions.setdefault(task.id, i)
            children.setdefault(task.parent_id, []).append(task.id)
        self._positions = positions
        self._children = children
        self._revision += 1

    def _invalidate_caches(self) -> None:
        self._stats_cache = None
        self._search_cache.clear()

    def _changed(self) -> None:
        self._reindex()
        self._invalidate_caches()

    # ---- read-only queries ----

    def __len__(self) -> int:
        return len(self._tasks)

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def current_id(self) -> int:
        """Id the next created task will get."""
        return self._next_id

    def get(self, task_id: int | None) -> Task | None:
        if task_id is None:
            return None
        pos = self._positions.get(task_id)
        return self._tasks[pos] if pos is not None else None

    def index_of(self, task_id: int) -> int | None:
        return self._positions.get(task_id)

    def children_of(self, parent_id: int | None) -> list[Task]:
        """Direct children, in list order."""
        return [self._tasks[self._positions[cid]] for cid in self._children.get(parent_id, [])]

    def descendant_ids(self, task_id: int) -> list[int]:
        """
        All ids below `task_id` in the parent relation, at any depth (pre-order).

        Visited ids are tracked, so a parent cycle terminates.
        """
        out: list[int] = []
        seen = {task_id}
        stack = list(reversed(self._children.get(task_id, [])))
        while stack:
            cid = stack.pop()
            if cid in seen:
                continue
            seen.add(cid)
            out.append(cid)
            stack.extend(reversed(self._children.get(cid, [])))
        return out

    def by_filter(self, kind: TaskFilter | str = TaskFilter.ALL) -> list[Task]:
        flt = kind if isinstance(kind, TaskFilter) else TaskFilter.parse(kind)
        if flt is TaskFilter.ACTIVE:
            return [t for t in self._tasks if not t.completed]
        if flt is TaskFilter.COMPLETED:
            return [t for t in self._tasks if t.completed]
        return list(self._tasks)

    def subtask_stats(self, parent_id: int | None) -> SubtaskStats:
        """Completion counts over direct children only."""
        children = self.children_of(parent_id)
        completed = sum(1 for t in children if t.completed)
        return SubtaskStats(total=len(children), completed=completed, active=len(children) - completed)

    def search(self, query: str | None) -> list[Task]:
        """
        Substring-or-subsequence search, case-insensitive, cached.

        An empty query returns every task and drops the cache.
        """
        q = normalize_query(query)
        if not q:
            self._search_cache.clear()
            return list(self._tasks)

        key = (q, self._revision)
        cached = self._search_cache.get(key)
        if cached is not None:
            return cached

        results = [t for t in self._tasks if matches_query(t.text, q)]
        self._search_cache.put(key, results)
        return results

    def stats(self) -> TaskStats:
        """Totals for the whole list. May be up to `stats_ttl_ms` stale."""
        now = self._clock()
        if self._stats_cache is not None and now - self._stats_cached_at < self._stats_ttl_ms:
            return self._stats_cache

        total = len(self._tasks)
        completed = sum(1 for t in self._tasks if t.completed)
        # Integer percentage, rounded half-up.
        rate = (completed * 200 + total) // (2 * total) if total else 0

        self._stats_cache = TaskStats(
            total=total,
            active=total - completed,
            completed=completed,
            completion_rate=rate,
        )
        self._stats_cached_at = now
        return self._stats_cache

    # ---- mutations ----

    def create(
        self,
        text: str | None,
        parent_id: int | None = None,
        indent_level: int | None = None,
        due_date: int | None = None,
    ) -> Task | None:
        """
        Append a new task.

        `indent_level` defaults to parent level + 1 (0 without a parent); an explicit
        level must match that. Returns None for empty text, a missing parent, a
        mismatched level or a parent already at max depth.
        """
        clean = (text or "").strip()
        if not clean:
            logger.debug("Task create rejected: empty text")
            return None

        if parent_id is None:
            level = 0 if indent_level is None else int(indent_level)
            if level != 0:
                logger.debug("Task create rejected: level=%s without parent", level)
                return None
        else:
            parent = self.get(parent_id)
            if parent is None:
                logger.debug("Task create rejected: parent_id=%s not found", parent_id)
                return None
            level = parent.indent_level + 1
            if indent_level is not None and int(indent_level) != level:
                logger.debug(
                    "Task create rejected: level=%s under parent level=%s", indent_level, parent.indent_level
                )
                return None
            if level > MAX_INDENT_LEVEL:
                logger.debug("Task create rejected: level=%s out of range", level)
                return None

        now = self._clock()
        task = Task(
            id=self._next_id,
            text=clean,
            completed=False,
            parent_id=parent_id,
            indent_level=level,
            created_at=now,
            updated_at=now,
            due_date=due_date,
        )
        self._next_id += 1
        self._tasks.append(task)
        self._changed()
        logger.debug("Task created id=%s parent=%s level=%s due=%s", task.id, parent_id, level, due_date)
        return task

    def update(self, task_id: int, text: str | None) -> Task | None:
        """Overwrite text. Empty text is stored as-is; callers route it to delete()."""
        task = self.get(task_id)
        if task is None:
            return None
        task.text = (text or "").strip()
        task.updated_at = self._clock()
        self._invalidate_caches()
        logger.debug("Task updated id=%s", task_id)
        return task

    def toggle_complete(self, task_id: int) -> Task | None:
        """
        Flip completion and apply the cascades, in order:
        1. completed -> every descendant completed (any depth)
        2. reopened  -> immediate parent reopened
        3. completed -> immediate parent completed if all its children are

        Steps 2 and 3 reach one level up only.
        """
        task = self.get(task_id)
        if task is None:
            return None

        now = self._clock()
        task.completed = not task.completed
        task.updated_at = now

        if task.completed:
            self._complete_descendants(task, now)
        elif task.parent_id is not None:
            self._reopen_parent(task, now)

        if task.completed and task.parent_id is not None:
            self._complete_parent_if_done(task, now)

        self._invalidate_caches()
        logger.debug("Task toggled id=%s completed=%s", task_id, task.completed)
        return task

    def _complete_descendants(self, task: Task, now: int) -> None:
        for cid in self.descendant_ids(task.id):
            child = self.get(cid)
            if child is not None and not child.completed:
                child.completed = True
                child.updated_at = now

    def _reopen_parent(self, task: Task, now: int) -> None:
        parent = self.get(task.parent_id)
        if parent is not None and parent.completed:
            parent.completed = False
            parent.updated_at = now

    def _complete_parent_if_done(self, task: Task, now: int) -> None:
        parent = self.get(task.parent_id)
        if parent is None or parent.completed:
            return
        if all(sibling.completed for sibling in self.children_of(task.parent_id)):
            parent.completed = True
            parent.updated_at = now

    def delete(self, task_id: int) -> Task | None:
        """Remove a task and all of its descendants. Returns the targeted task."""
        task = self.get(task_id)
        if task is None:
            return None

        doomed = {task_id, *self.descendant_ids(task_id)}
        self._tasks = [t for t in self._tasks if t.id not in doomed]
        self._changed()
        logger.debug("Task deleted id=%s (with %d descendants)", task_id, len(doomed) - 1)
        return task

    def indent(self, task_id: int) -> Task | None:
        """
        Reparent onto the task directly above, one level below it.

        Purely positional: the previous element becomes the parent whatever its level.
        Fails (None) for the first task, a task already at max depth, or when the
        previous element is itself at max depth.
        """
        idx = self.index_of(task_id)
        if idx is None or idx == 0:
            return None

        task = self._tasks[idx]
        prev = self._tasks[idx - 1]
        if task.indent_level >= MAX_INDENT_LEVEL:
            return None
        new_level = prev.indent_level + 1
        if new_level > MAX_INDENT_LEVEL:
            return None

        task.indent_level = new_level
        task.parent_id = prev.id
        task.updated_at = self._clock()
        self._changed()
        logger.debug("Task indented id=%s parent=%s level=%s", task_id, prev.id, new_level)
        return task

    def outdent(self, task_id: int) -> Task | None:
        """
        Move one level up.

        At level 0 the parent is cleared. Otherwise the nearest task above at
        (new level - 1) becomes the parent; if there is none, parent_id is left as it was.
        """
        idx = self.index_of(task_id)
        if idx is None:
            return None

        task = self._tasks[idx]
        if task.indent_level <= 0:
            return None

        task.indent_level -= 1
        if task.indent_level == 0:
            task.parent_id = None
        else:
            wanted = task.indent_level - 1
            for i in range(idx - 1, -1, -1):
                if self._tasks[i].indent_level == wanted:
                    task.parent_id = self._tasks[i].id
                    break
            else:
                logger.debug("Outdent id=%s: no task at level %s above, parent kept", task_id, wanted)

        task.updated_at = self._clock()
        self._changed()
        logger.debug("Task outdented id=%s parent=%s level=%s", task_id, task.parent_id, task.indent_level)
        return task

    def reorder(self, from_index: int, to_index: int) -> bool:
        """Move one element. Hierarchy fields are untouched; caches are not invalidated."""
        if from_index == to_index:
            return False
        n = len(self._tasks)
        if not (0 <= from_index < n and 0 <= to_index < n):
            return False

        moved = self._tasks.pop(from_index)
        self._tasks.insert(to_index, moved)
        self._reindex()
        logger.debug("Task moved id=%s %s -> %s", moved.id, from_index, to_index)
        return True

    def clear_completed(self) -> int:
        """Remove every completed task. Children of removed tasks stay (their parent_id dangles)."""
        before = len(self._tasks)
        self._tasks = [t for t in self._tasks if not t.completed]
        removed = before - len(self._tasks)
        self._changed()
        logger.debug("Cleared %d completed tasks", removed)
        return removed

    def clear_all(self) -> int:
        count = len(self._tasks)
        self._tasks = []
        self._next_id = _INITIAL_ID
        self._changed()
        logger.info("Cleared all tasks (%d)", count)
        return count

    # ---- persistence ----

    def _task_records(self) -> list[dict[str, Any]]:
        return [t.to_record() for t in self._tasks]

    def save(self) -> bool:
        """Write {tasks, currentId, savedAt} as one record. Never raises."""
        if self._store is None:
            logger.warning("Save skipped: no store configured.")
            return False
        try:
            payload = json.dumps(
                {
                    "tasks": self._task_records(),
                    "currentId": self._next_id,
                    "savedAt": self._clock(),
                },
                ensure_ascii=False,
            )
            self._store.set(self._storage_key, payload)
        except Exception:
            logger.exception("Failed to save tasks key=%s", self._storage_key)
            return False

        logger.info("Saved %d tasks key=%s", len(self._tasks), self._storage_key)
        return True

    def load(self) -> bool:
        """
        Replace state with the saved record.

        Missing or malformed records count as "no data" (False) and leave state untouched.
        """
        if self._store is None:
            return False
        try:
            raw = self._store.get(self._storage_key)
            if raw is None:
                logger.info("No saved tasks key=%s", self._storage_key)
                return False
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("saved record must be an object")
            raw_tasks = data.get("tasks") or []
            if not isinstance(raw_tasks, list):
                raise ValueError("saved record 'tasks' must be a list")
            tasks = _tasks_from_records(raw_tasks)
            current_id = int(data.get("currentId") or _INITIAL_ID)
        except Exception:
            logger.exception("Failed to load tasks key=%s", self._storage_key)
            return False

        max_id = max((t.id for t in tasks), default=0)
        self._tasks = tasks
        self._next_id = max(current_id, max_id + 1)
        self._changed()
        logger.info("Loaded %d tasks key=%s next_id=%s", len(tasks), self._storage_key, self._next_id)
        return True

    def export_snapshot(self) -> str:
        """Pretty-printed JSON snapshot {tasks, exportedAt, version}."""
        exported_at = datetime.fromtimestamp(self._clock() / 1000, tz=timezone.utc)
        return json.dumps(
            {
                "tasks": self._task_records(),
                "exportedAt": exported_at.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
                "version": EXPORT_VERSION,
            },
            indent=2,
            ensure_ascii=False,
        )

    def import_snapshot(self, payload: str | bytes | None) -> bool:
        """
        Replace the whole list with the snapshot's tasks.

        The id counter becomes max(imported ids, 0) + 1. On any failure state is untouched.
        """
        try:
            data = json.loads(payload)  # type: ignore[arg-type]
            if not isinstance(data, dict) or not isinstance(data.get("tasks"), list):
                logger.warning("Import rejected: payload has no 'tasks' array.")
                return False
            tasks = _tasks_from_records(data["tasks"])
        except Exception:
            logger.exception("Failed to import tasks.")
            return False

        self._tasks = tasks
        self._next_id = max((t.id for t in tasks), default=0) + 1
        self._changed()
        logger.info("Imported %d tasks next_id=%s", len(tasks), self._next_id)
        return True


def _tasks_from_records(records: list[Any]) -> list[Task]:
    """Decode persisted records; the whole batch is rejected on a bad or repeated id."""
    tasks = [Task.from_record(r) for r in records]
    seen: set[int] = set()
    for task in tasks:
        if task.id in seen:
            raise ValueError(f"duplicate task id {task.id}")
        seen.add(task.id)
    return tasks
