# src/taskflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store, the date parser and the engine into AppState,
- restores the last saved task list.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import KeyValueStore
from ..core.state import AppState
from ..dates.date_parser import KeywordDateParser
from ..storage.kv_store import JsonFileStore, SqliteStore
from ..tasks.task_engine import TaskEngine

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.storage_path.parent.mkdir(parents=True, exist_ok=True)


def create_store(settings) -> KeyValueStore:
    backend = str(getattr(settings, "storage_backend", "json")).lower()
    if backend == "sqlite":
        return SqliteStore(settings.storage_path)
    return JsonFileStore(settings.storage_path)


def create_initial_state(*, settings=None, store: KeyValueStore | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings (and the store) injectable makes the app easier to test.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if store is None:
        store = create_store(settings)

    engine = TaskEngine(
        store,
        storage_key=settings.storage_key,
        search_cache_size=settings.search_cache_size,
        stats_ttl_ms=settings.stats_cache_ttl_ms,
    )
    return AppState(
        settings=settings,
        engine=engine,
        store=store,
        date_parser=KeywordDateParser(),
        autosave=bool(getattr(settings, "autosave", True)),
    )


def restore_tasks(state: AppState) -> bool:
    """Load the saved list; a missing or broken record just means an empty list."""
    ok = state.engine.load()
    if ok:
        logger.info("Restored %d tasks.", len(state.engine))
    state.dirty = False
    return ok


def persist_tasks(state: AppState) -> bool:
    ok = state.engine.save()
    if ok:
        state.dirty = False
    return ok
