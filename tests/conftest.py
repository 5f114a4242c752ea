# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.core.state import AppState
from taskflow.tasks.task_engine import TaskEngine

from .fakes import FixedDateParser, ManualClock, MemoryKVStore


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI layer.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's environment.
    """
    return SimpleNamespace(
        app_name="taskflow-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        storage_backend="json",
        storage_path=tmp_path / "tasks.json",
        storage_key="taskflow-data",
        autosave=True,
        search_cache_size=100,
        stats_cache_ttl_ms=100,
    )


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def kv() -> MemoryKVStore:
    return MemoryKVStore()


@pytest.fixture()
def engine(kv: MemoryKVStore, clock: ManualClock) -> TaskEngine:
    return TaskEngine(kv, clock=clock)


@pytest.fixture()
def state(settings: SimpleNamespace, engine: TaskEngine, kv: MemoryKVStore) -> AppState:
    """AppState wired with the in-memory store and a deterministic date parser."""
    return AppState(
        settings=settings,
        engine=engine,
        store=kv,
        date_parser=FixedDateParser(),
        autosave=True,
    )
