# tests/test_config.py

from __future__ import annotations

import re
import runpy
from pathlib import Path

import pytest

from taskflow import config
from taskflow.cli.bootstrap import create_initial_state, persist_tasks, restore_tasks
from taskflow.config import Settings
from taskflow.storage.kv_store import JsonFileStore, SqliteStore

_VARS = (
    "TASKFLOW_DATA_DIR",
    "TASKFLOW_STORAGE_BACKEND",
    "TASKFLOW_STORAGE_PATH",
    "TASKFLOW_STORAGE_KEY",
    "TASKFLOW_AUTOSAVE",
    "TASKFLOW_SEARCH_CACHE_SIZE",
    "TASKFLOW_STATS_CACHE_TTL_MS",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_settings_defaults(clean_env: pytest.MonkeyPatch) -> None:
    s = Settings.from_env()
    assert s.storage_backend == "json"
    assert s.storage_path == Path(".local/taskflow") / "tasks.json"
    assert s.storage_key == "taskflow-data"
    assert s.autosave is True
    assert (s.search_cache_size, s.stats_cache_ttl_ms) == (100, 100)


def test_settings_from_env(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    clean_env.setenv("TASKFLOW_DATA_DIR", str(tmp_path))
    clean_env.setenv("TASKFLOW_STORAGE_BACKEND", "SQLite")
    clean_env.setenv("TASKFLOW_AUTOSAVE", "off")
    clean_env.setenv("TASKFLOW_SEARCH_CACHE_SIZE", "not-a-number")

    s = Settings.from_env()

    assert s.storage_backend == "sqlite"
    assert s.storage_path == tmp_path / "tasks.sqlite3"
    assert s.autosave is False
    assert s.search_cache_size == 100


def test_unknown_backend_falls_back_to_json(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("TASKFLOW_STORAGE_BACKEND", "redis")
    assert Settings.from_env().storage_backend == "json"


@pytest.mark.parametrize(("backend", "store_type"), [("json", JsonFileStore), ("sqlite", SqliteStore)])
def test_bootstrap_wires_store_and_restores(settings, backend: str, store_type: type) -> None:
    settings.storage_backend = backend
    settings.storage_path = settings.data_dir / f"tasks.{backend}"

    state = create_initial_state(settings=settings)
    assert isinstance(state.store, store_type)
    assert restore_tasks(state) is False

    state.engine.create("persist me")
    state.dirty = True
    assert persist_tasks(state) is True
    assert state.dirty is False

    again = create_initial_state(settings=settings)
    assert restore_tasks(again) is True
    assert [t.text for t in again.engine.tasks] == ["persist me"]


def test_config_example_documents_every_variable() -> None:
    example = Path(__file__).resolve().parents[1] / "config.example.py"
    documented = set(runpy.run_path(str(example))["ENV_VARS"])

    assert documented == set(re.findall(r"TASKFLOW_[A-Z_]+", config.__doc__ or ""))
    assert set(_VARS) <= documented
