# src/taskflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Nothing is read from disk at import time except the local .env.

Variables:
- TASKFLOW_APP_NAME            display name (default: taskflow)
- TASKFLOW_LOG_LEVEL           console log level (default: INFO); the log file always gets DEBUG
- TASKFLOW_DATA_DIR            local data directory (default: .local/taskflow)
- TASKFLOW_STORAGE_BACKEND     json | sqlite (default: json)
- TASKFLOW_STORAGE_PATH        store file (default: <data_dir>/tasks.json or tasks.sqlite3)
- TASKFLOW_STORAGE_KEY         record key inside the store (default: taskflow-data)
- TASKFLOW_AUTOSAVE            save after every change (default: true)
- TASKFLOW_SEARCH_CACHE_SIZE   max cached search queries (default: 100)
- TASKFLOW_STATS_CACHE_TTL_MS  how long stats() may be reused, in ms (default: 100)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKFLOW"

STORAGE_BACKENDS = ("json", "sqlite")

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    data_dir: Path
    storage_backend: str
    storage_path: Path
    storage_key: str
    autosave: bool

    # ---- Engine tuning ----
    search_cache_size: int
    stats_cache_ttl_ms: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskflow").strip() or "taskflow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))

        storage_backend = _env(_k("STORAGE_BACKEND"), "json").strip().lower()
        if storage_backend not in STORAGE_BACKENDS:
            storage_backend = "json"
        default_file = "tasks.sqlite3" if storage_backend == "sqlite" else "tasks.json"
        storage_path = _env_path(_k("STORAGE_PATH"), data_dir / default_file)
        storage_key = _env(_k("STORAGE_KEY"), "taskflow-data").strip() or "taskflow-data"
        autosave = _env_bool(_k("AUTOSAVE"), True)

        search_cache_size = max(1, _env_int(_k("SEARCH_CACHE_SIZE"), 100))
        stats_cache_ttl_ms = max(0, _env_int(_k("STATS_CACHE_TTL_MS"), 100))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            storage_backend=storage_backend,
            storage_path=storage_path,
            storage_key=storage_key,
            autosave=autosave,
            search_cache_size=search_cache_size,
            stats_cache_ttl_ms=stats_cache_ttl_ms,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
