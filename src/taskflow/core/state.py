# src/taskflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..tasks.task_engine import TaskEngine
from .ports import DateExtractor, KeyValueStore


@dataclass
class AppState:
    # Settings object (config.Settings or a test SimpleNamespace).
    settings: object

    engine: TaskEngine
    store: KeyValueStore
    date_parser: DateExtractor

    autosave: bool = True
    dirty: bool = False  # unsaved mutations since the last save
