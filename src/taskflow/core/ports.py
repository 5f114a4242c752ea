# src/taskflow/core/ports.py

"""
Ports (interfaces) used by the core.

The engine depends on Protocols instead of concrete implementations.
This keeps the storage medium and the date extractor swappable and makes testing easier.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


class KeyValueStore(Protocol):
    """
    Durable key-value store holding whole serialized records.

    Implementations raise on I/O failure; callers decide how to report it.
    """

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...


@dataclass(frozen=True, slots=True)
class ParsedInput:
    clean_text: str
    due_date: int | None  # epoch ms


class DateExtractor(Protocol):
    """Turns raw user input into clean task text plus an optional due date."""

    def parse(self, text: str, now: datetime | None = None) -> ParsedInput: ...
