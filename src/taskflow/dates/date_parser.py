# src/taskflow/dates/date_parser.py

"""
Keyword date extraction for task input.

Recognised phrases (case-insensitive, whole words):
- "today", "tomorrow", weekday names (next occurrence, never today)
- "in N day(s)"
- "next week" (+7 days)

Later rules override earlier ones; every recognised phrase is removed from the text.
Due dates keep the current time of day, like the input was typed "now".
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import date, datetime, timedelta

from ..core.ports import ParsedInput

logger = logging.getLogger(__name__)

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
_DAY_ABBR = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_IN_DAYS_RE = re.compile(r"\bin (\d+) days?\b", re.IGNORECASE)
_NEXT_WEEK_RE = re.compile(r"\bnext week\b", re.IGNORECASE)


def _next_weekday(now: datetime, weekday: int) -> datetime:
    days_ahead = (weekday - now.weekday()) % 7 or 7
    return now + timedelta(days=days_ahead)


def _keyword_rules() -> list[tuple[re.Pattern[str], Callable[[datetime], datetime]]]:
    rules: list[tuple[re.Pattern[str], Callable[[datetime], datetime]]] = [
        (re.compile(r"\btoday\b", re.IGNORECASE), lambda now: now),
        (re.compile(r"\btomorrow\b", re.IGNORECASE), lambda now: now + timedelta(days=1)),
    ]
    for idx, name in enumerate(_WEEKDAYS):
        rules.append(
            (
                re.compile(rf"\b{name}\b", re.IGNORECASE),
                lambda now, wd=idx: _next_weekday(now, wd),
            )
        )
    return rules


_KEYWORD_RULES = _keyword_rules()


def _to_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def _remove(pattern: re.Pattern[str], text: str) -> str:
    return " ".join(pattern.sub("", text, count=1).split())


class KeywordDateParser:
    """DateExtractor implementation backed by a handful of regex rules."""

    def parse(self, text: str, now: datetime | None = None) -> ParsedInput:
        if not text or not text.strip():
            return ParsedInput(clean_text=text, due_date=None)

        now = now or datetime.now().astimezone()
        clean = text
        due: datetime | None = None

        for pattern, resolve in _KEYWORD_RULES:
            if pattern.search(clean):
                due = resolve(now)
                clean = _remove(pattern, clean)
                break

        m = _IN_DAYS_RE.search(clean)
        if m:
            due = now + timedelta(days=int(m.group(1)))
            clean = _remove(_IN_DAYS_RE, clean)

        if _NEXT_WEEK_RE.search(clean):
            due = now + timedelta(days=7)
            clean = _remove(_NEXT_WEEK_RE, clean)

        if due is None:
            return ParsedInput(clean_text=text, due_date=None)

        logger.debug("Parsed due date %s from %r", due.isoformat(), text)
        return ParsedInput(clean_text=clean.strip(), due_date=_to_ms(due))


def _local_date(due_ms: int) -> date:
    return datetime.fromtimestamp(due_ms / 1000).date()


def format_due_date(due_ms: int | None, today: date | None = None) -> str:
    """Short label: "Today", "Tomorrow" or e.g. "Mon, Jan 15"."""
    if due_ms is None:
        return ""
    today = today or date.today()
    due = _local_date(due_ms)
    if due == today:
        return "Today"
    if due == today + timedelta(days=1):
        return "Tomorrow"
    # Locale-independent, unlike strftime %a/%b.
    return f"{_DAY_ABBR[due.weekday()]}, {_MONTH_ABBR[due.month - 1]} {due.day}"


def is_overdue(due_ms: int | None, today: date | None = None) -> bool:
    """Compares calendar days: a task due earlier today is not overdue."""
    if due_ms is None:
        return False
    return _local_date(due_ms) < (today or date.today())
