# src/taskflow/tasks/task_search.py

"""
Search helpers for the task engine.

A task matches a query when its lower-cased text contains the query as a
substring, or contains the query's characters in order with anything in
between (subsequence). Substring hits are a subset of subsequence hits; the
substring check is kept as the fast path.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Hashable
from typing import Generic, TypeVar

V = TypeVar("V")

DEFAULT_SEARCH_CACHE_SIZE = 100


def normalize_query(query: str | None) -> str:
    return (query or "").strip().lower()


def is_subsequence(needle: str, haystack: str) -> bool:
    """True if every char of `needle` appears in `haystack` in the same order."""
    if not needle:
        return True
    i = 0
    n = len(needle)
    for ch in haystack:
        if ch == needle[i]:
            i += 1
            if i == n:
                return True
    return False


def matches_query(text: str, normalized_query: str) -> bool:
    """`normalized_query` must already be trimmed and lower-cased."""
    lowered = text.lower()
    if normalized_query in lowered:
        return True
    return is_subsequence(normalized_query, lowered)


class SearchCache(Generic[V]):
    """
    Bounded cache with oldest-inserted-first eviction.

    Lookups do not refresh an entry's position (this is not an LRU).
    """

    def __init__(self, max_entries: int = DEFAULT_SEARCH_CACHE_SIZE) -> None:
        self._max_entries = max(1, int(max_entries))
        self._entries: OrderedDict[Hashable, V] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def get(self, key: Hashable) -> V | None:
        return self._entries.get(key)

    def put(self, key: Hashable, value: V) -> None:
        if key in self._entries:
            self._entries[key] = value
            return
        while len(self._entries) >= self._max_entries:
            self._entries.popitem(last=False)
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()
