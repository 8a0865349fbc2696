"""In-memory cache of converted inline payloads."""

from __future__ import annotations

from collections import OrderedDict
from typing import Any

from printprep.constants import DEFAULT_CACHE_MAX_ENTRIES


class PayloadCache:
    """LRU map from source key to inline payload.

    Only successful conversions are stored, so a failed image is retried
    on the next document generation.
    """

    def __init__(self, max_entries: int = DEFAULT_CACHE_MAX_ENTRIES) -> None:
        self.max_entries = max_entries
        self._entries: OrderedDict[str, str] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> str | None:
        payload = self._entries.get(key)
        if payload is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return payload

    def set(self, key: str, payload: str) -> None:
        if self.max_entries <= 0:
            return
        self._entries[key] = payload
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def stats(self) -> dict[str, Any]:
        """Return cache size, hit/miss counters and cached keys."""
        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "keys": list(self._entries.keys()),
        }
