"""In-memory record of executed search terms, used to seed suggestions."""
from __future__ import annotations

import threading
from collections import Counter, OrderedDict
from typing import List


class QueryLog:
    def __init__(self, max_entries: int = 1000) -> None:
        self.max_entries = max_entries
        self._counts: Counter[str] = Counter()
        # Insertion order doubles as recency: re-recorded terms move to the end.
        self._recent: "OrderedDict[str, str]" = OrderedDict()
        self._lock = threading.Lock()

    def record(self, term: str) -> None:
        display = " ".join((term or "").split())
        if not display:
            return
        key = display.lower()
        with self._lock:
            self._counts[key] += 1
            self._recent.pop(key, None)
            self._recent[key] = display
            while len(self._recent) > self.max_entries:
                oldest, _ = self._recent.popitem(last=False)
                del self._counts[oldest]

    def recent(self, limit: int = 10) -> List[str]:
        """Distinct terms, most recently searched first."""
        with self._lock:
            return list(reversed(self._recent.values()))[:limit]

    def matching(self, fragment: str, limit: int = 15) -> List[str]:
        """Terms containing ``fragment``, most searched first, then most recent."""
        needle = (fragment or "").lower().strip()
        with self._lock:
            order = {key: idx for idx, key in enumerate(reversed(self._recent))}
            keys = [key for key in self._recent if needle in key]
            keys.sort(key=lambda key: (-self._counts[key], order[key]))
            return [self._recent[key] for key in keys[:limit]]

    def __len__(self) -> int:
        with self._lock:
            return len(self._recent)
