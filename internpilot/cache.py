"""In-process TTL cache for recommendation results."""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable

from internpilot.config import CACHE_TTL
from internpilot.log import get_logger

log = get_logger(__name__)


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class ResultCache:
    """Entries expire ``ttl`` seconds after being set.

    Expired entries are evicted lazily on ``get`` and in bulk at most once per
    ``check_period`` seconds.
    """

    def __init__(
        self,
        ttl: float = CACHE_TTL,
        check_period: float = 120.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.check_period = check_period
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key_for(skills: str, min_stipend: Any, max_stipend: Any) -> str:
        return f"{skills}_{min_stipend}_{max_stipend}"

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.check_period:
            return
        self._last_sweep = now
        expired = [k for k, e in self._entries.items() if e.expires_at <= now]
        for k in expired:
            del self._entries[k]
        if expired:
            log.debug("Evicted %d expired cache entr%s", len(expired), "y" if len(expired) == 1 else "ies")

    def get(self, key: str) -> Any | None:
        now = self._clock()
        with self._lock:
            self._sweep(now)
            entry = self._entries.get(key)
            if entry is None or entry.expires_at <= now:
                self._entries.pop(key, None)
                self.misses += 1
                return None
            self.hits += 1
            return entry.value

    def set(self, key: str, value: Any) -> None:
        now = self._clock()
        with self._lock:
            self._sweep(now)
            self._entries[key] = CacheEntry(value=value, expires_at=now + self.ttl)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


recommendation_cache = ResultCache()
