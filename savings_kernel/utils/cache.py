"""
TTLCache -- small clock-driven memo cache.

Responsibility:
    Memoise read-mostly lookups (resolved scopes) for a bounded time.
    Expiry is measured with the injected Clock, so tests control it exactly.

Architecture position:
    Kernel > Utils.  Injected into selectors; never a module-level global.

Non-goals:
    - No cross-process invalidation.  Each process owns its cache; writers
      in the same process call ``invalidate``/``invalidate_prefix``.
    - No size-based eviction; entries are keyed per actor and bounded by
      the number of users in a company.
"""

from collections.abc import Callable, Hashable
from datetime import datetime, timedelta
from threading import Lock
from typing import Any

from savings_kernel.domain.clock import Clock, SystemClock
from savings_kernel.logging_config import get_logger

logger = get_logger("utils.cache")


class TTLCache:
    """
    Mapping of key -> value with per-entry expiry.

    Keys are tuples; ``invalidate_prefix`` drops every key whose leading
    elements match, e.g. ``("scope", company_id)`` clears a whole company.
    """

    def __init__(self, ttl_seconds: float, clock: Clock | None = None):
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or SystemClock()
        self._entries: dict[tuple, tuple[datetime, Any]] = {}
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    @property
    def enabled(self) -> bool:
        return self._ttl > timedelta(0)

    def get(self, key: tuple) -> Any | None:
        if not self.enabled:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            expires_at, value = entry
            if self._clock.now() >= expires_at:
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return value

    def set(self, key: tuple, value: Any) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._entries[key] = (self._clock.now() + self._ttl, value)

    def get_or_load(self, key: tuple, loader: Callable[[], Any]) -> Any:
        """Cached value for ``key``, calling ``loader`` on a miss."""
        value = self.get(key)
        if value is None:
            value = loader()
            self.set(key, value)
        return value

    def invalidate(self, key: tuple) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_prefix(self, *prefix: Hashable) -> int:
        """Drop every entry whose key starts with ``prefix``; returns the count."""
        size = len(prefix)
        with self._lock:
            doomed = [key for key in self._entries if key[:size] == prefix]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug(
                "cache_invalidated",
                extra={"prefix": [str(p) for p in prefix], "entries": len(doomed)},
            )
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
