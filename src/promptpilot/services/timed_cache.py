"""In-memory time-expiring cache for list and search results."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from promptpilot.entities import CacheEntry
from promptpilot.utils.clock import Clock, now_millis

logger = logging.getLogger(__name__)


class TimedCache:
    """Key/value cache where every entry carries its own TTL.

    Expired entries are invisible to get()/has() and are removed lazily on
    access or eagerly by cleanup(). A stored None cannot be told apart
    from a miss.

    Example:
        ```python
        cache = TimedCache()
        cache.set("latest_prompts", prompts, ttl_minutes=5)
        prompts = cache.get("latest_prompts")

        prompts = await cache.get_or_load("latest_prompts", fetch_latest, 5)
        ```
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or now_millis
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def set(self, key: str, value: Any, ttl_minutes: float) -> None:
        """Store value under key, replacing any previous entry.

        Raises:
            ValueError: If ttl_minutes is not positive.
        """
        self._entries[key] = CacheEntry.create(value, self._clock(), ttl_minutes)

    def get(self, key: str) -> Any | None:
        """Get a live value, or None on miss or expiry."""
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._misses += 1
            logger.debug(f"Cache entry '{key}' expired")
            return None

        self._hits += 1
        return entry.value

    def has(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return False
        return True

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Remove every expired entry.

        Returns:
            Number of entries evicted
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Evicted {len(expired)} expired cache entries")
        return len(expired)

    async def get_or_load(
        self,
        key: str,
        loader: Callable[[], Awaitable[Any]],
        ttl_minutes: float,
    ) -> Any:
        """Return the cached value, or await loader() and cache its result.

        Loader exceptions propagate and nothing is stored. Concurrent misses
        on the same key each call the loader.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = await loader()
        self.set(key, value, ttl_minutes)
        return value

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict[str, int]:
        """Get cache statistics."""
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
        }
