"""Persisted key/value cache with expiry, and its lenient image-URL wrapper.

Entries are JSON objects stored under ``<prefix><key>`` in a
PersistentStore:

    {"value": <json>, "storedAt": <epoch ms>, "expiresAt": <epoch ms>}
"""

import json
import logging
from typing import Any

from promptpilot.config import settings
from promptpilot.entities import CacheEntry
from promptpilot.protocols import PersistentStore
from promptpilot.utils.clock import Clock, now_millis

logger = logging.getLogger(__name__)


class PersistentKeyedCache:
    """Strict persisted cache: store failures propagate to the caller.

    Every set() awaits the store write before returning, so an entry is
    durable as soon as the call completes.

    Example:
        ```python
        cache = PersistentKeyedCache(store, prefix="image_cache_", ttl_minutes=1440)
        await cache.set("avatars/u1.png", "https://...")
        url = await cache.get("avatars/u1.png")
        removed = await cache.clear_expired()
        ```
    """

    def __init__(
        self,
        store: PersistentStore,
        prefix: str,
        ttl_minutes: float,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            store: Backing key/value store.
            prefix: Namespace prepended to every key; must be non-empty.
            ttl_minutes: Lifetime of each entry; must be positive.
            clock: Epoch-millisecond clock. Defaults to wall-clock time.
        """
        if not prefix:
            raise ValueError("prefix must be non-empty")
        if ttl_minutes <= 0:
            raise ValueError("ttl_minutes must be positive")

        self._store = store
        self._prefix = prefix
        self._ttl_minutes = ttl_minutes
        self._clock = clock or now_millis

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def ttl_minutes(self) -> float:
        return self._ttl_minutes

    async def set(self, key: str, value: Any) -> None:
        """Persist value under key with a fresh expiry."""
        entry = CacheEntry.create(value, self._clock(), self._ttl_minutes)
        await self._store.set_item(self._prefix + key, _encode(entry))

    async def get(self, key: str) -> Any | None:
        """Get a live value, or None when absent, expired or undecodable.

        Expired and undecodable entries are removed from the store.
        """
        store_key = self._prefix + key
        raw = await self._store.get_item(store_key)
        if raw is None:
            return None

        entry = self._decode_or_none(store_key, raw)
        if entry is None:
            await self._store.remove_item(store_key)
            return None

        if entry.is_expired(self._clock()):
            await self._store.remove_item(store_key)
            return None

        return entry.value

    async def remove(self, key: str) -> None:
        await self._store.remove_item(self._prefix + key)

    async def keys(self) -> list[str]:
        """List the keys this cache owns, without the prefix."""
        return [key[len(self._prefix) :] for key in await self._owned_store_keys()]

    async def clear_expired(self) -> int:
        """Remove every expired or undecodable entry under the prefix.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        removed = 0
        for store_key in await self._owned_store_keys():
            raw = await self._store.get_item(store_key)
            if raw is None:
                continue
            entry = self._decode_or_none(store_key, raw)
            if entry is None or entry.is_expired(now):
                await self._store.remove_item(store_key)
                removed += 1
        return removed

    async def clear(self) -> int:
        """Remove every entry under the prefix, live or not."""
        store_keys = await self._owned_store_keys()
        for store_key in store_keys:
            await self._store.remove_item(store_key)
        return len(store_keys)

    async def _owned_store_keys(self) -> list[str]:
        return [key for key in await self._store.get_all_keys() if key.startswith(self._prefix)]

    @staticmethod
    def _decode_or_none(store_key: str, raw: str) -> CacheEntry | None:
        try:
            return _decode(raw)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Dropping undecodable cache entry '{store_key}': {e}")
            return None


def _encode(entry: CacheEntry) -> str:
    return json.dumps(
        {
            "value": entry.value,
            "storedAt": entry.stored_at_ms,
            "expiresAt": entry.expires_at_ms,
        }
    )


def _decode(raw: str) -> CacheEntry:
    data = json.loads(raw)
    return CacheEntry(
        value=data["value"],
        stored_at_ms=int(data["storedAt"]),
        expires_at_ms=int(data["expiresAt"]),
    )


class ImageUrlCache:
    """Fail-open cache of resolved image download URLs.

    A broken cache must never break image display, so every failure of the
    underlying store is logged and downgraded: reads become misses, writes
    become no-ops and sweeps report 0.
    """

    def __init__(self, cache: PersistentKeyedCache) -> None:
        self._cache = cache

    @classmethod
    def create(
        cls,
        store: PersistentStore,
        ttl_minutes: float | None = None,
        prefix: str | None = None,
        clock: Clock | None = None,
    ) -> "ImageUrlCache":
        """Build an image cache over store using the configured TTL and prefix."""
        return cls(
            PersistentKeyedCache(
                store,
                prefix=prefix or settings.image_cache_prefix,
                ttl_minutes=ttl_minutes or settings.image_cache_ttl_minutes,
                clock=clock,
            )
        )

    @property
    def cache(self) -> PersistentKeyedCache:
        return self._cache

    async def cache_image(self, source_key: str, resolved_value: str) -> None:
        if not source_key or not resolved_value:
            return
        try:
            await self._cache.set(source_key, resolved_value)
        except Exception as e:
            logger.warning(f"Failed to cache image URL for '{source_key}': {e}")

    async def get_cached_image(self, source_key: str) -> str | None:
        if not source_key:
            return None
        try:
            value = await self._cache.get(source_key)
        except Exception as e:
            logger.warning(f"Failed to read cached image URL for '{source_key}': {e}")
            return None
        return value if isinstance(value, str) else None

    async def clear_expired_cache(self) -> int:
        try:
            return await self._cache.clear_expired()
        except Exception as e:
            logger.warning(f"Failed to clear expired image cache entries: {e}")
            return 0
