"""Cache entry domain entity."""

from dataclasses import dataclass
from typing import Any

MILLIS_PER_MINUTE = 60_000


@dataclass(frozen=True)
class CacheEntry:
    """Domain entity for a value held by one of the caches.

    Owned exclusively by the cache that created it. Persistent caches
    serialize it themselves; the entity carries no serialization logic.

    Attributes:
        value: The cached value
        stored_at_ms: Epoch milliseconds when the entry was written
        expires_at_ms: Epoch milliseconds after which the entry is stale
    """

    value: Any
    stored_at_ms: int
    expires_at_ms: int

    def __post_init__(self) -> None:
        if self.expires_at_ms <= self.stored_at_ms:
            raise ValueError("expires_at_ms must be later than stored_at_ms")

    @classmethod
    def create(cls, value: Any, now_ms: int, ttl_minutes: float) -> "CacheEntry":
        """Build an entry expiring ttl_minutes after now_ms.

        Any positive TTL lives at least one millisecond.

        Raises:
            ValueError: If ttl_minutes is not positive.
        """
        if ttl_minutes <= 0:
            raise ValueError(f"ttl_minutes must be positive, got {ttl_minutes}")
        ttl_ms = max(1, int(ttl_minutes * MILLIS_PER_MINUTE))
        return cls(value=value, stored_at_ms=now_ms, expires_at_ms=now_ms + ttl_ms)

    def is_expired(self, now_ms: int) -> bool:
        """An entry is stale once now is strictly past its expiry."""
        return now_ms > self.expires_at_ms
