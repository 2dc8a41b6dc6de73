"""Redis implementation of PersistentStore.

Each cache entry is a plain Redis string. A write returns only after the
server has acknowledged it, so an entry reported as stored is never held
in client-side buffers.
"""

import redis.asyncio as aioredis

from promptpilot.config import get_redis_client


class RedisPersistentStore:
    """Redis-backed PersistentStore.

    This class satisfies the PersistentStore protocol through structural
    typing - no explicit inheritance needed.

    Keys are stored under an optional namespace so several applications
    can share one Redis database; get_all_keys() returns them without it.
    """

    def __init__(
        self,
        redis_client: aioredis.Redis | None = None,
        namespace: str = "promptpilot:",
    ) -> None:
        """Initialize the Redis store.

        Args:
            redis_client: asyncio Redis client with decode_responses=True.
                If None, creates default from settings.
            namespace: Prefix applied to every key in Redis.
        """
        self._client = redis_client or get_redis_client()
        self._namespace = namespace

    @classmethod
    def create(cls, namespace: str = "promptpilot:") -> "RedisPersistentStore":
        """Factory method to create RedisPersistentStore with defaults.

        Args:
            namespace: Prefix applied to every key in Redis.

        Returns:
            Configured RedisPersistentStore
        """
        return cls(namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self._namespace}{key}"

    async def get_item(self, key: str) -> str | None:
        value = await self._client.get(self._key(key))
        if isinstance(value, bytes):
            return value.decode()
        return value

    async def set_item(self, key: str, value: str) -> None:
        await self._client.set(self._key(key), value)

    async def remove_item(self, key: str) -> None:
        await self._client.delete(self._key(key))

    async def get_all_keys(self) -> list[str]:
        keys = []
        async for key in self._client.scan_iter(match=f"{self._namespace}*"):
            if isinstance(key, bytes):
                key = key.decode()
            keys.append(key[len(self._namespace):])
        return keys

    async def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(await self._client.ping())
        except Exception:
            return False

    async def close(self) -> None:
        """Close the client connection pool."""
        await self._client.aclose()

    @property
    def client(self) -> aioredis.Redis:
        """Get the Redis client."""
        return self._client
