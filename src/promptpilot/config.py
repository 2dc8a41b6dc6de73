import os
from dataclasses import dataclass
from functools import lru_cache

import redis.asyncio as aioredis
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")

    # Persistent store backing the image cache: "redis" or "memory"
    persistent_store_backend: str = os.getenv("PERSISTENT_STORE_BACKEND", "redis")

    # Caches
    list_cache_ttl_minutes: float = float(os.getenv("LIST_CACHE_TTL_MINUTES", "5"))
    image_cache_ttl_minutes: float = float(os.getenv("IMAGE_CACHE_TTL_MINUTES", "1440"))  # 24 hours
    image_cache_prefix: str = os.getenv("IMAGE_CACHE_PREFIX", "image_cache_")
    cache_cleanup_interval_minutes: float = float(
        os.getenv("CACHE_CLEANUP_INTERVAL_MINUTES", "15")
    )

    # Feeds and search
    search_debounce_ms: int = int(os.getenv("SEARCH_DEBOUNCE_MS", "400"))
    search_fetch_limit: int = int(os.getenv("SEARCH_FETCH_LIMIT", "50"))
    feed_page_size: int = int(os.getenv("FEED_PAGE_SIZE", "20"))
    batch_size: int = int(os.getenv("BATCH_SIZE", "10"))

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "true").lower() == "true"

    @property
    def uses_redis(self) -> bool:
        """Check if the persistent store is Redis-backed."""
        return self.persistent_store_backend == "redis"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.persistent_store_backend not in ("redis", "memory"):
            raise ValueError(
                "PERSISTENT_STORE_BACKEND must be 'redis' or 'memory', "
                f"got {self.persistent_store_backend!r}"
            )

        for name in (
            "list_cache_ttl_minutes",
            "image_cache_ttl_minutes",
            "cache_cleanup_interval_minutes",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.upper()} must be positive")

        if self.search_fetch_limit < 1 or self.feed_page_size < 1 or self.batch_size < 1:
            raise ValueError("SEARCH_FETCH_LIMIT, FEED_PAGE_SIZE and BATCH_SIZE must be >= 1")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> aioredis.Redis:
    """Create an asyncio Redis client instance."""
    return aioredis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=True,
    )
