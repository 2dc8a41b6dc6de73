"""PromptPilot core - cached prompt feeds, ratings and image URLs.

This package provides a layered architecture for the data layer of a
prompt-sharing application:

Layers:
    - protocols: Interface contracts (RemoteDataSource, PersistentStore, StorageProvider)
    - repositories: Data access implementations (in-memory, Redis)
    - services: Caches, rating aggregation, feeds and image resolution
    - handlers: HTTP endpoint handlers
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)
    - utils: Rate limiting and instrumentation helpers

Usage:
    ```python
    from promptpilot import AppContext
    from promptpilot.repositories import InMemoryDataSource

    context = AppContext.create(InMemoryDataSource())
    aggregate = await context.ratings.rate_prompt("user-1", "prompt-1", 5)
    prompts = await context.feed.fetch_latest_prompts()
    ```

For HTTP API:
    ```python
    from promptpilot.api.app import app
    ```
"""

from promptpilot.config import get_redis_client, settings
from promptpilot.context import AppContext
from promptpilot.entities import CacheEntry, Prompt, RatingAggregate, UserRating
from promptpilot.errors import (
    MissingIndexError,
    NotFoundError,
    PromptPilotError,
    RemoteError,
    ValidationError,
)
from promptpilot.protocols import PersistentStore, RemoteDataSource, StorageProvider
from promptpilot.services import (
    CacheMaintenance,
    ImageUrlCache,
    ImageUrlResolver,
    PersistentKeyedCache,
    PromptFeedService,
    RatingAggregator,
    TimedCache,
)
from promptpilot.utils import PerformanceMonitor, batch_process, debounce, delay, memoize, throttle

__all__ = [
    # Configuration
    "settings",
    "get_redis_client",
    "AppContext",
    # Errors
    "PromptPilotError",
    "ValidationError",
    "NotFoundError",
    "RemoteError",
    "MissingIndexError",
    # Protocols (interfaces)
    "RemoteDataSource",
    "PersistentStore",
    "StorageProvider",
    # Services (business logic)
    "TimedCache",
    "PersistentKeyedCache",
    "ImageUrlCache",
    "RatingAggregator",
    "PromptFeedService",
    "ImageUrlResolver",
    "CacheMaintenance",
    # Utilities
    "PerformanceMonitor",
    "debounce",
    "throttle",
    "delay",
    "memoize",
    "batch_process",
    # Entities (domain models)
    "CacheEntry",
    "Prompt",
    "RatingAggregate",
    "UserRating",
]
