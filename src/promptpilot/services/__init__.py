"""Service layer for business logic.

This layer contains the caches, the rating aggregator and the feed and
image services built on them. Services depend on protocols (interfaces),
not concrete implementations, making them testable and flexible.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)

Usage:
    ```python
    from promptpilot.services import RatingAggregator, TimedCache

    ratings = RatingAggregator.create(data_source)
    cache = TimedCache()
    ```
"""

from .image_service import ImageUrlResolver, extract_storage_path
from .keyed_cache import ImageUrlCache, PersistentKeyedCache
from .maintenance import CacheMaintenance
from .prompt_feed import PromptFeedService, to_prompt
from .rating_service import RatingAggregator
from .timed_cache import TimedCache

__all__ = [
    "CacheMaintenance",
    "ImageUrlCache",
    "ImageUrlResolver",
    "PersistentKeyedCache",
    "PromptFeedService",
    "RatingAggregator",
    "TimedCache",
    "extract_storage_path",
    "to_prompt",
]
