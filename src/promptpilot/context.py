"""Application-scoped object graph.

One AppContext owns every long-lived collaborator (caches, monitor,
services). Build it once at startup and pass it where it is needed; the
HTTP layer keeps it on app.state.
"""

import logging
from dataclasses import dataclass

from promptpilot.config import Settings, settings
from promptpilot.protocols import PersistentStore, RemoteDataSource, StorageProvider
from promptpilot.repositories import (
    InMemoryPersistentStore,
    InMemoryStorageProvider,
    RedisPersistentStore,
)
from promptpilot.services import (
    CacheMaintenance,
    ImageUrlCache,
    ImageUrlResolver,
    PromptFeedService,
    RatingAggregator,
    TimedCache,
)
from promptpilot.utils import Clock, PerformanceMonitor

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Every service and cache of one running application."""

    settings: Settings
    data_source: RemoteDataSource
    store: PersistentStore
    storage: StorageProvider
    timed_cache: TimedCache
    image_cache: ImageUrlCache
    monitor: PerformanceMonitor
    ratings: RatingAggregator
    feed: PromptFeedService
    images: ImageUrlResolver
    maintenance: CacheMaintenance

    @classmethod
    def create(
        cls,
        data_source: RemoteDataSource,
        store: PersistentStore | None = None,
        storage: StorageProvider | None = None,
        app_settings: Settings | None = None,
        clock: Clock | None = None,
        serialize_updates: bool = True,
    ) -> "AppContext":
        """Wire the full object graph around a data source.

        Args:
            data_source: Remote document database.
            store: Backing store for the image cache. Defaults to Redis or
                memory per PERSISTENT_STORE_BACKEND.
            storage: Object storage for image URLs. Defaults to an empty
                in-memory provider.
            app_settings: Settings to use. Defaults to the global settings.
            clock: Epoch-millisecond clock shared by caches and monitor.
            serialize_updates: Serialize rating updates per prompt.

        Returns:
            Configured AppContext
        """
        app_settings = app_settings or settings
        if store is None:
            store = (
                RedisPersistentStore.create()
                if app_settings.uses_redis
                else InMemoryPersistentStore()
            )
        storage = storage or InMemoryStorageProvider()

        timed_cache = TimedCache(clock=clock)
        image_cache = ImageUrlCache.create(
            store,
            ttl_minutes=app_settings.image_cache_ttl_minutes,
            prefix=app_settings.image_cache_prefix,
            clock=clock,
        )
        monitor = PerformanceMonitor(clock=clock)

        return cls(
            settings=app_settings,
            data_source=data_source,
            store=store,
            storage=storage,
            timed_cache=timed_cache,
            image_cache=image_cache,
            monitor=monitor,
            ratings=RatingAggregator(data_source, serialize_updates=serialize_updates),
            feed=PromptFeedService(
                data_source,
                timed_cache,
                monitor,
                ttl_minutes=app_settings.list_cache_ttl_minutes,
                page_size=app_settings.feed_page_size,
                search_limit=app_settings.search_fetch_limit,
            ),
            images=ImageUrlResolver(storage, image_cache, monitor),
            maintenance=CacheMaintenance(
                timed_cache,
                image_cache,
                interval_minutes=app_settings.cache_cleanup_interval_minutes,
            ),
        )

    async def start(self) -> None:
        """Start background cache maintenance."""
        self.maintenance.start()

    async def aclose(self) -> None:
        """Stop background work and release connections."""
        await self.maintenance.stop()
        if isinstance(self.store, RedisPersistentStore):
            await self.store.close()
        logger.info("Application context closed")
