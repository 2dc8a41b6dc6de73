"""Periodic expiry sweep over the in-memory and persistent caches."""

import asyncio
import contextlib
import logging

from promptpilot.config import settings
from promptpilot.services.keyed_cache import ImageUrlCache
from promptpilot.services.timed_cache import TimedCache

logger = logging.getLogger(__name__)


class CacheMaintenance:
    """Runs cache cleanup off the request path on a fixed interval."""

    def __init__(
        self,
        timed_cache: TimedCache,
        image_cache: ImageUrlCache,
        interval_minutes: float | None = None,
    ) -> None:
        self._timed_cache = timed_cache
        self._image_cache = image_cache
        self._interval_minutes = interval_minutes or settings.cache_cleanup_interval_minutes
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> dict[str, int]:
        """Sweep both caches once.

        Returns:
            Entries removed per cache
        """
        timed_removed = self._timed_cache.cleanup()
        image_removed = await self._image_cache.clear_expired_cache()
        logger.info(
            f"Cache sweep removed {timed_removed} list entries and {image_removed} image entries"
        )
        return {"timed_cache": timed_removed, "image_cache": image_removed}

    def start(self) -> None:
        """Start the sweep loop in a background task; a no-op if running."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Cache maintenance started (every {self._interval_minutes} min)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Cache maintenance stopped")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_minutes * 60)
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Cache sweep failed: {e}")
