"""Image URL resolution backed by the persistent image cache."""

import logging
import re
from urllib.parse import unquote

from promptpilot.config import settings
from promptpilot.errors import NotFoundError, RemoteError
from promptpilot.protocols import StorageProvider
from promptpilot.services.keyed_cache import ImageUrlCache
from promptpilot.utils.performance import PerformanceMonitor
from promptpilot.utils.rate_limit import batch_process

logger = logging.getLogger(__name__)

LEGACY_PROFILE_PREFIX = "profile_pics/"
PROFILE_PREFIX = "profile_images/"

_DOWNLOAD_URL_PATH = re.compile(r"/o/([^?]+)")


class ImageUrlResolver:
    """Resolve storage paths to download URLs, cache first.

    Profile pictures moved from profile_pics/ to profile_images/; a
    profile_pics/ path is tried under its new location before the
    original one. Resolved URLs are cached under the requested path.
    """

    def __init__(
        self,
        storage: StorageProvider,
        image_cache: ImageUrlCache,
        monitor: PerformanceMonitor | None = None,
    ) -> None:
        self._storage = storage
        self._image_cache = image_cache
        self._monitor = monitor or PerformanceMonitor()

    async def get_image_url(self, path: str, refresh: bool = False) -> str:
        """Resolve path to a download URL.

        Args:
            path: Storage path of the image.
            refresh: Skip the cache read and resolve from storage.

        Returns:
            The download URL

        Raises:
            NotFoundError: No candidate path resolves
        """
        if not refresh:
            cached = await self._image_cache.get_cached_image(path)
            if cached is not None:
                return cached

        with self._monitor.measure("get_image_url"):
            for candidate in candidate_paths(path):
                try:
                    url = await self._storage.get_download_url(candidate)
                except RemoteError as e:
                    logger.warning(f"Image not found at '{candidate}': {e}")
                    continue
                await self._image_cache.cache_image(path, url)
                return url

        raise NotFoundError(f"Image not found at '{path}'")

    async def get_image_url_or_placeholder(self, path: str, placeholder: str) -> str:
        """Like get_image_url, but any failure yields placeholder."""
        if not path:
            return placeholder
        try:
            return await self.get_image_url(path)
        except (NotFoundError, RemoteError) as e:
            logger.warning(f"Using placeholder for '{path}': {e}")
            return placeholder

    async def prefetch(
        self, paths: list[str], placeholder: str, batch_size: int | None = None
    ) -> dict[str, str]:
        """Resolve many paths in bounded batches, warming the cache.

        Returns:
            Mapping of each distinct path to its URL or placeholder
        """
        unique = list(dict.fromkeys(p for p in paths if p))
        urls = await batch_process(
            unique,
            lambda p: self.get_image_url_or_placeholder(p, placeholder),
            batch_size or settings.batch_size,
        )
        return dict(zip(unique, urls))


def candidate_paths(path: str) -> list[str]:
    """Storage paths to try for path, in priority order."""
    if path.startswith(LEGACY_PROFILE_PREFIX):
        return [PROFILE_PREFIX + path[len(LEGACY_PROFILE_PREFIX) :], path]
    return [path]


def extract_storage_path(url: str) -> str | None:
    """Recover the storage path from a download URL, gs:// URL or plain path.

    Returns None for empty input and for http(s) URLs that are not
    storage download URLs.
    """
    if not url:
        return None

    if "firebasestorage.googleapis.com" in url:
        match = _DOWNLOAD_URL_PATH.search(url)
        if match:
            return unquote(match.group(1))

    if url.startswith("gs://"):
        parts = url.split("/")
        if len(parts) >= 4:
            return "/".join(parts[3:])
        return None

    if not url.startswith("http"):
        return url

    return None
