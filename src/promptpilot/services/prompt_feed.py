"""Cached prompt feeds and search.

Every fetch consults the TimedCache under a named key first and only
queries the remote data source on a miss, storing the converted result.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from promptpilot.config import settings
from promptpilot.entities import Prompt
from promptpilot.protocols import QueryFilter, RemoteDataSource, SortOrder
from promptpilot.services.timed_cache import TimedCache
from promptpilot.utils.performance import PerformanceMonitor
from promptpilot.utils.rate_limit import debounce

logger = logging.getLogger(__name__)

PROMPTS = "prompts"

LATEST_KEY = "latest_prompts"
POPULAR_KEY = "popular_prompts"
TOP_RATED_KEY = "top_rated_prompts"
FEED_KEYS = (LATEST_KEY, POPULAR_KEY, TOP_RATED_KEY)

MAX_RECENT_SEARCHES = 5


def search_cache_key(query: str) -> str:
    return f"search_{query.strip().lower()}"


class PromptFeedService:
    """Latest, popular and top-rated feeds plus client-side search.

    Example:
        ```python
        feed = PromptFeedService(data_source, TimedCache(), PerformanceMonitor())
        prompts = await feed.fetch_latest_prompts()
        prompts = await feed.fetch_latest_prompts(use_cache=False)  # pull-to-refresh
        results = await feed.search_prompts("marketing")
        ```
    """

    def __init__(
        self,
        data_source: RemoteDataSource,
        cache: TimedCache,
        monitor: PerformanceMonitor | None = None,
        ttl_minutes: float | None = None,
        page_size: int | None = None,
        search_limit: int | None = None,
    ) -> None:
        """Initialize the feed service.

        Args:
            data_source: Remote document database holding prompts.
            cache: Shared in-memory cache for feed and search results.
            monitor: Latency recorder for remote fetches.
            ttl_minutes: Lifetime of cached results. Defaults to settings.
            page_size: Prompts per feed. Defaults to settings.
            search_limit: Prompts fetched per search. Defaults to settings.
        """
        self._source = data_source
        self._cache = cache
        self._monitor = monitor or PerformanceMonitor()
        self._ttl_minutes = ttl_minutes or settings.list_cache_ttl_minutes
        self._page_size = page_size or settings.feed_page_size
        self._search_limit = search_limit or settings.search_fetch_limit
        self._recent_searches: list[str] = []

    async def fetch_latest_prompts(self, use_cache: bool = True) -> list[Prompt]:
        return await self._fetch_feed(LATEST_KEY, "createdAt", use_cache)

    async def fetch_popular_prompts(self, use_cache: bool = True) -> list[Prompt]:
        return await self._fetch_feed(POPULAR_KEY, "likesCount", use_cache)

    async def fetch_top_rated_prompts(self, use_cache: bool = True) -> list[Prompt]:
        return await self._fetch_feed(TOP_RATED_KEY, "averageRating", use_cache)

    async def search_prompts(self, query: str, use_cache: bool = True) -> list[Prompt]:
        """Search prompts by title, content, category or tag.

        The remote data source has no full-text index, so a bounded batch
        of prompts is fetched and filtered locally.

        Args:
            query: Case-insensitive search term. Blank returns [] without
                touching the cache or the data source.
            use_cache: Read cached results when available.

        Returns:
            Matching prompts
        """
        term = query.strip()
        if not term:
            return []

        key = search_cache_key(term)
        if use_cache:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit for '{key}'")
                return list(cached)

        with self._monitor.measure("search_prompts"):
            records = await self._source.query(PROMPTS, limit=self._search_limit)

        results = [p for p in (to_prompt(r) for r in records) if p.matches(term)]
        logger.debug(f"Search '{term}': {len(results)} of {len(records)} prompts matched")

        self._cache.set(key, tuple(results), self._ttl_minutes)
        self._remember_search(term)
        return results

    def debounced_search(
        self,
        on_results: Callable[[list[Prompt]], Any],
        on_error: Callable[[Exception], Any] | None = None,
        wait_ms: int | None = None,
    ) -> Callable[[str], None]:
        """Build a search-as-you-type callable.

        Only the last query of a burst is searched; its results go to
        on_results and failures to on_error (or the log when on_error is
        None). Must be called while an event loop is running.
        """

        async def run(query: str) -> None:
            try:
                results = await self.search_prompts(query)
            except Exception as e:
                if on_error is None:
                    raise
                on_error(e)
                return
            on_results(results)

        return debounce(run, wait_ms or settings.search_debounce_ms)

    @property
    def recent_searches(self) -> list[str]:
        """Most recent distinct search terms, newest first."""
        return list(self._recent_searches)

    def invalidate_feeds(self) -> None:
        for key in FEED_KEYS:
            self._cache.delete(key)

    async def _fetch_feed(self, key: str, sort_field: str, use_cache: bool) -> list[Prompt]:
        if use_cache:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit for '{key}'")
                return list(cached)

        # Inequality filters must be ordered on first
        with self._monitor.measure(f"fetch_{key}"):
            records = await self._source.query(
                PROMPTS,
                filters=[QueryFilter("isPublic", "!=", False)],
                sort=[SortOrder("isPublic"), SortOrder(sort_field, "desc")],
                limit=self._page_size,
            )

        prompts = [to_prompt(record) for record in records]
        self._cache.set(key, tuple(prompts), self._ttl_minutes)
        return prompts

    def _remember_search(self, query: str) -> None:
        if query in self._recent_searches:
            return
        self._recent_searches.insert(0, query)
        del self._recent_searches[MAX_RECENT_SEARCHES:]


def to_prompt(record: Mapping[str, Any]) -> Prompt:
    """Convert a prompt record to a Prompt, folding legacy field names."""
    tags = record.get("tags")
    return Prompt(
        id=record.get("id", ""),
        title=_text(record.get("title")),
        content=_text(record.get("content") or record.get("description")),
        text=_text(record.get("text")),
        description=_text(record.get("description")),
        category=_text(record.get("category")) or "Allgemein",
        tags=(
            tuple(str(t) for t in tags if t is not None)
            if isinstance(tags, (list, tuple))
            else ()
        ),
        author_id=record.get("userId") or record.get("authorId") or "",
        author_name=(
            record.get("userDisplayName") or record.get("authorName") or "Unbekannter Autor"
        ),
        author_image_url=record.get("userProfileImage") or record.get("authorImageUrl") or "",
        likes_count=record.get("likesCount") or 0,
        views_count=record.get("viewsCount") or 0,
        comments_count=record.get("commentsCount") or 0,
        average_rating=record.get("rating") or record.get("averageRating") or 0.0,
        rating_count=record.get("ratingsCount") or record.get("ratingCount") or 0,
        is_public=record.get("isPublic") is not False,
        is_premium=bool(record.get("isPremium")),
        is_featured=bool(record.get("isFeatured")),
        created_at=_to_datetime(record.get("createdAt")),
        updated_at=_to_datetime(record.get("lastModified") or record.get("updatedAt")),
    )


def _to_datetime(value: Any) -> datetime | None:
    """Accept datetimes, epoch milliseconds or ISO-8601 strings."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Ignoring unparseable timestamp {value!r}")
            return None
    return None


def _text(value: Any) -> str:
    """Coerce a free-text field to str; None and "" read as empty."""
    if value is None:
        return ""
    return str(value)
