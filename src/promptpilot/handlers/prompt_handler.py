"""HTTP handlers for rating, feed, image and cache operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, validation, and error handling.
"""

import logging

from fastapi import HTTPException, status

from promptpilot.context import AppContext
from promptpilot.dto import (
    CleanupResponse,
    HealthCheckResponse,
    ImageUrlResponse,
    PromptItem,
    PromptListResponse,
    PromptRatingsResponse,
    RatePromptRequest,
    RatingAggregateResponse,
    StatsResponse,
    UserRatingResponse,
)
from promptpilot.entities import Prompt, RatingAggregate, UserRating
from promptpilot.errors import NotFoundError, RemoteError, ValidationError

logger = logging.getLogger(__name__)

FEEDS = ("latest", "popular", "top-rated")


class PromptHandler:
    """HTTP handlers for the prompt services.

    This handler delegates business logic to the services held by an
    AppContext and handles HTTP-specific concerns like:
    - Converting entities to DTOs
    - Mapping domain errors to status codes

    Example:
        ```python
        context = AppContext.create(data_source)
        handler = PromptHandler(context=context)

        @app.post("/prompts/{prompt_id}/ratings")
        async def rate(prompt_id: str, request: RatePromptRequest):
            return await handler.rate_prompt(prompt_id, request)
        ```
    """

    def __init__(self, context: AppContext) -> None:
        """Initialize the handler.

        Args:
            context: The application context holding all services (required).
        """
        self._ctx = context

    async def rate_prompt(
        self, prompt_id: str, request: RatePromptRequest
    ) -> RatingAggregateResponse:
        """Handle POST /prompts/{prompt_id}/ratings requests."""
        try:
            aggregate = await self._ctx.ratings.rate_prompt(
                request.user_id, prompt_id, request.value
            )
        except Exception as e:
            raise _to_http_exception(e, "rate prompt") from e
        self._ctx.feed.invalidate_feeds()
        return _aggregate_response(prompt_id, aggregate)

    async def delete_rating(self, prompt_id: str, user_id: str) -> RatingAggregateResponse:
        """Handle DELETE /prompts/{prompt_id}/ratings/{user_id} requests."""
        try:
            aggregate = await self._ctx.ratings.delete_rating(user_id, prompt_id)
        except Exception as e:
            raise _to_http_exception(e, "delete rating") from e
        self._ctx.feed.invalidate_feeds()
        return _aggregate_response(prompt_id, aggregate)

    async def get_user_rating(self, prompt_id: str, user_id: str) -> UserRatingResponse:
        """Handle GET /prompts/{prompt_id}/ratings/{user_id} requests."""
        try:
            rating = await self._ctx.ratings.get_user_rating(user_id, prompt_id)
        except Exception as e:
            raise _to_http_exception(e, "get rating") from e
        if rating is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"No rating by '{user_id}' for prompt '{prompt_id}'",
            )
        return _rating_response(rating)

    async def get_prompt_ratings(self, prompt_id: str) -> PromptRatingsResponse:
        """Handle GET /prompts/{prompt_id}/ratings requests."""
        try:
            aggregate = await self._ctx.ratings.get_aggregate(prompt_id)
            ratings = await self._ctx.ratings.get_prompt_ratings(prompt_id)
        except Exception as e:
            raise _to_http_exception(e, "get ratings") from e
        return PromptRatingsResponse(
            prompt_id=prompt_id,
            count=aggregate.count,
            average=aggregate.average,
            ratings=[_rating_response(r) for r in ratings],
        )

    async def repair_aggregate(self, prompt_id: str) -> RatingAggregateResponse:
        """Handle POST /prompts/{prompt_id}/ratings/repair requests."""
        try:
            aggregate = await self._ctx.ratings.repair_aggregate(prompt_id)
        except Exception as e:
            raise _to_http_exception(e, "repair ratings") from e
        return _aggregate_response(prompt_id, aggregate)

    async def get_feed(self, feed: str, refresh: bool = False) -> PromptListResponse:
        """Handle GET /feeds/{feed} requests."""
        fetchers = {
            "latest": self._ctx.feed.fetch_latest_prompts,
            "popular": self._ctx.feed.fetch_popular_prompts,
            "top-rated": self._ctx.feed.fetch_top_rated_prompts,
        }
        fetch = fetchers.get(feed)
        if fetch is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Unknown feed '{feed}', expected one of {', '.join(FEEDS)}",
            )
        try:
            prompts = await fetch(use_cache=not refresh)
        except Exception as e:
            raise _to_http_exception(e, f"load {feed} feed") from e
        return _list_response(prompts)

    async def search(self, query: str) -> PromptListResponse:
        """Handle GET /search requests."""
        try:
            prompts = await self._ctx.feed.search_prompts(query)
        except Exception as e:
            raise _to_http_exception(e, "search prompts") from e
        return _list_response(prompts)

    async def get_image_url(self, path: str) -> ImageUrlResponse:
        """Handle GET /images requests."""
        try:
            url = await self._ctx.images.get_image_url(path)
        except Exception as e:
            raise _to_http_exception(e, "resolve image") from e
        return ImageUrlResponse(path=path, url=url)

    async def get_stats(self) -> StatsResponse:
        """Handle GET /stats requests."""
        return StatsResponse(
            timed_cache=self._ctx.timed_cache.get_stats(),
            measurements=self._ctx.monitor.get_stats(),
        )

    async def cleanup(self) -> CleanupResponse:
        """Handle POST /cache/cleanup requests."""
        try:
            removed = await self._ctx.maintenance.run_once()
        except Exception as e:
            raise _to_http_exception(e, "clean up caches") from e
        return CleanupResponse(**removed)

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests."""
        check = getattr(self._ctx.store, "health_check", None)
        store_healthy = await check() if check is not None else True

        return HealthCheckResponse(
            status="healthy" if store_healthy else "unhealthy",
            store_healthy=store_healthy,
            maintenance_running=self._ctx.maintenance.running,
        )


def _to_http_exception(error: Exception, action: str) -> HTTPException:
    if isinstance(error, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, RemoteError):
        logger.warning(f"Remote failure during {action}: {error}")
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to {action}: {error}",
        )
    logger.exception(f"Unexpected failure during {action}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {error}",
    )


def _aggregate_response(prompt_id: str, aggregate: RatingAggregate) -> RatingAggregateResponse:
    return RatingAggregateResponse(
        prompt_id=prompt_id,
        count=aggregate.count,
        average=aggregate.average,
    )


def _rating_response(rating: UserRating) -> UserRatingResponse:
    return UserRatingResponse(
        prompt_id=rating.prompt_id,
        user_id=rating.user_id,
        value=rating.value,
        created_at=rating.created_at,
        updated_at=rating.updated_at,
    )


def _list_response(prompts: list[Prompt]) -> PromptListResponse:
    items = [
        PromptItem(
            id=p.id,
            title=p.title,
            content=p.content,
            category=p.category,
            tags=list(p.tags),
            author_id=p.author_id,
            author_name=p.author_name,
            author_image_url=p.author_image_url,
            likes_count=p.likes_count,
            average_rating=p.average_rating,
            rating_count=p.rating_count,
            is_public=p.is_public,
            created_at=p.created_at,
        )
        for p in prompts
    ]
    return PromptListResponse(prompts=items, count=len(items))
