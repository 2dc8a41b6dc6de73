import logging
from typing import Any

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from promptpilot.api.dependencies import ContextDep, HandlerDep, install_context, lifespan
from promptpilot.config import settings
from promptpilot.context import AppContext
from promptpilot.dto import (
    CleanupResponse,
    HealthCheckResponse,
    ImageUrlResponse,
    PromptListResponse,
    PromptRatingsResponse,
    RatePromptRequest,
    RatingAggregateResponse,
    StatsResponse,
    UserRatingResponse,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def create_app(context: AppContext | None = None) -> FastAPI:
    """Build the API application.

    Args:
        context: Application context to serve. When None, the lifespan
            builds a default one on startup.

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="PromptPilot API",
        description="Prompt feeds, ratings and image URLs behind time-expiring caches",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if context is not None:
        install_context(app, context)

    @app.get("/")
    async def root(ctx: ContextDep) -> dict[str, Any]:
        """Root endpoint with API information."""
        return {
            "name": "PromptPilot API",
            "version": "0.1.0",
            "list_cache_ttl_minutes": ctx.settings.list_cache_ttl_minutes,
            "image_cache_ttl_minutes": ctx.settings.image_cache_ttl_minutes,
            "endpoints": {
                "ratings": "/prompts/{prompt_id}/ratings",
                "feeds": "/feeds/{latest|popular|top-rated}",
                "search": "/search",
                "images": "/images",
                "stats": "/stats",
                "health": "/health",
                "docs": "/docs",
            },
        }

    @app.get("/health", response_model=HealthCheckResponse)
    async def health(handler: HandlerDep) -> HealthCheckResponse:
        return await handler.health_check()

    @app.post("/prompts/{prompt_id}/ratings", response_model=RatingAggregateResponse)
    async def rate_prompt(
        prompt_id: str, request: RatePromptRequest, handler: HandlerDep
    ) -> RatingAggregateResponse:
        return await handler.rate_prompt(prompt_id, request)

    @app.get("/prompts/{prompt_id}/ratings", response_model=PromptRatingsResponse)
    async def get_prompt_ratings(prompt_id: str, handler: HandlerDep) -> PromptRatingsResponse:
        return await handler.get_prompt_ratings(prompt_id)

    @app.post("/prompts/{prompt_id}/ratings/repair", response_model=RatingAggregateResponse)
    async def repair_ratings(prompt_id: str, handler: HandlerDep) -> RatingAggregateResponse:
        """Recompute the stored aggregate from the individual ratings."""
        return await handler.repair_aggregate(prompt_id)

    @app.get("/prompts/{prompt_id}/ratings/{user_id}", response_model=UserRatingResponse)
    async def get_user_rating(
        prompt_id: str, user_id: str, handler: HandlerDep
    ) -> UserRatingResponse:
        return await handler.get_user_rating(prompt_id, user_id)

    @app.delete("/prompts/{prompt_id}/ratings/{user_id}", response_model=RatingAggregateResponse)
    async def delete_rating(
        prompt_id: str, user_id: str, handler: HandlerDep
    ) -> RatingAggregateResponse:
        return await handler.delete_rating(prompt_id, user_id)

    @app.get("/feeds/{feed}", response_model=PromptListResponse)
    async def get_feed(
        feed: str,
        handler: HandlerDep,
        refresh: bool = Query(False, description="Bypass cached results"),
    ) -> PromptListResponse:
        return await handler.get_feed(feed, refresh=refresh)

    @app.get("/search", response_model=PromptListResponse)
    async def search(
        handler: HandlerDep,
        q: str = Query("", description="Search term"),
    ) -> PromptListResponse:
        return await handler.search(q)

    @app.get("/images", response_model=ImageUrlResponse)
    async def get_image_url(
        handler: HandlerDep,
        path: str = Query(..., min_length=1, description="Storage path of the image"),
    ) -> ImageUrlResponse:
        return await handler.get_image_url(path)

    @app.get("/stats", response_model=StatsResponse)
    async def get_stats(handler: HandlerDep) -> StatsResponse:
        return await handler.get_stats()

    @app.post("/cache/cleanup", response_model=CleanupResponse)
    async def cleanup(handler: HandlerDep) -> CleanupResponse:
        """Run one expiry sweep over both caches now."""
        return await handler.cleanup()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "promptpilot.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
