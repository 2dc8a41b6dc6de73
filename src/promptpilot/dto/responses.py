"""Response DTOs for API endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class RatingAggregateResponse(BaseModel):
    """Response DTO for a prompt's rating aggregate."""

    prompt_id: str = Field(..., description="The rated prompt")
    count: int = Field(..., description="Number of ratings", ge=0)
    average: float = Field(..., description="Mean rating (0 when there are no ratings)")


class UserRatingResponse(BaseModel):
    """Response DTO for one user's rating."""

    prompt_id: str = Field(..., description="The rated prompt")
    user_id: str = Field(..., description="The rating user")
    value: int = Field(..., description="Rating value")
    created_at: datetime | None = Field(None, description="When the rating was first given")
    updated_at: datetime | None = Field(None, description="When the rating was last changed")


class PromptRatingsResponse(BaseModel):
    """Response DTO for a prompt's aggregate together with its ratings."""

    prompt_id: str = Field(..., description="The rated prompt")
    count: int = Field(..., description="Stored number of ratings", ge=0)
    average: float = Field(..., description="Stored mean rating")
    ratings: list[UserRatingResponse] = Field(
        default_factory=list,
        description="Individual ratings, newest first",
    )


class PromptItem(BaseModel):
    """Single prompt in a feed or search result."""

    id: str
    title: str
    content: str
    category: str
    tags: list[str] = Field(default_factory=list)
    author_id: str
    author_name: str
    author_image_url: str
    likes_count: int
    average_rating: float
    rating_count: int
    is_public: bool
    created_at: datetime | None = None


class PromptListResponse(BaseModel):
    """Response DTO for feeds and search."""

    prompts: list[PromptItem] = Field(default_factory=list)
    count: int = Field(..., description="Number of prompts returned", ge=0)


class ImageUrlResponse(BaseModel):
    """Response DTO for image URL resolution."""

    path: str = Field(..., description="The requested storage path")
    url: str = Field(..., description="The resolved download URL")


class StatsResponse(BaseModel):
    """Response DTO for cache and latency statistics."""

    timed_cache: dict[str, int] = Field(..., description="In-memory cache entries, hits and misses")
    measurements: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Per-operation latency statistics in milliseconds",
    )


class CleanupResponse(BaseModel):
    """Response DTO for a manual cache sweep."""

    timed_cache: int = Field(..., description="Expired list entries removed", ge=0)
    image_cache: int = Field(..., description="Expired image entries removed", ge=0)


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="Health status: 'healthy' or 'unhealthy'")
    store_healthy: bool = Field(..., description="Whether the persistent store is reachable")
    maintenance_running: bool = Field(..., description="Whether the cache sweep loop is active")
