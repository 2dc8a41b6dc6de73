"""Data Transfer Objects for API contracts.

These Pydantic models define the external API contract.
They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import RatePromptRequest
from .responses import (
    CleanupResponse,
    HealthCheckResponse,
    ImageUrlResponse,
    PromptItem,
    PromptListResponse,
    PromptRatingsResponse,
    RatingAggregateResponse,
    StatsResponse,
    UserRatingResponse,
)

__all__ = [
    "RatePromptRequest",
    "RatingAggregateResponse",
    "UserRatingResponse",
    "PromptRatingsResponse",
    "PromptItem",
    "PromptListResponse",
    "ImageUrlResponse",
    "StatsResponse",
    "CleanupResponse",
    "HealthCheckResponse",
]
