"""Request DTOs for API endpoints."""

from pydantic import BaseModel, Field


class RatePromptRequest(BaseModel):
    """Request DTO for rating a prompt.

    The value range is enforced by the rating service, not here, so that
    out-of-range values surface as the service's validation error.
    """

    user_id: str = Field(..., description="The rating user", min_length=1)
    value: int = Field(..., description="Rating value, an integer from 1 to 5")
