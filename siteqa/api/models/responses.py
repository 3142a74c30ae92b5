"""Request and response models for API endpoints.

Example:
    from siteqa.api.models.responses import AskRequest

    request = AskRequest(url="https://example.com", question="What is it?")
"""

from typing import Literal

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Current health status ('healthy' or 'unhealthy')
    """

    status: str


class AskRequest(BaseModel):
    """Body of POST /api/ask.

    Fields are optional so that missing values are reported as an
    invalid_input envelope rather than a schema error.
    """

    url: str | None = None
    question: str | None = None
    refresh: bool = False


class AskMetadata(BaseModel):
    namespace: str
    url: str
    processed_at: str
    pages_processed: int
    cached: bool


class AskSuccessResponse(BaseModel):
    """Successful answer envelope."""

    success: Literal[True] = True
    answer: str
    metadata: AskMetadata


class AskErrorResponse(BaseModel):
    """Error envelope.

    Attributes:
        error: One of invalid_input, scraping_failed, service_degraded,
            service_error
        message: Human-readable description
    """

    success: Literal[False] = False
    error: str
    message: str = Field(default="")
