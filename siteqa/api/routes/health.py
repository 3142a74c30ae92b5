"""Health check endpoint for API monitoring.

Example:
    GET /health
    Response: {"status": "healthy"}
"""

from fastapi import APIRouter

from siteqa.api.models.responses import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return API health status."""
    return HealthResponse(status="healthy")
