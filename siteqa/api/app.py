"""FastAPI application for the siteqa REST API.

Example:
    uvicorn siteqa.api.app:app --host 0.0.0.0 --port 8000
"""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from siteqa.api.routes.ask import router as ask_router
from siteqa.api.routes.health import router as health_router
from siteqa.core.config import Settings
from siteqa.core.logger import configure_logging
from siteqa.services.pipeline import AskPipeline

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str | None = Security(API_KEY_HEADER)) -> str:
    """Verify API key from request header.

    Raises:
        HTTPException: 401 if API key is missing or invalid
    """
    expected_key = os.getenv("SITEQA_API_KEY")

    # Allow unauthenticated access if no API key is configured
    if not expected_key:
        return ""

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if api_key != expected_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the pipeline on startup and close its clients on shutdown."""
    settings = Settings()
    logger = configure_logging(settings)
    app.state.pipeline = AskPipeline.from_settings(settings)
    logger.info("siteqa API started")
    try:
        yield
    finally:
        await app.state.pipeline.close()


app = FastAPI(
    title="siteqa API",
    description="Ask questions about any website",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health_router)
app.include_router(ask_router, dependencies=[Depends(verify_api_key)])
