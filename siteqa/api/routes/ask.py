"""Question answering endpoint.

Example:
    POST /api/ask {"url": "https://example.com", "question": "What is it?"}
    Response: {"success": true, "answer": "...", "metadata": {...}}
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from siteqa.api.models.responses import (
    AskErrorResponse,
    AskRequest,
    AskSuccessResponse,
)
from siteqa.services.models import ErrorKind
from siteqa.services.pipeline import AskPipeline

router = APIRouter(prefix="/api", tags=["ask"])

ERROR_STATUS = {
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.SCRAPING_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.SERVICE_DEGRADED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.SERVICE_ERROR: status.HTTP_502_BAD_GATEWAY,
}


def get_pipeline(request: Request) -> AskPipeline:
    """Return the pipeline created at application startup."""
    return request.app.state.pipeline


@router.post(
    "/ask",
    response_model=AskSuccessResponse,
    responses={
        400: {"model": AskErrorResponse},
        502: {"model": AskErrorResponse},
        503: {"model": AskErrorResponse},
    },
)
async def ask(
    body: AskRequest,
    pipeline: AskPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Answer a question about a website, crawling it on first use."""
    response = await pipeline.ask(body.url, body.question, refresh=body.refresh)
    status_code = (
        status.HTTP_200_OK
        if response.success
        else ERROR_STATUS.get(response.error, status.HTTP_502_BAD_GATEWAY)
    )
    return JSONResponse(status_code=status_code, content=response.to_dict())
