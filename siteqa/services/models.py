"""Service-layer data models for ingestion and question answering."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Error categories reported to callers."""

    INVALID_INPUT = "invalid_input"
    SCRAPING_FAILED = "scraping_failed"
    SERVICE_DEGRADED = "service_degraded"
    SERVICE_ERROR = "service_error"


@dataclass(frozen=True)
class CrawlTask:
    """A URL waiting on the crawl work-list.

    Args:
        url: Canonical URL to fetch
        depth: Link distance from the start URL (start URL is 0)
    """

    url: str
    depth: int


@dataclass(frozen=True)
class IngestResult:
    """Summary of one ingestion run.

    Args:
        namespace: Partition the content was stored under
        success: False only when the start URL could not be fetched
        pages_crawled: Pages fetched and processed successfully
        pages_failed: Pages abandoned after retries
        chunks_stored: Chunks written to the vector store
        chunks_failed: Chunks dropped because embedding or storage failed
        truncated: Whether the crawl deadline cut the run short
        skipped: Whether the namespace already had content and no crawl ran
        error: Error message if ingestion failed
    """

    namespace: str
    success: bool
    pages_crawled: int = 0
    pages_failed: int = 0
    chunks_stored: int = 0
    chunks_failed: int = 0
    truncated: bool = False
    skipped: bool = False
    error: str | None = None


@dataclass(frozen=True)
class AnswerResult:
    """Answer produced from retrieved context.

    Args:
        answer: Generated answer, or the fixed no-context message
        namespace: Namespace the context was retrieved from
        url: URL the question was asked about
        processed_at: ISO8601 time the answer was produced
        context_found: Whether any stored chunk qualified as context
        sources: Source page URLs of the context chunks, in rank order
    """

    answer: str
    namespace: str
    url: str
    processed_at: str
    context_found: bool
    sources: tuple[str, ...] = ()


@dataclass(frozen=True)
class AskResponse:
    """Envelope returned for an ask request.

    Successful responses carry ``answer`` and ``metadata``; failed ones carry
    ``error`` and ``message``.
    """

    success: bool
    answer: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    error: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "AskResponse":
        """Build an error envelope."""
        return cls(success=False, error=error, message=message)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AskResponse":
        """Rebuild a response from its to_dict() form (e.g. from the cache)."""
        error = data.get("error")
        return cls(
            success=bool(data.get("success")),
            answer=data.get("answer"),
            metadata=dict(data.get("metadata") or {}),
            error=ErrorKind(error) if error else None,
            message=data.get("message"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the wire shape."""
        if self.success:
            return {"success": True, "answer": self.answer, "metadata": dict(self.metadata)}
        return {
            "success": False,
            "error": self.error.value if self.error else ErrorKind.SERVICE_ERROR.value,
            "message": self.message or "",
        }
