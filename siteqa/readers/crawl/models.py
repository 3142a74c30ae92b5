"""Data models for web crawling operations."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _default_timestamp() -> str:
    """Generate default ISO8601 timestamp string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class FetchResult:
    """Result of fetching a single URL.

    Attributes:
        url: URL that was requested
        success: Whether a 2xx HTML body was received
        html: Response body (empty on failure)
        status_code: HTTP status code (0 for transport failures)
        error: Error message if fetch failed
        final_url: URL after redirects
        timestamp: When fetch occurred (ISO8601 string)
    """

    url: str
    success: bool
    html: str = ""
    status_code: int = 0
    error: str | None = None
    final_url: str | None = None
    timestamp: str = field(default_factory=_default_timestamp)


@dataclass(frozen=True)
class ExtractedContent:
    """Text and metadata extracted from one parsed HTML document.

    Attributes:
        title: Contents of the <title> element
        meta_description: Contents of <meta name="description">
        main_content: Deduplicated text blocks joined by blank lines
        structured_data: JSON-LD mappings folded into one dict
    """

    title: str
    meta_description: str
    main_content: str
    structured_data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PageContent:
    """Everything extracted from one successfully fetched page.

    Attributes:
        url: Canonical URL the page was fetched from
        title: Page title
        meta_description: Page meta description
        main_content: Ordered, deduplicated text blocks
        structured_data: Merged JSON-LD key/value mapping
        internal_links: Canonical same-origin links in document order
    """

    url: str
    title: str
    meta_description: str
    main_content: str
    structured_data: dict[str, Any] = field(default_factory=dict)
    internal_links: tuple[str, ...] = ()
