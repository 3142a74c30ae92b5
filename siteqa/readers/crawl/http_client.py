"""HTTP client for fetching pages from the crawled site."""

import logging

import httpx

from siteqa.core.config import DEFAULT_USER_AGENT
from siteqa.readers.crawl.models import FetchResult

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


class HttpPageFetcher:
    """HTTP client for the target website.

    Fetches a page with a browser user agent and converts the outcome into a
    FetchResult. It never raises: transport errors, non-2xx statuses and
    oversized bodies all come back as unsuccessful results.

    Note: Retry logic is handled by the crawl controller, which retries
    failed fetches with a linearly increasing delay.

    Args:
        timeout: Request timeout in seconds
        max_bytes: Largest response body accepted
        user_agent: User-Agent header value
        client: Optional pre-built httpx.AsyncClient (tests, connection reuse)
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_bytes: int = 10_000_000,
        user_agent: str = DEFAULT_USER_AGENT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.headers = {"User-Agent": user_agent, **DEFAULT_HEADERS}
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers=self.headers,
            follow_redirects=True,
        )

    async def fetch(self, url: str) -> FetchResult:
        """Fetch a page.

        The body is streamed so that pages larger than max_bytes are
        abandoned without being read completely.

        Args:
            url: Absolute URL to fetch

        Returns:
            FetchResult with the HTML on success, or error details on failure
        """
        try:
            async with self._client.stream("GET", url) as response:
                if not response.is_success:
                    return FetchResult(
                        url=url,
                        success=False,
                        status_code=response.status_code,
                        error=f"HTTP {response.status_code}",
                    )

                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self.max_bytes:
                    return self._too_large(url, response.status_code)

                body = bytearray()
                async for part in response.aiter_bytes():
                    body.extend(part)
                    if len(body) > self.max_bytes:
                        return self._too_large(url, response.status_code)

                return FetchResult(
                    url=url,
                    success=True,
                    html=_decode(bytes(body), response.encoding),
                    status_code=response.status_code,
                    final_url=str(response.url),
                )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return FetchResult(
                url=url,
                success=False,
                status_code=0,
                error=str(e) or type(e).__name__,
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _too_large(self, url: str, status_code: int) -> FetchResult:
        logger.warning("Response from %s exceeds %d bytes", url, self.max_bytes)
        return FetchResult(
            url=url,
            success=False,
            status_code=status_code,
            error=f"Response exceeds {self.max_bytes} bytes",
        )


def _decode(body: bytes, encoding: str | None) -> str:
    try:
        return body.decode(encoding or "utf-8", errors="replace")
    except LookupError:
        # Unknown charset declared by the server
        return body.decode("utf-8", errors="replace")
