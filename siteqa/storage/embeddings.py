"""Client for the TEI (Text Embeddings Inference) embedding service.

Handles:
- Single and batch text embedding generation
- Connection and timeout errors with exponential backoff retries
- Rate limit responses (HTTP 429), surfaced as RateLimitError so the
  call governor can cool down and retry
- Response structure and embedding dimension validation

Example:
    >>> client = EmbeddingClient("http://siteqa-embeddings:80")
    >>> embedding = await client.embed_single("Hello world")
    >>> assert len(embedding) == 1024
    >>> embeddings = await client.embed_batch(["text1", "text2"])
    >>> assert len(embeddings) == 2
"""

import asyncio
import logging
from typing import Any

import httpx

from siteqa.core.errors import RateLimitError

logger = logging.getLogger(__name__)

SERVICE_NAME = "embeddings"


def retry_after_seconds(response: httpx.Response) -> float | None:
    """Parse a numeric Retry-After header, if the service sent one."""
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class EmbeddingClient:
    """Async client for a TEI embedding endpoint.

    Attributes:
        endpoint_url: Base URL of the TEI service
        expected_dimensions: Expected dimension count for embeddings (default: 1024)
        timeout: HTTP request timeout in seconds (default: 30.0)
        max_retries: Attempts for connection/timeout failures (default: 3)
        batch_size_limit: Maximum number of texts in a batch request (default: 100)
    """

    def __init__(
        self,
        endpoint_url: str,
        dimensions: int = 1024,
        timeout: float = 30.0,
        max_retries: int = 3,
        batch_size_limit: int = 100,
    ) -> None:
        """Initialize the client.

        Raises:
            ValueError: If endpoint_url is invalid or batch_size_limit is not positive
        """
        if not endpoint_url or not endpoint_url.startswith(("http://", "https://")):
            raise ValueError("Invalid endpoint URL")

        if batch_size_limit <= 0:
            raise ValueError("Batch size limit must be positive")

        self.endpoint_url = endpoint_url.rstrip("/")
        self.expected_dimensions = dimensions
        self.timeout = timeout
        self.max_retries = max_retries
        self.batch_size_limit = batch_size_limit

    async def embed_single(self, text: str) -> list[float]:
        """Generate embedding for a single text.

        Args:
            text: Text to embed (cannot be empty)

        Returns:
            Embedding vector with the expected dimensions

        Raises:
            ValueError: If text is empty, response is invalid, or dimensions don't match
            RateLimitError: If the service answers HTTP 429
            httpx.HTTPStatusError: If the service returns another HTTP error status
            httpx.ConnectError: If connection fails after retries
            httpx.TimeoutException: If request times out after retries
        """
        if not text:
            raise ValueError("Text cannot be empty")

        embeddings = await self._post_embed([text])
        return embeddings[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for several texts in one request.

        Args:
            texts: Texts to embed, at most batch_size_limit of them

        Returns:
            Embedding vectors in input order

        Raises:
            ValueError: If the batch is empty or too large, or the response is invalid
            RateLimitError: If the service answers HTTP 429
            httpx.HTTPStatusError: If the service returns another HTTP error status
        """
        if not texts:
            raise ValueError("Batch cannot be empty")

        if len(texts) > self.batch_size_limit:
            raise ValueError(f"Batch size exceeds limit of {self.batch_size_limit}")

        return await self._post_embed(texts)

    async def _post_embed(self, texts: list[str]) -> list[list[float]]:
        payload = {"inputs": texts}

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(
                        f"{self.endpoint_url}/embed",
                        json=payload,
                    )
                if response.status_code == 429:
                    raise RateLimitError(SERVICE_NAME, retry_after_seconds(response))
                response.raise_for_status()

                try:
                    data = response.json()
                except ValueError as e:
                    raise ValueError("Invalid JSON") from e

                return self._validate(data, expected_count=len(texts))

            except (httpx.ConnectError, httpx.NetworkError, httpx.TimeoutException) as e:
                if attempt == self.max_retries - 1:
                    raise
                delay = 2**attempt
                logger.warning(
                    f"Embedding request failed (attempt {attempt + 1}/{self.max_retries}), "
                    f"retrying in {delay}s: {e}"
                )
                await asyncio.sleep(delay)

        raise RuntimeError("Unexpected error in _post_embed")

    def _validate(self, data: Any, expected_count: int) -> list[list[float]]:
        if not isinstance(data, list) or not data:
            raise ValueError("Invalid response structure")

        if len(data) != expected_count:
            raise ValueError("Response count does not match request count")

        for embedding in data:
            if not isinstance(embedding, list) or not embedding:
                raise ValueError("Invalid response structure")
            if len(embedding) != self.expected_dimensions:
                raise ValueError(
                    f"Expected {self.expected_dimensions} dimensions, "
                    f"got {len(embedding)}"
                )
        return data
