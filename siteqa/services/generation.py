"""Client for an OpenAI-compatible chat completion endpoint."""

import logging
from typing import Any

import httpx

from siteqa.core.errors import RateLimitError
from siteqa.storage.embeddings import retry_after_seconds

logger = logging.getLogger(__name__)

SERVICE_NAME = "generation"


class GenerationClient:
    """Generate answers from a prompt.

    Sends a single user message to ``{endpoint}/v1/chat/completions`` and
    returns the first choice's content. Works with Ollama, vLLM and other
    servers exposing the OpenAI chat API.

    Args:
        endpoint_url: Base URL of the generation service
        model: Model name sent with each request
        api_key: Optional bearer token
        max_tokens: Completion length limit
        temperature: Sampling temperature
        timeout: HTTP request timeout in seconds
    """

    def __init__(
        self,
        endpoint_url: str,
        model: str,
        api_key: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.2,
        timeout: float = 120.0,
    ) -> None:
        if not endpoint_url or not endpoint_url.startswith(("http://", "https://")):
            raise ValueError("Invalid endpoint URL")

        self.endpoint_url = endpoint_url.rstrip("/")
        self.model = model
        self.api_key = api_key
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

    async def generate(self, prompt: str) -> str:
        """Return the model's completion for a prompt.

        Raises:
            RateLimitError: If the service answers HTTP 429
            httpx.HTTPStatusError: If the service returns another HTTP error status
            ValueError: If the response has no completion text
        """
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(
                f"{self.endpoint_url}/v1/chat/completions",
                json=payload,
                headers=headers,
            )
        if response.status_code == 429:
            raise RateLimitError(SERVICE_NAME, retry_after_seconds(response))
        response.raise_for_status()

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ValueError("Invalid completion response") from e

        if not isinstance(content, str):
            raise ValueError("Invalid completion response")
        return content.strip()
