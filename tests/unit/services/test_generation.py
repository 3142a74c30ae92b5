"""Tests for the chat completion client."""

import json

import httpx
import pytest
import respx

from siteqa.core.errors import RateLimitError
from siteqa.services.generation import GenerationClient

ENDPOINT = "http://llm.test:11434"
COMPLETIONS = f"{ENDPOINT}/v1/chat/completions"


def _completion(content: object) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@respx.mock
@pytest.mark.asyncio
async def test_generate_returns_first_choice() -> None:
    route = respx.post(COMPLETIONS).mock(
        return_value=httpx.Response(200, json=_completion("  The answer.  "))
    )
    client = GenerationClient(ENDPOINT, model="test-model", max_tokens=64, temperature=0.0)

    answer = await client.generate("Question?")

    assert answer == "The answer."
    body = json.loads(route.calls.last.request.content)
    assert body["model"] == "test-model"
    assert body["messages"] == [{"role": "user", "content": "Question?"}]
    assert body["max_tokens"] == 64
    assert "authorization" not in route.calls.last.request.headers


@respx.mock
@pytest.mark.asyncio
async def test_generate_sends_bearer_token() -> None:
    route = respx.post(COMPLETIONS).mock(return_value=httpx.Response(200, json=_completion("ok")))
    client = GenerationClient(ENDPOINT, model="m", api_key="secret")

    await client.generate("hi")

    assert route.calls.last.request.headers["authorization"] == "Bearer secret"


@respx.mock
@pytest.mark.asyncio
async def test_rate_limit_raises_rate_limit_error() -> None:
    respx.post(COMPLETIONS).mock(return_value=httpx.Response(429))
    client = GenerationClient(ENDPOINT, model="m")

    with pytest.raises(RateLimitError):
        await client.generate("hi")


@respx.mock
@pytest.mark.asyncio
async def test_server_error_raises_status_error() -> None:
    respx.post(COMPLETIONS).mock(return_value=httpx.Response(503))
    client = GenerationClient(ENDPOINT, model="m")

    with pytest.raises(httpx.HTTPStatusError):
        await client.generate("hi")


@respx.mock
@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"choices": []}, _completion(None)])
async def test_malformed_completion_is_rejected(payload: dict) -> None:
    respx.post(COMPLETIONS).mock(return_value=httpx.Response(200, json=payload))
    client = GenerationClient(ENDPOINT, model="m")

    with pytest.raises(ValueError, match="Invalid completion response"):
        await client.generate("hi")


def test_rejects_invalid_endpoint() -> None:
    with pytest.raises(ValueError):
        GenerationClient("llm.test", model="m")
