"""Tests for siteqa.readers.crawl.http_client module."""

import httpx
import pytest
import respx

from siteqa.readers.crawl.http_client import HttpPageFetcher

URL = "https://example.com/page"


@respx.mock
@pytest.mark.asyncio
async def test_fetch_returns_html_on_success() -> None:
    """A 200 response yields the decoded body."""
    respx.get(URL).mock(
        return_value=httpx.Response(
            200, text="<html><body>Hello</body></html>", headers={"content-type": "text/html"}
        )
    )
    fetcher = HttpPageFetcher()

    result = await fetcher.fetch(URL)
    await fetcher.close()

    assert result.success is True
    assert result.status_code == 200
    assert "Hello" in result.html
    assert result.final_url == URL
    assert result.error is None


@respx.mock
@pytest.mark.asyncio
async def test_fetch_sends_browser_headers() -> None:
    route = respx.get(URL).mock(return_value=httpx.Response(200, text="ok"))
    fetcher = HttpPageFetcher(user_agent="TestAgent/1.0")

    await fetcher.fetch(URL)
    await fetcher.close()

    request = route.calls.last.request
    assert request.headers["user-agent"] == "TestAgent/1.0"
    assert "text/html" in request.headers["accept"]
    assert request.headers["accept-language"].startswith("en-US")


@respx.mock
@pytest.mark.asyncio
async def test_fetch_reports_http_errors() -> None:
    """Non-2xx responses are failures carrying the status code."""
    respx.get(URL).mock(return_value=httpx.Response(404, text="missing"))
    fetcher = HttpPageFetcher()

    result = await fetcher.fetch(URL)
    await fetcher.close()

    assert result.success is False
    assert result.status_code == 404
    assert result.error == "HTTP 404"
    assert result.html == ""


@respx.mock
@pytest.mark.asyncio
async def test_fetch_reports_transport_errors() -> None:
    respx.get(URL).mock(side_effect=httpx.ConnectError("connection refused"))
    fetcher = HttpPageFetcher()

    result = await fetcher.fetch(URL)
    await fetcher.close()

    assert result.success is False
    assert result.status_code == 0
    assert "connection refused" in (result.error or "")


@respx.mock
@pytest.mark.asyncio
async def test_fetch_rejects_oversized_body() -> None:
    """Bodies above max_bytes are abandoned."""
    respx.get(URL).mock(return_value=httpx.Response(200, content=b"x" * 2048))
    fetcher = HttpPageFetcher(max_bytes=1024)

    result = await fetcher.fetch(URL)
    await fetcher.close()

    assert result.success is False
    assert "exceeds 1024 bytes" in (result.error or "")


@respx.mock
@pytest.mark.asyncio
async def test_fetch_follows_redirects() -> None:
    respx.get(URL).mock(
        return_value=httpx.Response(301, headers={"location": "https://example.com/new"})
    )
    respx.get("https://example.com/new").mock(return_value=httpx.Response(200, text="moved"))
    fetcher = HttpPageFetcher()

    result = await fetcher.fetch(URL)
    await fetcher.close()

    assert result.success is True
    assert result.url == URL
    assert result.final_url == "https://example.com/new"
