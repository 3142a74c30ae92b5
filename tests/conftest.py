"""Shared pytest fixtures and in-memory service fakes for unit tests."""

from collections import defaultdict
from collections.abc import Sequence
from typing import Any

import pytest

from siteqa.core.metadata import MetadataKeys
from siteqa.processing.chunker import Chunk
from siteqa.readers.crawl.models import FetchResult
from siteqa.resilience.governor import CallGovernor
from siteqa.resilience.retry import RetryPolicy

DIMENSIONS = 4


async def no_sleep(_: float) -> None:
    return None


class FakeFetcher:
    """Serves canned pages; a list value is consumed one response per fetch.

    ``redirects`` maps a requested URL to the final URL reported for it.
    """

    def __init__(self, pages: dict[str, Any], redirects: dict[str, str] | None = None) -> None:
        self.pages = pages
        self.redirects = redirects or {}
        self.calls: list[str] = []

    async def fetch(self, url: str) -> FetchResult:
        self.calls.append(url)
        page = self.pages.get(url)
        if isinstance(page, list):
            page = page.pop(0) if page else None
        if page is None or isinstance(page, int):
            status = page if isinstance(page, int) else 404
            return FetchResult(url=url, success=False, status_code=status, error=f"HTTP {status}")
        return FetchResult(
            url=url,
            success=True,
            html=page,
            status_code=200,
            final_url=self.redirects.get(url, url),
        )

    async def close(self) -> None:
        return None


class FakeEmbeddings:
    def __init__(self) -> None:
        self.single_calls: list[str] = []
        self.batch_calls: list[list[str]] = []
        self.fail_batch = False
        self.fail_texts: set[str] = set()

    async def embed_single(self, text: str) -> list[float]:
        self.single_calls.append(text)
        if text in self.fail_texts:
            raise ValueError("cannot embed")
        return [0.1] * DIMENSIONS

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.batch_calls.append(list(texts))
        if self.fail_batch:
            raise ValueError("batch rejected")
        return [[0.1] * DIMENSIONS for _ in texts]


class FakeVectorStore:
    """Keeps payloads per namespace; query returns them in insertion order."""

    def __init__(self) -> None:
        self.points: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.queries: list[tuple[str, int]] = []
        self.upserts = 0
        self.ensure_calls = 0

    async def ensure_collection(self) -> None:
        self.ensure_calls += 1

    async def ensure_payload_indexes(self) -> None:
        return None

    async def upsert_chunks(
        self,
        namespace: str,
        run_id: int,
        chunks: Sequence[Chunk],
        vectors: Sequence[list[float]],
    ) -> int:
        self.upserts += 1
        for chunk in chunks:
            self.points[namespace].append(
                {
                    MetadataKeys.NAMESPACE: namespace,
                    MetadataKeys.CONTENT: chunk.text,
                    MetadataKeys.SOURCE_URL: chunk.source_url,
                    MetadataKeys.CHUNK_INDEX: chunk.ordinal,
                    MetadataKeys.RUN_ID: run_id,
                }
            )
        return len(chunks)

    async def query(self, namespace: str, vector: list[float], top_k: int = 5) -> list[dict[str, Any]]:
        self.queries.append((namespace, top_k))
        return [dict(point, score=1.0) for point in self.points.get(namespace, [])[:top_k]]

    async def count(self, namespace: str) -> int:
        return len(self.points.get(namespace, []))

    async def delete_namespace(self, namespace: str) -> int:
        return len(self.points.pop(namespace, []))

    async def describe_stats(self) -> dict[str, int]:
        return {namespace: len(points) for namespace, points in self.points.items() if points}

    async def close(self) -> None:
        return None


class FakeGenerator:
    def __init__(self, answer: str = "Generated answer") -> None:
        self.answer = answer
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer


class FakeRedis:
    """Minimal async stand-in for the redis client used by AnswerCache."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.get_calls = 0

    async def get(self, key: str) -> str | None:
        self.get_calls += 1
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.store[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def aclose(self) -> None:
        return None


def make_governor(**kwargs: Any) -> CallGovernor:
    kwargs.setdefault("max_calls_per_window", 10_000)
    return CallGovernor(sleep=no_sleep, **kwargs)


def make_retry(max_attempts: int = 4) -> RetryPolicy:
    return RetryPolicy(max_attempts=max_attempts, base_delay=1.0, sleep=no_sleep)


def html_page(body: str, title: str = "Page") -> str:
    return f"<html><head><title>{title}</title></head><body>{body}</body></html>"


def long_paragraph(label: str) -> str:
    """A paragraph comfortably above the minimum chunk length."""
    return (
        f"{label} explains the product in detail so that readers understand how "
        f"every part of {label} works together and why it matters for them."
    )


@pytest.fixture
def fake_embeddings() -> FakeEmbeddings:
    return FakeEmbeddings()


@pytest.fixture
def fake_vector_store() -> FakeVectorStore:
    return FakeVectorStore()


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
