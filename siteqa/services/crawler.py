"""Depth-first site crawl feeding the vector store.

The crawl walks same-origin links from a start URL using an explicit stack of
CrawlTask items. Each fetched page is extracted, chunked, embedded and stored
before its links are expanded, so stored content is usable even if the crawl
is later cut short by its deadline.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from siteqa.core.errors import FetchError, ServiceDegradedError
from siteqa.processing.chunker import Chunk, TextChunker, make_chunks
from siteqa.readers.crawl.extractor import ContentExtractor
from siteqa.readers.crawl.http_client import HttpPageFetcher
from siteqa.readers.crawl.models import FetchResult, PageContent
from siteqa.readers.crawl.url_normalizer import normalize_url
from siteqa.resilience.governor import CallGovernor
from siteqa.resilience.retry import RetryPolicy
from siteqa.services.models import CrawlTask, IngestResult
from siteqa.storage.embeddings import EmbeddingClient
from siteqa.storage.qdrant import VectorStoreManager

logger = logging.getLogger(__name__)

EMBED_BATCH_SIZE = 100


def generate_run_id() -> int:
    """Identify an ingestion run by its start time in milliseconds."""
    return int(time.time() * 1000)


class CrawlController:
    """Crawl a site and store its content under a namespace.

    Args:
        fetcher: Page fetcher
        extractor: HTML content extractor
        chunker: Text chunking strategy
        embeddings: Embedding client
        vector_store: Vector store manager
        embed_governor: Governor wrapping embedding calls
        vector_governor: Governor wrapping vector store writes
        retry_policy: Retry policy for page fetches
        max_depth: Deepest link distance from the start URL that is fetched
        max_links_per_page: Most unvisited links followed from one page
        politeness_delay: Seconds to wait before every fetch but the first
        min_chunk_chars: Chunks shorter than this are not stored
        deadline_seconds: Overall time budget for one crawl, None for no limit
        clock: Monotonic time source
        sleep: Async sleep function
    """

    def __init__(
        self,
        fetcher: HttpPageFetcher | Any,
        extractor: ContentExtractor,
        chunker: TextChunker,
        embeddings: EmbeddingClient | Any,
        vector_store: VectorStoreManager | Any,
        embed_governor: CallGovernor,
        vector_governor: CallGovernor,
        retry_policy: RetryPolicy,
        max_depth: int = 3,
        max_links_per_page: int = 5,
        politeness_delay: float = 1.0,
        min_chunk_chars: int = 100,
        deadline_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.fetcher = fetcher
        self.extractor = extractor
        self.chunker = chunker
        self.embeddings = embeddings
        self.vector_store = vector_store
        self.embed_governor = embed_governor
        self.vector_governor = vector_governor
        self.retry_policy = retry_policy
        self.max_depth = max_depth
        self.max_links_per_page = max_links_per_page
        self.politeness_delay = politeness_delay
        self.min_chunk_chars = min_chunk_chars
        self.deadline_seconds = deadline_seconds
        self._clock = clock
        self._sleep = sleep

    async def ingest(self, start_url: str, namespace: str) -> IngestResult:
        """Crawl from start_url and store every page's chunks under namespace.

        Args:
            start_url: Validated absolute URL to start from
            namespace: Partition to store chunks under

        Returns:
            IngestResult; success is False only when the start page could not
            be fetched

        Raises:
            ServiceDegradedError: If the embedding service or vector store
                stays rate limited
        """
        run_id = generate_run_id()
        started = self._clock()

        stack: list[CrawlTask] = [CrawlTask(url=start_url, depth=0)]
        visited: set[str] = set()
        self._mark_visited(start_url, visited)

        pages_crawled = 0
        pages_failed = 0
        chunks_stored = 0
        chunks_failed = 0
        truncated = False
        fetched_any = False

        logger.info(f"Starting crawl of {start_url} into namespace {namespace}")

        while stack:
            if self._deadline_passed(started):
                truncated = True
                logger.warning(
                    f"Crawl deadline of {self.deadline_seconds}s reached, "
                    f"abandoning {len(stack)} queued pages"
                )
                break

            task = stack.pop()
            if task.depth > self.max_depth:
                continue

            if fetched_any:
                await self._sleep(self.politeness_delay)
            fetched_any = True

            result = await self._fetch_with_retry(task.url)
            if result is None:
                pages_failed += 1
                if task.url == start_url:
                    return IngestResult(
                        namespace=namespace,
                        success=False,
                        pages_failed=pages_failed,
                        error=f"Failed to fetch start URL {start_url}",
                    )
                continue

            pages_crawled += 1
            # Links on a redirected page are relative to where it ended up
            page_url = result.final_url or task.url
            if page_url != task.url:
                self._mark_visited(page_url, visited)
            page = self._extract(result, page_url)
            if page is None:
                continue

            stored, failed = await self._store_page(page, namespace, run_id)
            chunks_stored += stored
            chunks_failed += failed
            logger.info(
                f"Scraped {task.url} (depth {task.depth}): "
                f"{stored} chunks stored, {failed} failed"
            )

            if task.depth < self.max_depth:
                self._expand(page, task.depth, stack, visited)

        logger.info(
            f"Crawl of {start_url} finished: {pages_crawled} pages, "
            f"{chunks_stored} chunks stored"
        )
        return IngestResult(
            namespace=namespace,
            success=True,
            pages_crawled=pages_crawled,
            pages_failed=pages_failed,
            chunks_stored=chunks_stored,
            chunks_failed=chunks_failed,
            truncated=truncated,
        )

    def _mark_visited(self, url: str, visited: set[str]) -> None:
        """Record url and its canonical link form, so links back to it are skipped."""
        visited.add(url)
        canonical = normalize_url(url, url)
        if canonical:
            visited.add(canonical)

    def _deadline_passed(self, started: float) -> bool:
        if self.deadline_seconds is None:
            return False
        return self._clock() - started >= self.deadline_seconds

    async def _fetch_with_retry(self, url: str) -> FetchResult | None:
        async def fetch_once() -> FetchResult:
            result = await self.fetcher.fetch(url)
            if not result.success:
                raise FetchError(url, result.error or "unknown error", result.status_code)
            return result

        try:
            return await self.retry_policy.execute_async(
                fetch_once,
                retryable_exceptions=(FetchError,),
                operation_name=f"Fetch {url}",
            )
        except FetchError as e:
            logger.warning(f"Abandoning {url}: {e.reason}")
            return None

    def _extract(self, result: FetchResult, url: str) -> PageContent | None:
        try:
            return self.extractor.extract_page(result.html, url)
        except Exception as e:
            logger.error(f"Failed to extract content from {url}: {e}")
            return None

    def _expand(
        self,
        page: PageContent,
        depth: int,
        stack: list[CrawlTask],
        visited: set[str],
    ) -> None:
        selected: list[str] = []
        for link in page.internal_links:
            if len(selected) >= self.max_links_per_page:
                break
            if link in visited:
                continue
            visited.add(link)
            selected.append(link)

        # Reversed so the first link in the document is popped first
        for link in reversed(selected):
            stack.append(CrawlTask(url=link, depth=depth + 1))

    async def _store_page(
        self, page: PageContent, namespace: str, run_id: int
    ) -> tuple[int, int]:
        """Embed and store a page's chunks, returning (stored, failed)."""
        try:
            chunks = make_chunks(page, self.chunker, self.min_chunk_chars)
        except Exception as e:
            logger.error(f"Failed to chunk {page.url}: {e}")
            return 0, 0

        if not chunks:
            logger.debug(f"No chunks above {self.min_chunk_chars} chars on {page.url}")
            return 0, 0

        stored = 0
        failed = 0
        for start in range(0, len(chunks), EMBED_BATCH_SIZE):
            batch = chunks[start : start + EMBED_BATCH_SIZE]
            try:
                stored += await self._store_batch(batch, namespace, run_id)
            except ServiceDegradedError:
                raise
            except Exception as e:
                logger.warning(
                    f"Batch storage failed for {page.url}, storing chunks one by one: {e}"
                )
                batch_stored, batch_failed = await self._store_individually(
                    batch, namespace, run_id
                )
                stored += batch_stored
                failed += batch_failed
        return stored, failed

    async def _store_batch(
        self, chunks: Sequence[Chunk], namespace: str, run_id: int
    ) -> int:
        texts = [chunk.text for chunk in chunks]
        vectors = await self.embed_governor.execute(
            lambda: self.embeddings.embed_batch(texts), operation_name="Embed batch"
        )
        return await self.vector_governor.execute(
            lambda: self.vector_store.upsert_chunks(namespace, run_id, chunks, vectors),
            operation_name="Upsert chunks",
        )

    async def _store_individually(
        self, chunks: Sequence[Chunk], namespace: str, run_id: int
    ) -> tuple[int, int]:
        stored = 0
        failed = 0
        for chunk in chunks:
            try:
                vector = await self.embed_governor.execute(
                    lambda chunk=chunk: self.embeddings.embed_single(chunk.text),
                    operation_name="Embed chunk",
                )
                stored += await self.vector_governor.execute(
                    lambda chunk=chunk, vector=vector: self.vector_store.upsert_chunks(
                        namespace, run_id, [chunk], [vector]
                    ),
                    operation_name="Upsert chunk",
                )
            except ServiceDegradedError:
                raise
            except Exception as e:
                failed += 1
                logger.error(
                    f"Dropping chunk {chunk.ordinal} of {chunk.source_url}: {e}"
                )
        return stored, failed
