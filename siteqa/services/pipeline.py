"""Top-level ask and ingest flows.

AskPipeline ties validation, namespace resolution, caching, crawling and
retrieval together and converts every failure into an AskResponse error
envelope. It is the only entry point used by the API and the CLI.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from siteqa.core.config import Settings
from siteqa.core.errors import ServiceDegradedError
from siteqa.core.logger import bind_namespace
from siteqa.processing.chunker import build_chunker
from siteqa.readers.crawl.extractor import ContentExtractor
from siteqa.readers.crawl.http_client import HttpPageFetcher
from siteqa.readers.crawl.url_validator import UrlValidator, ValidationError
from siteqa.resilience.governor import CallGovernor
from siteqa.resilience.retry import RetryPolicy
from siteqa.services.crawler import CrawlController
from siteqa.services.generation import GenerationClient
from siteqa.services.models import AskResponse, ErrorKind, IngestResult
from siteqa.services.namespace import NamespaceManager
from siteqa.services.retrieval import RetrievalOrchestrator
from siteqa.storage.cache import AnswerCache
from siteqa.storage.embeddings import EmbeddingClient
from siteqa.storage.qdrant import VectorStoreManager

logger = logging.getLogger(__name__)

MISSING_INPUT_MESSAGE = "Both url and question are required"


class AskPipeline:
    """Answer questions about websites, crawling them on first use.

    Args:
        validator: Start URL validator
        namespaces: Namespace resolution and cache access
        crawler: Crawl controller used when a namespace is empty
        retrieval: Retrieval orchestrator producing answers
        vector_store: Vector store (collection setup and namespace deletes)
        closeables: Clients closed by close()
    """

    def __init__(
        self,
        validator: UrlValidator,
        namespaces: NamespaceManager,
        crawler: CrawlController,
        retrieval: RetrievalOrchestrator,
        vector_store: VectorStoreManager | Any,
        closeables: list[Any] | None = None,
    ) -> None:
        self.validator = validator
        self.namespaces = namespaces
        self.crawler = crawler
        self.retrieval = retrieval
        self.vector_store = vector_store
        self._closeables = closeables or []
        self._collection_ready = False
        self._ingest_locks: dict[str, asyncio.Lock] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> AskPipeline:
        """Build a pipeline with real clients configured from settings."""
        embeddings = EmbeddingClient(
            settings.tei_endpoint, dimensions=settings.embedding_dimensions
        )
        vector_store = VectorStoreManager(
            qdrant_url=settings.qdrant_url,
            collection_name=settings.collection_name,
            dimensions=settings.embedding_dimensions,
        )
        cache = AnswerCache(settings.redis_url, default_ttl=settings.cache_ttl_seconds)
        generator = GenerationClient(
            settings.llm_endpoint,
            model=settings.llm_model,
            api_key=settings.llm_api_key,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )
        fetcher = HttpPageFetcher(
            timeout=settings.fetch_timeout_seconds,
            max_bytes=settings.fetch_max_bytes,
            user_agent=settings.user_agent,
        )

        embed_governor = CallGovernor(
            min_interval=settings.embed_min_interval_seconds,
            max_calls_per_window=settings.embed_calls_per_minute,
            rate_limit_cooldown=settings.rate_limit_cooldown_seconds,
            max_rate_limit_retries=settings.rate_limit_max_retries,
        )
        vector_governor = CallGovernor(
            max_calls_per_window=settings.vector_calls_per_minute,
            rate_limit_cooldown=settings.rate_limit_cooldown_seconds,
            max_rate_limit_retries=settings.rate_limit_max_retries,
        )
        llm_governor = CallGovernor(
            min_interval=settings.llm_min_interval_seconds,
            max_calls_per_window=settings.llm_calls_per_minute,
            rate_limit_cooldown=settings.rate_limit_cooldown_seconds,
            max_rate_limit_retries=settings.rate_limit_max_retries,
        )

        crawler = CrawlController(
            fetcher=fetcher,
            extractor=ContentExtractor(),
            chunker=build_chunker(settings),
            embeddings=embeddings,
            vector_store=vector_store,
            embed_governor=embed_governor,
            vector_governor=vector_governor,
            retry_policy=RetryPolicy(
                max_attempts=settings.fetch_max_attempts,
                base_delay=settings.fetch_retry_base_delay,
            ),
            max_depth=settings.max_depth,
            max_links_per_page=settings.max_links_per_page,
            politeness_delay=settings.politeness_delay_seconds,
            min_chunk_chars=settings.min_chunk_chars,
            deadline_seconds=settings.crawl_deadline_seconds,
        )
        retrieval = RetrievalOrchestrator(
            embeddings=embeddings,
            vector_store=vector_store,
            generator=generator,
            embed_governor=embed_governor,
            vector_governor=vector_governor,
            llm_governor=llm_governor,
            top_k=settings.top_k,
            min_context_chars=settings.min_context_chars,
            max_context_tokens=settings.max_context_tokens,
            context_trim_step=settings.context_trim_step,
        )
        namespaces = NamespaceManager(
            vector_store=vector_store,
            cache=cache,
            scope=settings.namespace_scope,
            cache_ttl=settings.cache_ttl_seconds,
        )
        return cls(
            validator=UrlValidator(),
            namespaces=namespaces,
            crawler=crawler,
            retrieval=retrieval,
            vector_store=vector_store,
            closeables=[fetcher, vector_store, cache],
        )

    async def ask(self, url: str | None, question: str | None, refresh: bool = False) -> AskResponse:
        """Answer a question about the site at url.

        A cached answer is returned without touching any other service. The
        question is used verbatim as part of the cache key. With
        refresh, the cache is bypassed and the site's stored content is
        replaced by a fresh crawl.

        Returns:
            AskResponse envelope; never raises for request-level failures
        """
        if not url or not url.strip() or not question or not question.strip():
            return AskResponse.failure(ErrorKind.INVALID_INPUT, MISSING_INPUT_MESSAGE)

        try:
            start_url = self.validator.check(url)
        except ValidationError as e:
            return AskResponse.failure(ErrorKind.INVALID_INPUT, str(e))

        namespace = self.namespaces.resolve(start_url)
        with bind_namespace(namespace):
            return await self._answer(start_url, namespace, question, refresh)

    async def _answer(
        self, start_url: str, namespace: str, question: str, refresh: bool
    ) -> AskResponse:
        if not refresh:
            cached = await self.namespaces.get_cached(namespace, question)
            if cached is not None:
                logger.info(f"Cache hit for namespace {namespace}")
                response = AskResponse.from_dict(cached)
                return AskResponse(
                    success=response.success,
                    answer=response.answer,
                    metadata={**response.metadata, "cached": True},
                    error=response.error,
                    message=response.message,
                )

        try:
            ingest_result = await self._ensure_ingested(start_url, namespace, refresh)
            if not ingest_result.success:
                return AskResponse.failure(
                    ErrorKind.SCRAPING_FAILED,
                    ingest_result.error or f"Could not scrape {start_url}",
                )

            result = await self.retrieval.answer(question, namespace, start_url)
        except ServiceDegradedError as e:
            logger.warning(f"Request for {start_url} degraded: {e}")
            return AskResponse.failure(ErrorKind.SERVICE_DEGRADED, str(e))
        except Exception as e:
            logger.exception(f"Request for {start_url} failed")
            return AskResponse.failure(
                ErrorKind.SERVICE_ERROR, f"An external service failed: {type(e).__name__}"
            )

        response = AskResponse(
            success=True,
            answer=result.answer,
            metadata={
                "namespace": namespace,
                "url": start_url,
                "processed_at": result.processed_at,
                "pages_processed": ingest_result.pages_crawled,
                "cached": False,
            },
        )
        await self.namespaces.put_cached(namespace, question, response.to_dict())
        return response

    async def ingest(self, url: str | None, refresh: bool = False) -> IngestResult:
        """Crawl and store a site without asking anything.

        Raises:
            ValidationError: If url is missing, malformed or unsafe
        """
        start_url = self.validator.check(url)
        namespace = self.namespaces.resolve(start_url)
        with bind_namespace(namespace):
            return await self._ensure_ingested(start_url, namespace, refresh)

    async def stats(self) -> dict[str, int]:
        """Stored chunk counts keyed by namespace."""
        await self._prepare_collection()
        return await self.vector_store.describe_stats()

    async def close(self) -> None:
        """Close every client owned by the pipeline."""
        for closeable in self._closeables:
            await closeable.close()

    async def _ensure_ingested(
        self, start_url: str, namespace: str, refresh: bool
    ) -> IngestResult:
        """Crawl the namespace unless it already holds content.

        Requests for the same namespace queue on one lock, so a site is crawled
        once and nobody answers from a half-finished crawl.
        """
        await self._prepare_collection()

        lock = self._ingest_locks.setdefault(namespace, asyncio.Lock())
        async with lock:
            if refresh:
                deleted = await self.vector_store.delete_namespace(namespace)
                logger.info(f"Refresh requested, removed {deleted} vectors from {namespace}")

            if not await self.namespaces.needs_ingestion(namespace):
                logger.info(f"Namespace {namespace} already populated, skipping crawl")
                return IngestResult(namespace=namespace, success=True, skipped=True)

            return await self.crawler.ingest(start_url, namespace)

    async def _prepare_collection(self) -> None:
        if self._collection_ready:
            return
        await self.vector_store.ensure_collection()
        await self.vector_store.ensure_payload_indexes()
        self._collection_ready = True
