"""Namespace derivation and per-namespace state lookups.

A namespace partitions the vector store and the answer cache by target site.
It is derived from the URL alone, so the same URL always maps to the same
stored content.
"""

import hashlib
import logging
import re
from typing import Any, Literal
from urllib.parse import urlparse

from siteqa.storage.cache import AnswerCache
from siteqa.storage.qdrant import VectorStoreManager

logger = logging.getLogger(__name__)

NamespaceScope = Literal["url", "domain"]

_UNSAFE = re.compile(r"[^a-z0-9]+")


def resolve_namespace(url: str, scope: NamespaceScope = "url") -> str:
    """Derive the namespace for a URL.

    Args:
        url: Absolute target URL
        scope: "url" gives every URL its own namespace; "domain" hashes only
            scheme and host so all pages of a site share one

    Returns:
        "<sanitized-host>_<first 16 hex chars of sha256>"

    Examples:
        >>> resolve_namespace("https://docs.example.com/guide")[:17]
        'docs_example_com_'
    """
    parsed = urlparse(url)
    host = parsed.hostname or "site"
    basis = url if scope == "url" else f"{parsed.scheme}://{host}"
    digest = hashlib.sha256(basis.encode("utf-8")).hexdigest()[:16]
    prefix = _UNSAFE.sub("_", host.lower()).strip("_") or "site"
    return f"{prefix}_{digest}"


class NamespaceManager:
    """Resolve namespaces and answer questions about their stored state.

    Args:
        vector_store: Store used to decide whether a namespace needs a crawl
        cache: Answer cache
        scope: Namespace scope ("url" or "domain")
        cache_ttl: Seconds a cached answer stays valid
    """

    def __init__(
        self,
        vector_store: VectorStoreManager,
        cache: AnswerCache,
        scope: NamespaceScope = "url",
        cache_ttl: int = 3600,
    ) -> None:
        self.vector_store = vector_store
        self.cache = cache
        self.scope = scope
        self.cache_ttl = cache_ttl

    def resolve(self, url: str) -> str:
        return resolve_namespace(url, self.scope)

    async def needs_ingestion(self, namespace: str) -> bool:
        """True when nothing is stored under the namespace yet."""
        count = await self.vector_store.count(namespace)
        logger.debug(f"Namespace {namespace} holds {count} vectors")
        return count == 0

    async def get_cached(self, namespace: str, question: str) -> dict[str, Any] | None:
        return await self.cache.get(namespace, question)

    async def put_cached(
        self,
        namespace: str,
        question: str,
        response: dict[str, Any],
        ttl: int | None = None,
    ) -> None:
        await self.cache.put(
            namespace, question, response, ttl if ttl is not None else self.cache_ttl
        )
