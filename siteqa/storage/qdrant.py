"""Qdrant vector store manager for ingested site content.

All sites share one collection. Each chunk's payload carries the namespace of
the site it came from, and every read, count and delete is filtered on it, so
namespaces behave as isolated partitions.

Examples:
    >>> manager = VectorStoreManager(
    ...     qdrant_url="http://siteqa-vectors:6333",
    ...     collection_name="siteqa",
    ... )
    >>> await manager.ensure_collection()
    >>> await manager.ensure_payload_indexes()
    >>> stored = await manager.upsert_chunks(namespace, run_id, chunks, vectors)
    >>> matches = await manager.query(namespace, question_vector, top_k=5)
"""

import asyncio
import hashlib
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone
from typing import Any, TypeVar

from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import UnexpectedResponse
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from siteqa.core.errors import RateLimitError
from siteqa.core.metadata import MetadataKeys
from siteqa.processing.chunker import Chunk

T = TypeVar("T")

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
BATCH_SIZE = 100
STATS_NAMESPACE_LIMIT = 1000

SERVICE_NAME = "vector store"

PAYLOAD_INDEXES: list[tuple[str, PayloadSchemaType]] = [
    (MetadataKeys.NAMESPACE, PayloadSchemaType.KEYWORD),
    (MetadataKeys.SOURCE_URL, PayloadSchemaType.KEYWORD),
    (MetadataKeys.CHUNK_INDEX, PayloadSchemaType.INTEGER),
    (MetadataKeys.RUN_ID, PayloadSchemaType.INTEGER),
]


def chunk_id(namespace: str, run_id: int, source_url: str, ordinal: int) -> str:
    """Build the identifier of a stored chunk."""
    return f"{namespace}:{run_id}:{source_url}:{ordinal}"


def point_id_for(identifier: str) -> str:
    """Derive a deterministic Qdrant point UUID from a chunk identifier."""
    hash_bytes = hashlib.sha256(identifier.encode()).digest()
    return str(uuid.UUID(bytes=hash_bytes[:16]))


def namespace_filter(namespace: str) -> Filter:
    """Filter matching every point stored under a namespace."""
    return Filter(
        must=[
            FieldCondition(
                key=MetadataKeys.NAMESPACE,
                match=MatchValue(value=namespace),
            )
        ]
    )


class VectorStoreManager:
    """Manages the Qdrant collection holding chunk embeddings.

    Attributes:
        qdrant_url: URL of the Qdrant server (e.g., "http://siteqa-vectors:6333")
        collection_name: Name of the Qdrant collection to manage
        dimensions: Vector embedding dimensions (default 1024)
        client: AsyncQdrantClient instance for database operations
    """

    def __init__(
        self,
        qdrant_url: str,
        collection_name: str,
        dimensions: int = 1024,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        self.qdrant_url = qdrant_url
        self.collection_name = collection_name
        self.dimensions = dimensions
        self.client = client or AsyncQdrantClient(url=qdrant_url)

    async def ensure_collection(self) -> None:
        """Create the collection if it does not exist (idempotent).

        The collection uses cosine distance, which suits the normalized
        vectors produced by the embedding service. An existing collection is
        left untouched even if its parameters differ.
        """
        if await self.client.collection_exists(self.collection_name):
            return

        logger.info(f"Creating collection {self.collection_name} ({self.dimensions} dims)")
        await self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=VectorParams(size=self.dimensions, distance=Distance.COSINE),
        )

    async def ensure_payload_indexes(self) -> None:
        """Create payload indexes used for namespace filtering (idempotent).

        Raises:
            ValueError: If the collection does not exist yet
        """
        if not await self.client.collection_exists(self.collection_name):
            raise ValueError(
                f"Collection '{self.collection_name}' does not exist. "
                "Call ensure_collection() first."
            )

        for field_name, schema_type in PAYLOAD_INDEXES:

            # Default args bind the loop values
            async def create_index_operation(
                field_name: str = field_name,
                schema_type: PayloadSchemaType = schema_type,
            ) -> None:
                try:
                    await self.client.create_payload_index(
                        collection_name=self.collection_name,
                        field_name=field_name,
                        field_schema=schema_type,
                    )
                except UnexpectedResponse as e:
                    if "already exists" in str(e).lower():
                        return
                    raise

            await self._retry_with_backoff(create_index_operation)

    async def upsert_chunks(
        self,
        namespace: str,
        run_id: int,
        chunks: Sequence[Chunk],
        vectors: Sequence[list[float]],
    ) -> int:
        """Store chunks with their embeddings under a namespace.

        Point IDs are derived from namespace, run, page URL and ordinal, so
        re-storing the same chunk in the same run overwrites it.

        Args:
            namespace: Partition the chunks belong to
            run_id: Ingestion run identifier (start time in milliseconds)
            chunks: Chunks to store
            vectors: One embedding per chunk, in the same order

        Returns:
            Number of points written

        Raises:
            ValueError: If counts differ or a vector has the wrong dimensions
            RateLimitError: If Qdrant answers HTTP 429
            RuntimeError: If the upsert fails after max retries
        """
        if len(chunks) != len(vectors):
            raise ValueError(
                f"Got {len(chunks)} chunks but {len(vectors)} vectors"
            )
        for vector in vectors:
            self._validate_vector(vector)

        stored_at = datetime.now(timezone.utc).isoformat()
        points = [
            self._build_point(namespace, run_id, chunk, vector, stored_at)
            for chunk, vector in zip(chunks, vectors)
        ]

        for start in range(0, len(points), BATCH_SIZE):
            batch = points[start : start + BATCH_SIZE]

            async def upsert_batch_operation(batch: list[PointStruct] = batch) -> None:
                await self.client.upsert(
                    collection_name=self.collection_name,
                    points=batch,
                )

            await self._retry_with_backoff(upsert_batch_operation)

        return len(points)

    async def query(
        self, namespace: str, vector: list[float], top_k: int = 5
    ) -> list[dict[str, Any]]:
        """Find the chunks of a namespace most similar to a vector.

        Args:
            namespace: Partition to search
            vector: Query embedding
            top_k: Number of matches to return

        Returns:
            Matches in rank order, as dicts with 'id', 'score' and the payload
            fields

        Raises:
            ValueError: If the vector has the wrong dimensions or top_k <= 0
        """
        self._validate_vector(vector)
        if top_k <= 0:
            raise ValueError("top_k must be a positive integer")

        async def search_operation() -> Any:
            return await self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                query_filter=namespace_filter(namespace),
                limit=top_k,
                with_payload=True,
            )

        response = await self._retry_with_backoff(search_operation)

        return [
            {"id": str(point.id), "score": point.score, **(point.payload or {})}
            for point in (response.points if response else [])
        ]

    async def count(self, namespace: str) -> int:
        """Return the number of points stored under a namespace."""

        async def count_operation() -> Any:
            return await self.client.count(
                collection_name=self.collection_name,
                count_filter=namespace_filter(namespace),
                exact=True,
            )

        result = await self._retry_with_backoff(count_operation)
        return result.count

    async def describe_stats(self, limit: int = STATS_NAMESPACE_LIMIT) -> dict[str, int]:
        """Count stored vectors per namespace.

        Uses an exact facet on the namespace payload index, so
        ensure_payload_indexes() must have run.

        Args:
            limit: Most namespaces reported, largest first

        Returns:
            Mapping of namespace to vector count
        """
        response = await self._retry_with_backoff(
            lambda: self.client.facet(
                collection_name=self.collection_name,
                key=MetadataKeys.NAMESPACE,
                limit=limit,
                exact=True,
            )
        )
        return {str(hit.value): hit.count for hit in response.hits}

    async def delete_namespace(self, namespace: str) -> int:
        """Delete every point stored under a namespace.

        Returns:
            Number of points that were present before deletion
        """
        existing = await self.count(namespace)
        if existing == 0:
            return 0

        async def delete_operation() -> None:
            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(filter=namespace_filter(namespace)),
            )

        await self._retry_with_backoff(delete_operation)
        logger.info(f"Deleted {existing} points from namespace {namespace}")
        return existing

    async def close(self) -> None:
        """Close the underlying Qdrant client."""
        await self.client.close()

    def _build_point(
        self,
        namespace: str,
        run_id: int,
        chunk: Chunk,
        vector: list[float],
        stored_at: str,
    ) -> PointStruct:
        identifier = chunk_id(namespace, run_id, chunk.source_url, chunk.ordinal)
        payload: dict[str, Any] = {
            MetadataKeys.NAMESPACE: namespace,
            MetadataKeys.CHUNK_ID: identifier,
            MetadataKeys.CHUNK_INDEX: chunk.ordinal,
            MetadataKeys.CONTENT: chunk.text,
            MetadataKeys.SOURCE_URL: chunk.source_url,
            MetadataKeys.TITLE: chunk.source_title,
            MetadataKeys.RUN_ID: run_id,
            MetadataKeys.CRAWL_TIMESTAMP: stored_at,
        }
        return PointStruct(id=point_id_for(identifier), vector=vector, payload=payload)

    def _validate_vector(self, vector: list[float]) -> None:
        if not vector:
            raise ValueError("Vector cannot be empty")
        if len(vector) != self.dimensions:
            raise ValueError(
                f"Vector dimension mismatch: expected {self.dimensions}, "
                f"got {len(vector)}"
            )

    async def _retry_with_backoff(
        self, operation: Callable[[], Awaitable[T]], max_retries: int = MAX_RETRIES
    ) -> T:
        """Run a Qdrant operation, retrying server errors with 1s, 2s, 4s backoff.

        Raises:
            RateLimitError: On HTTP 429, left to the call governor
            RuntimeError: If all attempts fail
        """
        for attempt in range(max_retries):
            try:
                return await operation()
            except UnexpectedResponse as e:
                if e.status_code == 429:
                    raise RateLimitError(SERVICE_NAME) from e
                if attempt == max_retries - 1:
                    raise RuntimeError(f"Failed after {max_retries} retries: {e}") from e
                logger.warning(f"Qdrant operation failed, retrying in {2**attempt}s: {e}")
                await asyncio.sleep(2**attempt)

        raise RuntimeError("Unexpected error in _retry_with_backoff")
