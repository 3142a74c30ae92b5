"""Centralized payload key definitions for stored chunks.

Usage:
    from siteqa.core.metadata import MetadataKeys

    payload[MetadataKeys.NAMESPACE]  # Instead of payload["namespace"]
"""


class MetadataKeys:
    """Constants for vector payload keys."""

    __slots__ = ()

    NAMESPACE = "namespace"  # Partition key of the ingested site
    CHUNK_ID = "chunk_id"  # namespace:run_id:source_url:ordinal
    CHUNK_INDEX = "chunk_index"  # Ordinal of chunk within its page
    CONTENT = "content"  # Raw text content of chunk
    SOURCE_URL = "source_url"  # Page the chunk was extracted from
    TITLE = "title"  # Page title
    RUN_ID = "run_id"  # Ingestion run timestamp (ms)
    CRAWL_TIMESTAMP = "crawl_timestamp"  # ISO8601 time the chunk was stored
