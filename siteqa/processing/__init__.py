"""Text processing for the ingestion pipeline."""

from siteqa.processing.chunker import (
    Chunk,
    SentenceChunker,
    WordChunker,
    build_chunker,
    estimate_tokens,
    make_chunks,
)

__all__ = [
    "Chunk",
    "SentenceChunker",
    "WordChunker",
    "build_chunker",
    "estimate_tokens",
    "make_chunks",
]
