"""Splitting extracted page text into bounded chunks.

Two interchangeable strategies are provided, selected by the ``chunk_policy``
setting:

    SentenceChunker: accumulates whole sentences while the UTF-8 encoded size
        stays within a byte budget (vector store payload limits).
    WordChunker: accumulates words while the estimated token count stays
        within a token budget (embedding model context limits).

Both keep their input order, never invent characters, and only lose the
whitespace at chunk boundaries. ``make_chunks`` applies the minimum length
floor and attaches page provenance.

Examples:
    Sentence chunking with a small budget:

        chunker = SentenceChunker(max_bytes=32)
        chunker.split("First sentence here. Second one! Third?")
        # ["First sentence here. Second one!", "Third?"]

    Building chunks for a page:

        chunks = make_chunks(page, build_chunker(settings), min_chars=100)
"""

import math
import re
from dataclasses import dataclass
from typing import Protocol

from siteqa.core.config import Settings
from siteqa.readers.crawl.models import PageContent

# Split after runs of terminators followed by whitespace; the terminator
# stays attached to its sentence
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")

# Token estimate: 1 token ≈ 4 characters
CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Estimate the token count of text (1 token ≈ 4 characters, rounded up)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass(frozen=True)
class Chunk:
    """A piece of page text ready for embedding and storage.

    Attributes:
        text: Chunk text
        ordinal: Position in the chunker output for its page
        source_url: URL of the page the text came from
        source_title: Title of that page
    """

    text: str
    ordinal: int
    source_url: str
    source_title: str


class TextChunker(Protocol):
    """Anything that splits text into ordered pieces."""

    def split(self, text: str) -> list[str]: ...


class SentenceChunker:
    """Accumulates sentences up to a UTF-8 byte budget.

    A single sentence larger than the budget is emitted on its own rather
    than being cut.

    Attributes:
        max_bytes: Largest encoded size of a chunk made of several sentences

    Raises:
        ValueError: If max_bytes is not positive
    """

    def __init__(self, max_bytes: int = 40900) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        self.max_bytes = max_bytes

    def split(self, text: str) -> list[str]:
        """Split text into sentence-aligned chunks.

        Args:
            text: Text to split

        Returns:
            Chunk texts in input order (empty list for blank text)
        """
        chunks: list[str] = []
        current = ""

        for sentence in _SENTENCE_BOUNDARY.split(text):
            sentence = sentence.strip()
            if not sentence:
                continue

            candidate = f"{current} {sentence}" if current else sentence
            if len(candidate.encode("utf-8")) > self.max_bytes and current:
                chunks.append(current)
                current = sentence
            else:
                current = candidate

        if current:
            chunks.append(current)
        return chunks


class WordChunker:
    """Accumulates whitespace-separated words up to a token budget.

    Attributes:
        max_tokens: Largest estimated token count of a multi-word chunk

    Raises:
        ValueError: If max_tokens is not positive
    """

    def __init__(self, max_tokens: int = 500) -> None:
        if max_tokens <= 0:
            raise ValueError("max_tokens must be positive")
        self.max_tokens = max_tokens

    def split(self, text: str) -> list[str]:
        """Split text into word-aligned chunks.

        Args:
            text: Text to split

        Returns:
            Chunk texts in input order (empty list for blank text)
        """
        chunks: list[str] = []
        current: list[str] = []
        current_chars = 0

        for word in text.split():
            # Joined length if the word is added: existing chars + spaces + word
            candidate_chars = current_chars + len(current) + len(word)
            if current and math.ceil(candidate_chars / CHARS_PER_TOKEN) > self.max_tokens:
                chunks.append(" ".join(current))
                current = []
                current_chars = 0
            current.append(word)
            current_chars += len(word)

        if current:
            chunks.append(" ".join(current))
        return chunks


def build_chunker(settings: Settings) -> TextChunker:
    """Create the chunker selected by settings.chunk_policy."""
    if settings.chunk_policy == "word":
        return WordChunker(max_tokens=settings.chunk_max_tokens)
    return SentenceChunker(max_bytes=settings.chunk_max_bytes)


def make_chunks(page: PageContent, chunker: TextChunker, min_chars: int = 100) -> list[Chunk]:
    """Chunk a page's main content and drop fragments below the floor.

    Ordinals are assigned before filtering so that a chunk keeps the same
    ordinal whatever happens to its neighbours.

    Args:
        page: Extracted page
        chunker: Strategy used to split the text
        min_chars: Chunks shorter than this are discarded

    Returns:
        Chunks worth storing, in page order
    """
    return [
        Chunk(
            text=text,
            ordinal=ordinal,
            source_url=page.url,
            source_title=page.title,
        )
        for ordinal, text in enumerate(chunker.split(page.main_content))
        if len(text) >= min_chars
    ]
