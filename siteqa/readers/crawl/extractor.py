"""Heuristic text extraction from HTML pages.

Turns a parsed HTML document into an ordered, deduplicated collection of text
blocks plus page metadata. Text is collected from the most content-like
regions first so that retrieval context leans toward article and body text
rather than page chrome.

Collection order:
    1. Priority containers (article, main, section, .content, ...)
    2. Headings and paragraphs
    3. List items longer than the list item floor
    4. Free text nodes directly under <body>

Length floors are noise filters. Dropping a short but real block is
acceptable; letting navigation bullets through is what they guard against.

Example:
    >>> extractor = ContentExtractor()
    >>> page = extractor.extract_page(html, "https://example.com/")
    >>> page.main_content.split("\\n\\n")[0]
    'Welcome to the example documentation site.'
"""

import json
import logging
import re
from collections.abc import Iterable, Iterator
from functools import reduce
from typing import Any

from bs4 import BeautifulSoup, NavigableString, Tag

from siteqa.readers.crawl.models import ExtractedContent, PageContent
from siteqa.readers.crawl.url_normalizer import normalize_url

logger = logging.getLogger(__name__)

# Elements that never contribute text blocks
NON_CONTENT_SELECTOR = "script, style, noscript, iframe, img, svg, header, footer, nav"

PRIORITY_SELECTORS = (
    "article",
    "main",
    "section",
    ".content",
    "#content",
    ".post",
    ".article",
    '[role="main"]',
    '[role="article"]',
)

TEXT_SELECTOR = "h1, h2, h3, h4, h5, h6, p"

BLOCK_SEPARATOR = "\n\n"

_WHITESPACE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Collapse runs of whitespace into single spaces and trim."""
    return _WHITESPACE.sub(" ", text).strip()


def merge_structured_data(blocks: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Fold JSON-LD mappings into one dict, later keys overriding earlier ones.

    Args:
        blocks: Mappings in document order

    Returns:
        Merged mapping (inputs are not modified)
    """

    def _merge(accumulated: dict[str, Any], block: dict[str, Any]) -> dict[str, Any]:
        merged = dict(accumulated)
        merged.update(block)
        return merged

    return reduce(_merge, blocks, {})


class ContentExtractor:
    """Extracts text blocks, metadata and links from HTML.

    Args:
        min_block_chars: Containers, headings, paragraphs and free text must
            be longer than this to count (default 20)
        min_list_item_chars: List items must be longer than this (default 50)
    """

    def __init__(self, min_block_chars: int = 20, min_list_item_chars: int = 50) -> None:
        self.min_block_chars = min_block_chars
        self.min_list_item_chars = min_list_item_chars

    def extract_page(self, html: str, url: str) -> PageContent:
        """Parse HTML and extract everything the crawler needs from it.

        Links are collected before page chrome is stripped, so site
        navigation still drives the crawl even though it contributes no text.

        Args:
            html: Raw page HTML
            url: Canonical URL of the page (base for link resolution)

        Returns:
            PageContent for the page
        """
        soup = BeautifulSoup(html, "html.parser")
        internal_links = self.discover_links(soup, url)
        content = self.extract(soup)
        return PageContent(
            url=url,
            title=content.title,
            meta_description=content.meta_description,
            main_content=content.main_content,
            structured_data=content.structured_data,
            internal_links=internal_links,
        )

    def discover_links(self, soup: BeautifulSoup, base_url: str) -> tuple[str, ...]:
        """Collect canonical same-origin links in document order.

        Args:
            soup: Parsed document
            base_url: URL the document was fetched from

        Returns:
            Deduplicated tuple of crawlable URLs
        """
        links: dict[str, None] = {}
        for anchor in soup.find_all("a", href=True):
            normalized = normalize_url(base_url, anchor.get("href"))
            if normalized:
                links.setdefault(normalized, None)
        return tuple(links)

    def extract(self, soup: BeautifulSoup) -> ExtractedContent:
        """Extract title, description, structured data and main content.

        Mutates ``soup``: non-content elements are removed from it.

        Args:
            soup: Parsed document

        Returns:
            ExtractedContent for the document
        """
        title = soup.title.get_text().strip() if soup.title else ""

        meta = soup.find("meta", attrs={"name": "description"})
        meta_description = ""
        if isinstance(meta, Tag):
            meta_description = str(meta.get("content") or "")

        # JSON-LD lives in <script> tags, so read it before they are removed
        structured_data = merge_structured_data(self._structured_blocks(soup))

        for element in soup.select(NON_CONTENT_SELECTOR):
            if not element.decomposed:
                element.decompose()

        blocks: dict[str, None] = {}
        for text in self._candidate_texts(soup):
            blocks.setdefault(clean_text(text), None)

        return ExtractedContent(
            title=title,
            meta_description=meta_description,
            main_content=BLOCK_SEPARATOR.join(blocks),
            structured_data=structured_data,
        )

    def _structured_blocks(self, soup: BeautifulSoup) -> Iterator[dict[str, Any]]:
        for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
            raw = script.get_text()
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning("Skipping malformed JSON-LD block: %s", e)
                continue

            if isinstance(data, dict):
                yield data
            elif isinstance(data, list):
                yield from (item for item in data if isinstance(item, dict))
            else:
                logger.debug("Ignoring JSON-LD block of type %s", type(data).__name__)

    def _candidate_texts(self, soup: BeautifulSoup) -> Iterator[str]:
        for selector in PRIORITY_SELECTORS:
            for element in soup.select(selector):
                yield from self._long_enough(element, self.min_block_chars)

        for element in soup.select(TEXT_SELECTOR):
            yield from self._long_enough(element, self.min_block_chars)

        for element in soup.find_all("li"):
            yield from self._long_enough(element, self.min_list_item_chars)

        if soup.body is not None:
            for node in soup.body.children:
                # Exact type check skips Comment, Doctype and other subclasses
                if type(node) is NavigableString:
                    text = str(node).strip()
                    if len(text) > self.min_block_chars:
                        yield text

    def _long_enough(self, element: Tag, floor: int) -> Iterator[str]:
        text = element.get_text().strip()
        if len(text) > floor:
            yield text
