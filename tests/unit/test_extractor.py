"""Tests for siteqa.readers.crawl.extractor module."""

import logging

import pytest

from siteqa.readers.crawl.extractor import ContentExtractor, merge_structured_data

BASE_URL = "https://example.com/"

DOCS_PAGE = """
<html>
<head>
  <title> Example Docs </title>
  <meta name="description" content="Docs for Example">
  <script type="application/ld+json">{"@type": "Organization", "name": "Example"}</script>
  <script type="application/ld+json">[{"name": "Example Inc", "url": "https://example.com"}, 5]</script>
  <script type="application/ld+json">{not json}</script>
</head>
<body>
  <nav><a href="/about">About us and the team behind it</a><a href="https://other.com/x">Ext</a></nav>
  <header>Site header with a long enough text here</header>
  <h1>Welcome to the example documentation</h1>
  <p>This paragraph describes   the product in
     detail.</p>
  <p>short</p>
  <ul>
    <li>Tiny item</li>
    <li>This list item is long enough to pass the fifty character floor easily.</li>
  </ul>
  <a href="/guide#intro">Guide</a> <a href="/about">again</a> <a href="/file.pdf">pdf</a>
  <footer>Footer text that is long enough to count</footer>
</body>
</html>
"""


@pytest.fixture
def extractor() -> ContentExtractor:
    return ContentExtractor()


class TestExtractPage:
    """Full page extraction."""

    def test_reads_title_and_meta_description(self, extractor: ContentExtractor) -> None:
        page = extractor.extract_page(DOCS_PAGE, BASE_URL)

        assert page.url == BASE_URL
        assert page.title == "Example Docs"
        assert page.meta_description == "Docs for Example"

    def test_collects_blocks_in_priority_order(self, extractor: ContentExtractor) -> None:
        page = extractor.extract_page(DOCS_PAGE, BASE_URL)

        assert page.main_content == (
            "Welcome to the example documentation\n\n"
            "This paragraph describes the product in detail.\n\n"
            "This list item is long enough to pass the fifty character floor easily."
        )

    def test_drops_page_chrome(self, extractor: ContentExtractor) -> None:
        page = extractor.extract_page(DOCS_PAGE, BASE_URL)

        assert "Site header" not in page.main_content
        assert "Footer text" not in page.main_content
        assert "About us" not in page.main_content

    def test_links_include_navigation(self, extractor: ContentExtractor) -> None:
        """Links inside <nav> still count, deduplicated in document order."""
        page = extractor.extract_page(DOCS_PAGE, BASE_URL)

        assert page.internal_links == (
            "https://example.com/about",
            "https://example.com/guide",
        )

    def test_merges_structured_data_and_skips_malformed(
        self, extractor: ContentExtractor, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            page = extractor.extract_page(DOCS_PAGE, BASE_URL)

        assert page.structured_data == {
            "@type": "Organization",
            "name": "Example Inc",
            "url": "https://example.com",
        }
        assert "malformed JSON-LD" in caplog.text


def test_priority_containers_come_first(extractor: ContentExtractor) -> None:
    """Article text precedes earlier paragraphs and is not repeated."""
    html = (
        "<html><body><p>A paragraph outside of the article element.</p>"
        "<article><p>Article paragraph with enough text.</p></article></body></html>"
    )

    page = extractor.extract_page(html, BASE_URL)

    assert page.main_content == (
        "Article paragraph with enough text.\n\n"
        "A paragraph outside of the article element."
    )


def test_body_text_nodes_are_included(extractor: ContentExtractor) -> None:
    html = (
        "<html><body>Loose text directly in the body element."
        "<!-- a comment that is long enough to pass --><div>x</div></body></html>"
    )

    page = extractor.extract_page(html, BASE_URL)

    assert page.main_content == "Loose text directly in the body element."


def test_missing_metadata_defaults_to_empty(extractor: ContentExtractor) -> None:
    page = extractor.extract_page("<html><body><p>tiny</p></body></html>", BASE_URL)

    assert page.title == ""
    assert page.meta_description == ""
    assert page.main_content == ""
    assert page.structured_data == {}
    assert page.internal_links == ()


def test_merge_structured_data_later_keys_win() -> None:
    first = {"name": "A", "kind": "x"}
    second = {"name": "B"}

    merged = merge_structured_data([first, second])

    assert merged == {"name": "B", "kind": "x"}
    assert first == {"name": "A", "kind": "x"}
