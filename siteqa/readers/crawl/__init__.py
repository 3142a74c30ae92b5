"""Web crawling components for siteqa."""

from siteqa.readers.crawl.extractor import ContentExtractor
from siteqa.readers.crawl.http_client import HttpPageFetcher
from siteqa.readers.crawl.models import ExtractedContent, FetchResult, PageContent
from siteqa.readers.crawl.url_normalizer import normalize_url
from siteqa.readers.crawl.url_validator import UrlValidator, ValidationError

__all__ = [
    "ContentExtractor",
    "ExtractedContent",
    "FetchResult",
    "HttpPageFetcher",
    "PageContent",
    "UrlValidator",
    "ValidationError",
    "normalize_url",
]
