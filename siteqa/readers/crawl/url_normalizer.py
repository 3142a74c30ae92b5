"""Canonicalization of discovered links for same-origin crawling."""

from urllib.parse import urljoin, urlparse, urlunparse

# Path suffixes that never lead to HTML content
SKIP_EXTENSIONS = (
    ".pdf",
    ".doc",
    ".docx",
    ".xls",
    ".xlsx",
    ".ppt",
    ".pptx",
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".svg",
    ".webp",
    ".ico",
    ".bmp",
    ".css",
    ".js",
    ".json",
    ".xml",
    ".zip",
    ".gz",
    ".tar",
    ".mp3",
    ".mp4",
    ".avi",
    ".mov",
    ".woff",
    ".woff2",
    ".ttf",
)

SKIP_SCHEMES = ("mailto:", "tel:", "ftp:", "file:", "javascript:", "data:")


def normalize_url(base_url: str, raw_link: str | None) -> str | None:
    """Resolve a link against its page and keep it only if it is crawlable.

    Query and fragment are dropped before resolution. Links to documents,
    media and other non-HTML resources, non-http(s) schemes and other hosts
    are rejected.

    Args:
        base_url: URL of the page the link was found on
        raw_link: Value of the href attribute

    Returns:
        Canonical absolute URL, or None if the link should not be followed.

    Examples:
        >>> normalize_url("https://example.com/docs/", "intro?x=1#top")
        'https://example.com/docs/intro'
        >>> normalize_url("https://example.com/", "https://other.com/") is None
        True
    """
    if not raw_link:
        return None

    try:
        link = raw_link.strip().split("#", 1)[0].split("?", 1)[0]
        if not link:
            return None

        lowered = link.lower()
        if lowered.startswith(SKIP_SCHEMES):
            return None

        resolved = urlparse(urljoin(base_url, link))
        base = urlparse(base_url)

        if resolved.scheme not in ("http", "https"):
            return None
        if not resolved.hostname or resolved.hostname != base.hostname:
            return None
        if resolved.path.lower().endswith(SKIP_EXTENSIONS):
            return None

        return urlunparse(
            resolved._replace(path=resolved.path or "/", query="", fragment="")
        )
    except ValueError:
        # urlparse raises on malformed netlocs such as unbalanced IPv6 brackets
        return None
