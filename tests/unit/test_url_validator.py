"""Tests for siteqa.readers.crawl.url_validator module."""

import pytest

from siteqa.readers.crawl.url_validator import UrlValidator, ValidationError


class TestClean:
    """Start URL cleanup."""

    def test_adds_https_scheme_when_missing(self) -> None:
        assert UrlValidator().clean("example.com/docs") == "https://example.com/docs"

    def test_keeps_explicit_http_scheme(self) -> None:
        assert UrlValidator().clean("http://example.com") == "http://example.com/"

    def test_drops_fragment_but_keeps_query(self) -> None:
        cleaned = UrlValidator().clean("https://example.com/a?page=2#section")
        assert cleaned == "https://example.com/a?page=2"

    def test_strips_surrounding_whitespace(self) -> None:
        assert UrlValidator().clean("  example.com  ") == "https://example.com/"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_rejects_missing_url(self, value: str | None) -> None:
        with pytest.raises(ValidationError, match="URL is required"):
            UrlValidator().clean(value)

    def test_rejects_url_with_spaces_in_host(self) -> None:
        with pytest.raises(ValidationError, match="Invalid URL format"):
            UrlValidator().clean("not a url")


class TestValidate:
    """SSRF protection on the cleaned URL."""

    @pytest.mark.parametrize("url", ["https://example.com", "http://docs.example.org/x"])
    def test_accepts_public_urls(self, url: str) -> None:
        UrlValidator().validate(url)

    def test_rejects_non_http_scheme(self) -> None:
        with pytest.raises(ValidationError, match="URL must use http or https"):
            UrlValidator().validate("ftp://example.com")

    @pytest.mark.parametrize(
        "url", ["http://localhost:8000", "http://127.0.0.2", "http://[::1]/"]
    )
    def test_rejects_loopback(self, url: str) -> None:
        with pytest.raises(ValidationError, match="Localhost access not allowed"):
            UrlValidator().validate(url)

    def test_allows_localhost_when_configured(self) -> None:
        UrlValidator(allow_localhost=True).validate("http://localhost:8000")

    @pytest.mark.parametrize(
        "url", ["http://192.168.1.1", "http://10.0.0.5", "http://169.254.169.254", "http://0.0.0.0"]
    )
    def test_rejects_non_public_ips(self, url: str) -> None:
        with pytest.raises(ValidationError, match="Non-public IP addresses not allowed"):
            UrlValidator().validate(url)

    def test_allows_private_ip_when_configured(self) -> None:
        UrlValidator(allow_private_ips=True).validate("http://192.168.1.1")

    @pytest.mark.parametrize("url", ["http://2130706433/", "http://0x7f000001/"])
    def test_rejects_alternate_ip_notation(self, url: str) -> None:
        with pytest.raises(ValidationError, match="alternate notation"):
            UrlValidator().validate(url)

    def test_rejects_cloud_metadata_hostname(self) -> None:
        with pytest.raises(ValidationError, match="Blocked hostname"):
            UrlValidator().validate("http://metadata.google.internal/computeMetadata")


def test_check_cleans_then_validates() -> None:
    """check() returns the cleaned URL and still applies SSRF rules."""
    validator = UrlValidator()

    assert validator.check("example.com#top") == "https://example.com/"
    with pytest.raises(ValidationError):
        validator.check("127.0.0.1")
