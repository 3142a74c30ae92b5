"""Start URL cleanup and validation with SSRF protection.

The crawler only ever follows links on the start URL's own host, so the start
URL is the one place where a caller chooses which machine we talk to. It is
cleaned up (scheme added, fragment dropped) and then checked against loopback,
private and cloud metadata targets before any request is made.
"""

import ipaddress
import re
from urllib.parse import urlparse, urlunparse


class ValidationError(ValueError):
    """Raised when URL validation fails."""

    pass


# Blocked hostnames for SSRF protection (case-insensitive)
# Note: localhost is handled separately by allow_localhost flag
BLOCKED_HOSTNAMES = {
    "metadata.google.internal",
    "metadata",
}

# Decimal: 2130706433 = 127.0.0.1, Hex: 0x7f000001 = 127.0.0.1
ALTERNATE_IP_NOTATION = re.compile(r"^(0x[0-9a-fA-F]+|\d{8,})$")


class UrlValidator:
    """Cleans and validates start URLs.

    Args:
        allow_private_ips: Allow private IP addresses (e.g., 192.168.x.x)
        allow_localhost: Allow localhost/127.0.0.1

    Example:
        >>> UrlValidator().check("example.com/docs#intro")
        'https://example.com/docs'
    """

    def __init__(
        self,
        allow_private_ips: bool = False,
        allow_localhost: bool = False,
    ) -> None:
        self.allow_private_ips = allow_private_ips
        self.allow_localhost = allow_localhost

    def check(self, url: str | None) -> str:
        """Clean a user supplied URL and validate the result.

        Args:
            url: URL as typed by the user

        Returns:
            Absolute http(s) URL safe to crawl

        Raises:
            ValidationError: If the URL is empty, malformed or unsafe
        """
        cleaned = self.clean(url)
        self.validate(cleaned)
        return cleaned

    def clean(self, url: str | None) -> str:
        """Add an https scheme when missing, default the path to "/" and drop
        the fragment.

        Args:
            url: URL as typed by the user

        Returns:
            Absolute URL string

        Raises:
            ValidationError: If nothing usable remains
        """
        cleaned = (url or "").strip()
        if not cleaned:
            raise ValidationError("URL is required")

        if "://" not in cleaned:
            cleaned = f"https://{cleaned}"

        try:
            parsed = urlparse(cleaned)
            hostname = parsed.hostname
        except ValueError as e:
            raise ValidationError(f"Invalid URL format: {url}") from e

        if not hostname or any(ch.isspace() for ch in parsed.netloc):
            raise ValidationError(f"Invalid URL format: {url}")

        # An empty path is the site root, spelled the way discovered links are
        return urlunparse(parsed._replace(path=parsed.path or "/", fragment=""))

    def validate(self, url: str) -> None:
        """Validate URL and check for SSRF risks.

        Args:
            url: URL to validate

        Raises:
            ValidationError: If URL is invalid or poses SSRF risk
        """
        try:
            parsed = urlparse(url)
            hostname = parsed.hostname
        except ValueError as e:
            raise ValidationError(f"Malformed URL: {url}") from e

        if parsed.scheme not in ("http", "https"):
            raise ValidationError(f"URL must use http or https scheme: {url}")

        if not hostname:
            raise ValidationError(f"URL missing hostname: {url}")

        hostname_lower = hostname.lower()

        if hostname_lower in BLOCKED_HOSTNAMES:
            raise ValidationError(f"Blocked hostname: {url}")

        try:
            ip = ipaddress.ip_address(hostname)
        except ValueError:
            ip = None
            if ALTERNATE_IP_NOTATION.match(hostname):
                raise ValidationError(
                    f"IP address in alternate notation not allowed: {url}"
                )

        if not self.allow_localhost:
            if hostname_lower == "localhost" or (ip is not None and ip.is_loopback):
                raise ValidationError(f"Localhost access not allowed: {url}")

        if not self.allow_private_ips and ip is not None and (
            ip.is_private
            or ip.is_link_local
            or ip.is_reserved
            or ip.is_multicast
            or ip.is_unspecified
        ):
            raise ValidationError(f"Non-public IP addresses not allowed: {url}")
