"""Exception types shared across siteqa components."""


class SiteQAError(Exception):
    """Base class for siteqa errors."""

    pass


class RateLimitError(SiteQAError):
    """Raised by a client when the remote service signals a rate limit.

    Args:
        service: Name of the service that throttled the call
        retry_after: Seconds the service asked us to wait, if it said
    """

    def __init__(self, service: str, retry_after: float | None = None) -> None:
        self.service = service
        self.retry_after = retry_after
        message = f"{service} rate limit exceeded"
        if retry_after is not None:
            message += f" (retry after {retry_after:.1f}s)"
        super().__init__(message)


class ServiceDegradedError(SiteQAError):
    """Raised when a governed call is still rate limited after all retries."""

    pass


class FetchError(SiteQAError):
    """Raised when a page fetch attempt fails and should be retried."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")
