"""
Service layer exceptions.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class UpstreamError(ServiceError):
    """Upstream request failed and will not be retried."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        url: str | None = None,
        service_id: str | None = "swapi",
    ):
        self.status = status
        self.url = url
        self.message = message
        super().__init__(message, service_id=service_id)


class RateLimitError(UpstreamError):
    """Upstream signalled rate limiting (HTTP 429)."""

    def __init__(self, url: str, retry_after: float | None = None):
        self.retry_after = retry_after
        msg = f"Rate limit exceeded for {url}"
        if retry_after:
            msg += f", retry after {retry_after}s"
        super().__init__(msg, status=429, url=url)


class MalformedResponseError(UpstreamError):
    """Upstream response is not JSON or lacks an expected field."""

    pass


class SnapshotLoadError(ServiceError):
    """The character listing could not be loaded and nothing can be served."""

    pass
