"""
FetchClient - Async HTTP client for the SWAPI upstream.

Combines:
- Linear backoff retries on rate limiting (HTTP 429) only
- A process-wide admission semaphore bounding concurrent upstream calls
- RequestDeduplicator so concurrent GETs for one URL share a single call
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from swapi_proxy.services.deduplicator import RequestDeduplicator
from swapi_proxy.services.errors import (
    MalformedResponseError,
    RateLimitError,
    UpstreamError,
)
from swapi_proxy.settings import Settings

RATE_LIMIT_STATUS = 429


@dataclass
class UpstreamResponse:
    """A decoded upstream JSON response."""

    url: str
    status_code: int
    data: dict[str, Any]


class FetchClient:
    """
    Retrieves one upstream resource per call.

    Only rate-limit responses are retried; the wait before retry n is
    ``backoff_base * n`` seconds. Every other failure raises UpstreamError on
    first occurrence. Each HTTP attempt holds one admission slot, released
    before any backoff sleep.

    Usage:
        client = FetchClient(max_concurrency=2)
        response = await client.fetch("https://swapi.tech/api/people/1")
        name = response.data["result"]["properties"]["name"]
    """

    def __init__(
        self,
        max_attempts: int = 5,
        backoff_base: float = 2.0,
        max_concurrency: int = 2,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        use_dedup: bool = True,
        debug: bool = False,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self._max_attempts = max_attempts
        self._backoff_base = backoff_base
        self._max_concurrency = max_concurrency
        self._timeout = timeout
        self._transport = transport
        self._sleep = sleep
        self._use_dedup = use_dedup
        self._debug = debug

        self._admission = asyncio.Semaphore(max_concurrency)
        self._deduplicator = RequestDeduplicator(debug=debug)
        self._in_flight = 0

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "FetchClient":
        return cls(
            max_attempts=settings.max_attempts,
            backoff_base=settings.backoff_base_seconds,
            max_concurrency=settings.max_concurrency,
            timeout=settings.request_timeout,
            transport=transport,
            debug=settings.debug,
        )

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def in_flight(self) -> int:
        """Number of admission slots currently held."""
        return self._in_flight

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                transport=self._transport,
            )
        return self._http_client

    async def fetch(self, url: str) -> UpstreamResponse:
        """
        Fetch and decode a JSON resource.

        Raises:
            RateLimitError: Still rate limited after the last attempt
            MalformedResponseError: Body is not a JSON object
            UpstreamError: Any other HTTP or transport failure
        """
        if self._use_dedup:
            return await self._deduplicator.dedupe(
                url, lambda: self._fetch_with_retry(url)
            )
        return await self._fetch_with_retry(url)

    async def _fetch_with_retry(self, url: str) -> UpstreamResponse:
        attempt = 1
        while True:
            try:
                return await self._execute_request(url)
            except RateLimitError:
                if attempt >= self._max_attempts:
                    logger.error(
                        f"Giving up on {url} after {self._max_attempts} "
                        f"rate-limited attempts"
                    )
                    raise
                delay = self._backoff_base * attempt
                logger.warning(
                    f"Rate limited on {url} (attempt {attempt}/{self._max_attempts}), "
                    f"retrying in {delay:.1f}s"
                )

            await self._sleep(delay)
            attempt += 1

    async def _execute_request(self, url: str) -> UpstreamResponse:
        """Execute a single HTTP attempt inside an admission slot."""
        client = await self._get_http_client()

        async with self._admission:
            self._in_flight += 1
            try:
                response = await client.get(url)
            except httpx.TimeoutException as e:
                raise UpstreamError(
                    f"Request to {url} timed out after {self._timeout}s", url=url
                ) from e
            except httpx.RequestError as e:
                raise UpstreamError(str(e) or type(e).__name__, url=url) from e
            finally:
                self._in_flight -= 1

        if response.status_code == RATE_LIMIT_STATUS:
            raise RateLimitError(url, retry_after=_parse_retry_after(response))

        if response.is_error:
            raise UpstreamError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                status=response.status_code,
                url=url,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Invalid JSON from {url}", status=response.status_code, url=url
            ) from e

        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Expected a JSON object from {url}",
                status=response.status_code,
                url=url,
            )

        self._log(f"GET {url} -> {response.status_code}")
        return UpstreamResponse(url=url, status_code=response.status_code, data=data)

    async def close(self) -> None:
        """Close the HTTP client and cancel shared in-flight requests."""
        await self._deduplicator.cancel_all()
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug("FetchClient closed")

    async def __aenter__(self) -> "FetchClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def get_health_status(self) -> dict[str, Any]:
        return {
            "max_concurrency": self._max_concurrency,
            "in_flight": self._in_flight,
            "deduplicator": self._deduplicator.get_stats().to_dict(),
        }

    def _log(self, message: str) -> None:
        if self._debug:
            logger.debug(f"[FetchClient] {message}")


def _parse_retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None
