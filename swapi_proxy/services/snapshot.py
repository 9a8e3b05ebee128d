"""
SnapshotCache - TTL-gated, all-or-nothing cache of the people listing.

The listing is walked page by page through the FetchClient. A new Snapshot is
published by swapping one reference only after the whole walk succeeds, so
readers see either the previous complete list or the new complete list.

Failure policy: if a refresh fails while a previously valid snapshot exists,
the old snapshot keeps being served and the next call retries. Without one,
SnapshotLoadError is raised.
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable

from loguru import logger

from swapi_proxy.models import BaseEntity
from swapi_proxy.services.client import FetchClient
from swapi_proxy.services.errors import (
    MalformedResponseError,
    ServiceError,
    SnapshotLoadError,
)


@dataclass(frozen=True)
class Snapshot:
    """Immutable, ordered listing of every character."""

    entities: tuple[BaseEntity, ...] = ()
    fetched_at: float = 0.0
    valid: bool = False

    def __len__(self) -> int:
        return len(self.entities)

    def age(self, now: float) -> float:
        return now - self.fetched_at


class SnapshotCache:
    """
    Owns the process-wide character Snapshot.

    Usage:
        cache = SnapshotCache(client, "https://swapi.tech/api")
        snapshot = await cache.ensure_fresh()
        for entity in snapshot.entities:
            ...
    """

    def __init__(
        self,
        client: FetchClient,
        base_url: str,
        ttl: timedelta = timedelta(minutes=15),
        page_limit: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._ttl = ttl.total_seconds()
        self._page_limit = page_limit
        self._clock = clock

        self._snapshot = Snapshot()
        self._force_refresh = False
        self._refresh_lock = asyncio.Lock()
        self._refresh_count = 0
        self._failure_count = 0

    @property
    def listing_url(self) -> str:
        return f"{self._base_url}/people?page=1&limit={self._page_limit}"

    def get(self) -> Snapshot:
        """Return the currently published snapshot without any I/O."""
        return self._snapshot

    def is_stale(self, now: float | None = None) -> bool:
        now = self._clock() if now is None else now
        return self._is_stale(self._snapshot, now)

    def _is_stale(self, snapshot: Snapshot, now: float) -> bool:
        if not snapshot.valid or self._force_refresh:
            return True
        return snapshot.age(now) > self._ttl

    def invalidate(self) -> None:
        """Force the next ensure_fresh() to walk the listing again."""
        self._force_refresh = True

    async def ensure_fresh(self, now: float | None = None) -> Snapshot:
        """
        Return a servable snapshot, refreshing it first if stale.

        Raises:
            SnapshotLoadError: The refresh failed and no valid snapshot exists
        """
        now = self._clock() if now is None else now

        if not self._is_stale(self._snapshot, now):
            return self._snapshot

        async with self._refresh_lock:
            # Another caller may have refreshed while we waited.
            current = self._snapshot
            if not self._is_stale(current, now):
                return current

            try:
                entities = await self._walk_listing()
            except ServiceError as e:
                self._failure_count += 1
                if current.valid:
                    logger.warning(
                        f"Character refresh failed, serving previous snapshot "
                        f"of {len(current)} characters: {e}"
                    )
                    return current
                logger.error(f"Failed to load characters: {e}")
                raise SnapshotLoadError("Failed to load characters.") from e

            snapshot = Snapshot(entities=tuple(entities), fetched_at=now, valid=True)
            self._snapshot = snapshot
            self._force_refresh = False
            self._refresh_count += 1
            logger.info(f"Loaded {len(snapshot)} characters into cache")
            return snapshot

    async def _walk_listing(self) -> list[BaseEntity]:
        """Follow ``next`` links until exhausted. Raises on any failed page."""
        entities: list[BaseEntity] = []
        seen: set[str] = set()
        url: str | None = self.listing_url

        while url:
            if url in seen:
                logger.warning(f"Listing cursor loops back to {url}, stopping walk")
                break
            seen.add(url)

            response = await self._client.fetch(url)
            results = response.data.get("results")
            if not isinstance(results, list):
                raise MalformedResponseError(
                    f"Listing page {url} has no results array", url=url
                )
            if not results:
                break

            for item in results:
                entity = (
                    BaseEntity.from_listing_item(item) if isinstance(item, dict) else None
                )
                if entity is None:
                    logger.warning(f"Skipping malformed listing entry: {item!r}")
                    continue
                entities.append(entity)

            next_url = response.data.get("next")
            url = next_url if isinstance(next_url, str) and next_url else None

        return entities

    def get_health_status(self, now: float | None = None) -> dict[str, Any]:
        now = self._clock() if now is None else now
        snapshot = self._snapshot
        return {
            "valid": snapshot.valid,
            "size": len(snapshot),
            "age_seconds": round(snapshot.age(now), 1) if snapshot.valid else None,
            "stale": self._is_stale(snapshot, now),
            "refreshes": self._refresh_count,
            "failures": self._failure_count,
        }
