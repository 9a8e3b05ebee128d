"""
RequestDeduplicator - Shares one upstream call between concurrent callers.

Characters on the same page often point at the same planet or film. While a
GET for a URL is in flight, later callers for that URL await the same task
instead of spending another admission slot on it.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class DeduplicatorStats:
    """Counters for shared in-flight requests."""

    started: int = 0
    shared: int = 0
    in_flight: int = 0

    @property
    def share_rate(self) -> float:
        total = self.started + self.shared
        if total == 0:
            return 0.0
        return self.shared / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "started": self.started,
            "shared": self.shared,
            "in_flight": self.in_flight,
            "share_rate": f"{self.share_rate:.2%}",
        }


class RequestDeduplicator:
    """
    Deduplicates concurrent async requests by key.

    Usage:
        dedup = RequestDeduplicator()
        data = await dedup.dedupe(url, lambda: fetch_once(url))
    """

    def __init__(self, debug: bool = False):
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._debug = debug
        self._stats = DeduplicatorStats()

    async def dedupe(self, key: str, request_fn: Callable[[], Awaitable[T]]) -> T:
        """
        Run request_fn for key, or join the call already running for it.

        Exceptions raised by the shared call reach every waiter.
        """
        # Lookup and insert happen with no await in between.
        task = self._in_flight.get(key)
        if task is None:
            self._stats.started += 1
            self._log(f"NEW: {key[:80]}")
            task = asyncio.ensure_future(request_fn())
            self._in_flight[key] = task
            task.add_done_callback(lambda _t: self._in_flight.pop(key, None))
        else:
            self._stats.shared += 1
            self._log(f"SHARED: {key[:80]}")

        # shield() keeps one cancelled waiter from cancelling the others.
        return await asyncio.shield(task)

    async def cancel_all(self) -> int:
        """Cancel all in-flight requests."""
        tasks = list(self._in_flight.values())
        self._in_flight.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            self._log(f"CANCEL_ALL: {len(tasks)} requests cancelled")
        return len(tasks)

    def get_stats(self) -> DeduplicatorStats:
        self._stats.in_flight = len(self._in_flight)
        return self._stats

    def _log(self, message: str) -> None:
        if self._debug:
            logger.debug(f"[Deduplicator] {message}")
