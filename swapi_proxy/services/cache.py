"""
ReferenceCache - Async-safe store for static upstream reference data.

Planets, species and films do not change during the life of the process,
so entries carry no TTL. A cache is populated lazily, one resolved key at a
time, or in bulk when a whole catalog listing is loaded.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Generic, Iterable, TypeVar

from loguru import logger

T = TypeVar("T")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    size: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "size": self.size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }


class ReferenceCache(Generic[T]):
    """
    Keyed cache without expiry.

    Usage:
        titles: ReferenceCache[str] = ReferenceCache("films")

        title = await titles.get(url)
        if title is None:
            title = await fetch_title(url)
            await titles.set(url, title)
    """

    def __init__(self, name: str, debug: bool = False):
        self.name = name
        self._memory: dict[str, T] = {}
        self._debug = debug
        self._lock = asyncio.Lock()
        self._stats = CacheStats()

    def __len__(self) -> int:
        return len(self._memory)

    async def get(self, key: str) -> T | None:
        """Return the cached value for key, or None."""
        async with self._lock:
            if key not in self._memory:
                self._stats.misses += 1
                self._log(f"MISS: {key}")
                return None

            self._stats.hits += 1
            self._log(f"HIT: {key}")
            return self._memory[key]

    async def set(self, key: str, value: T) -> None:
        async with self._lock:
            self._memory[key] = value
            self._log(f"SET: {key}")

    async def set_many(self, items: Iterable[tuple[str, T]]) -> int:
        """Store several entries at once. Returns how many were written."""
        async with self._lock:
            count = 0
            for key, value in items:
                self._memory[key] = value
                count += 1
            self._log(f"SET_MANY: {count} entries")
            return count

    def get_stats(self) -> CacheStats:
        self._stats.size = len(self._memory)
        return self._stats

    def _log(self, message: str) -> None:
        if self._debug:
            logger.debug(f"[ReferenceCache:{self.name}] {message}")
