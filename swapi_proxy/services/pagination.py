"""
Search filtering and page slicing over the character snapshot.
"""

import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar
from urllib.parse import urlencode

from swapi_proxy.models import BaseEntity

T = TypeVar("T", bound=BaseEntity)

CHARACTERS_PATH = "/api/characters"


@dataclass
class PageSelection(Generic[T]):
    items: list[T]
    total_pages: int


def filter_by_name(entities: Sequence[T], search: str | None) -> list[T]:
    """Case-insensitive substring match on name; empty search keeps all."""
    needle = (search or "").lower()
    if not needle:
        return list(entities)
    return [e for e in entities if needle in e.name.lower()]


def select(
    entities: Sequence[T],
    search: str | None = None,
    page: int = 1,
    page_size: int = 10,
    return_all: bool = False,
) -> PageSelection[T]:
    """
    Filter then slice.

    Pages are 1-based. A page past the end is empty, not an error. With
    return_all the whole filtered list is returned as a single page.
    """
    if page_size < 1:
        raise ValueError("page_size must be at least 1")

    filtered = filter_by_name(entities, search)
    if return_all:
        return PageSelection(items=filtered, total_pages=1)

    total_pages = math.ceil(len(filtered) / page_size)
    start = max(page - 1, 0) * page_size
    return PageSelection(items=filtered[start : start + page_size], total_pages=total_pages)


def _page_link(page: int, search: str | None) -> str:
    params: dict[str, str | int] = {"page": page}
    if search:
        params["search"] = search
    return f"{CHARACTERS_PATH}?{urlencode(params)}"


def page_links(
    page: int,
    total_pages: int,
    return_all: bool = False,
    search: str | None = None,
) -> tuple[str | bool | None, str | bool | None]:
    """Return (next, previous): False for return_all, None at a boundary."""
    if return_all:
        return False, False

    next_link = _page_link(page + 1, search) if page < total_pages else None
    previous_link = _page_link(page - 1, search) if page > 1 else None
    return next_link, previous_link
