"""
Shared fixtures: an in-memory SWAPI served through httpx.MockTransport.
"""

import asyncio
from collections import Counter
from typing import Any, Awaitable, Callable

import httpx
import pytest

from swapi_proxy.services.client import FetchClient

BASE = "https://swapi.test/api"


def person_url(pid: str | int) -> str:
    return f"{BASE}/people/{pid}"


def detail(properties: dict[str, Any]) -> dict[str, Any]:
    """Wrap properties the way SWAPI detail endpoints do."""
    return {"message": "ok", "result": {"properties": properties}}


def person(
    pid: str | int,
    name: str,
    homeworld: str | None = None,
    films: list[str] | None = None,
    species: list[str] | None = None,
    height: str = "172",
    mass: str = "77",
) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "name": name,
        "height": height,
        "mass": mass,
        "url": person_url(pid),
    }
    if homeworld is not None:
        properties["homeworld"] = homeworld
    if films is not None:
        properties["films"] = films
    if species is not None:
        properties["species"] = species
    return detail(properties)


def listing_item(pid: str | int, name: str) -> dict[str, Any]:
    return {"uid": str(pid), "name": name, "url": person_url(pid)}


class FakeSwapi:
    """
    Route table keyed by full URL.

    A route is either a list of (status, payload) served in order (the last
    one repeats) or an async callable taking the request.
    """

    def __init__(self):
        self.routes: dict[str, Any] = {}
        self.delays: dict[str, float] = {}
        self.calls: Counter[str] = Counter()
        self.order: list[str] = []
        self.active = 0
        self.max_active = 0

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def add(self, url: str, payload: Any, status: int = 200) -> None:
        self.routes[url] = [(status, payload)]

    def add_sequence(self, url: str, responses: list[tuple[int, Any]]) -> None:
        self.routes[url] = list(responses)

    def add_handler(
        self, url: str, handler: Callable[[httpx.Request], Awaitable[httpx.Response]]
    ) -> None:
        self.routes[url] = handler

    def add_people(self, names: list[str], page_size: int = 10, limit: int = 100) -> None:
        """Register a paginated people listing, ids starting at 1."""
        items = [listing_item(i + 1, n) for i, n in enumerate(names)]
        pages = [items[i : i + page_size] for i in range(0, len(items), page_size)] or [[]]
        for number, page in enumerate(pages, start=1):
            url = (
                f"{BASE}/people?page=1&limit={limit}"
                if number == 1
                else f"{BASE}/people?page={number}&limit={limit}"
            )
            next_url = (
                f"{BASE}/people?page={number + 1}&limit={limit}"
                if number < len(pages)
                else None
            )
            self.add(url, {"message": "ok", "results": page, "next": next_url})

    async def handle(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls[url] += 1
        self.order.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(url, 0))
            route = self.routes.get(url)
            if route is None:
                return httpx.Response(404, json={"message": "not found"})
            if callable(route):
                return await route(request)

            status, payload = route[0] if len(route) == 1 else route.pop(0)
            if isinstance(payload, (bytes, str)):
                return httpx.Response(status, content=payload)
            return httpx.Response(status, json=payload)
        finally:
            self.active -= 1


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def upstream() -> FakeSwapi:
    return FakeSwapi()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def client(upstream: FakeSwapi, sleeps: SleepRecorder) -> FetchClient:
    return FetchClient(
        max_attempts=5,
        backoff_base=2.0,
        max_concurrency=2,
        transport=upstream.transport,
        sleep=sleeps,
    )
