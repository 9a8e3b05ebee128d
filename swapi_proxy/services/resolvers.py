"""
Reference resolvers for the derived character fields.

Each resolver turns a reference found in a character's detail record into a
display value and reports the outcome as a Resolution. Resolvers never raise
upstream failures; the orchestrator decides what a failed Resolution becomes.

- HomeworldResolver: direct planet URL only, no fallback
- SpeciesResolver: first species URL, else a sequential reverse search over
  the species listing
- FilmResolver: every film URL concurrently, else a filter over the film
  catalog
"""

import asyncio
import re
from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from swapi_proxy.models import SENTINEL, FilmRecord, SpeciesRecord, references_person
from swapi_proxy.services.cache import ReferenceCache
from swapi_proxy.services.client import FetchClient
from swapi_proxy.services.errors import MalformedResponseError, ServiceError
from swapi_proxy.services.result import ErrorKind, Resolution

_FILM_ID_RE = re.compile(r"/films/(\d+)")


async def fetch_properties(client: FetchClient, url: str) -> dict[str, Any]:
    """
    Fetch a SWAPI detail resource and return its ``result.properties``.

    Raises:
        MalformedResponseError: The response lacks result.properties
        UpstreamError: The fetch itself failed
    """
    response = await client.fetch(url)
    result = response.data.get("result")
    properties = result.get("properties") if isinstance(result, dict) else None
    if not isinstance(properties, dict):
        raise MalformedResponseError(
            f"No result.properties in response from {url}", url=url
        )
    return properties


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _next_url(data: dict[str, Any]) -> str | None:
    next_url = data.get("next")
    return next_url if isinstance(next_url, str) and next_url else None


class ReferenceResolver(ABC):
    """Base class for resolvers backed by the shared FetchClient."""

    def __init__(self, client: FetchClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    @property
    @abstractmethod
    def kind(self) -> str:
        """Name of the field this resolver fills."""
        ...

    def _failed(self, exc: Exception, context: str) -> Resolution[Any]:
        logger.warning(f"{self.kind.capitalize()} lookup failed for {context}: {exc}")
        return Resolution.failure(ErrorKind.from_exception(exc), str(exc))


class HomeworldResolver(ReferenceResolver):
    """Resolves ``homeworld`` to the planet name."""

    def __init__(
        self,
        client: FetchClient,
        base_url: str,
        cache: ReferenceCache[str] | None = None,
    ):
        super().__init__(client, base_url)
        self.cache: ReferenceCache[str] = cache or ReferenceCache("planets")

    @property
    def kind(self) -> str:
        return "homeworld"

    async def resolve(self, detail: dict[str, Any]) -> Resolution[str]:
        url = detail.get("homeworld")
        if not isinstance(url, str) or not url:
            return Resolution.failure(ErrorKind.MISSING_REFERENCE)

        cached = await self.cache.get(url)
        if cached is not None:
            return Resolution.success(cached)

        try:
            properties = await fetch_properties(self.client, url)
        except ServiceError as e:
            return self._failed(e, url)

        name = properties.get("name")
        if not isinstance(name, str) or not name:
            return Resolution.failure(ErrorKind.MALFORMED, f"Planet {url} has no name")

        await self.cache.set(url, name)
        return Resolution.success(name)


class SpeciesResolver(ReferenceResolver):
    """
    Resolves a character's species name.

    With no species reference on the character, scans the species listing one
    species at a time and stops at the first whose ``people`` names the
    character. The scan is never parallelized.
    """

    def __init__(
        self,
        client: FetchClient,
        base_url: str,
        cache: ReferenceCache[SpeciesRecord] | None = None,
        page_limit: int = 100,
    ):
        super().__init__(client, base_url)
        self.cache: ReferenceCache[SpeciesRecord] = cache or ReferenceCache("species")
        self.page_limit = page_limit

    @property
    def kind(self) -> str:
        return "species"

    @property
    def listing_url(self) -> str:
        return f"{self.base_url}/species?page=1&limit={self.page_limit}"

    async def resolve(self, entity_id: str, detail: dict[str, Any]) -> Resolution[str]:
        references = _string_list(detail.get("species"))
        if references:
            try:
                record = await self._species_record(references[0])
            except ServiceError as e:
                return self._failed(e, references[0])
            return Resolution.success(record.name)

        return await self._reverse_search(entity_id)

    async def _species_record(self, url: str) -> SpeciesRecord:
        cached = await self.cache.get(url)
        if cached is not None:
            return cached

        properties = await fetch_properties(self.client, url)
        name = properties.get("name")
        if not isinstance(name, str) or not name:
            raise MalformedResponseError(f"Species {url} has no name", url=url)

        record = SpeciesRecord(
            url=url, name=name, people=_string_list(properties.get("people"))
        )
        await self.cache.set(url, record)
        return record

    def _listing_item_url(self, item: Any) -> str | None:
        if not isinstance(item, dict):
            return None
        url = item.get("url")
        if isinstance(url, str) and url:
            return url
        uid = item.get("uid")
        return f"{self.base_url}/species/{uid}" if uid else None

    async def _reverse_search(self, entity_id: str) -> Resolution[str]:
        url: str | None = self.listing_url
        seen: set[str] = set()

        while url and url not in seen:
            seen.add(url)
            try:
                response = await self.client.fetch(url)
            except ServiceError as e:
                return self._failed(e, f"species listing of character {entity_id}")

            results = response.data.get("results")
            if not isinstance(results, list):
                return Resolution.failure(
                    ErrorKind.MALFORMED, f"Species listing {url} has no results"
                )

            for item in results:
                species_url = self._listing_item_url(item)
                if species_url is None:
                    continue
                try:
                    record = await self._species_record(species_url)
                except ServiceError as e:
                    logger.warning(f"Species detail fetch failed for {species_url}: {e}")
                    continue
                if references_person(record.people, entity_id):
                    return Resolution.success(record.name)

            url = _next_url(response.data)

        return Resolution.failure(
            ErrorKind.NOT_FOUND, f"No species lists character {entity_id}"
        )


class FilmResolver(ReferenceResolver):
    """
    Resolves a character's film titles.

    Film records are cached by film id. The whole film catalog is loaded once
    (and retried on later calls until it succeeds); it serves cached titles
    for direct references and is the data set for the reverse filter.
    """

    def __init__(
        self,
        client: FetchClient,
        base_url: str,
        cache: ReferenceCache[FilmRecord] | None = None,
    ):
        super().__init__(client, base_url)
        self.cache: ReferenceCache[FilmRecord] = cache or ReferenceCache("films")
        self._catalog: tuple[FilmRecord, ...] | None = None
        self._catalog_lock = asyncio.Lock()

    @property
    def kind(self) -> str:
        return "films"

    @property
    def catalog_url(self) -> str:
        return f"{self.base_url}/films"

    @property
    def catalog_loaded(self) -> bool:
        return bool(self._catalog)

    @staticmethod
    def film_key(url: str) -> str:
        match = _FILM_ID_RE.search(url)
        return match.group(1) if match else url

    async def resolve(
        self, entity_id: str, detail: dict[str, Any]
    ) -> Resolution[list[str]]:
        references = detail.get("films")
        if isinstance(references, list) and references:
            await self.load_catalog()
            titles = await asyncio.gather(*(self._title(ref) for ref in references))
            return Resolution.success(list(titles))

        catalog = await self.load_catalog()
        if catalog.error is not None:
            return Resolution.failure(catalog.error, catalog.detail)

        titles = [
            film.title
            for film in catalog.value or ()
            if references_person(film.characters, entity_id)
        ]
        if not titles:
            return Resolution.failure(
                ErrorKind.NOT_FOUND, f"No film lists character {entity_id}"
            )
        return Resolution.success(titles)

    async def _title(self, url: Any) -> str:
        """Title for one film URL; the sentinel if it cannot be resolved."""
        if not isinstance(url, str) or not url:
            return SENTINEL

        key = self.film_key(url)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached.title

        try:
            properties = await fetch_properties(self.client, url)
        except ServiceError as e:
            logger.warning(f"Film fetch failed for {url}: {e}")
            return SENTINEL

        title = properties.get("title")
        if not isinstance(title, str) or not title:
            logger.warning(f"Film {url} has no title")
            return SENTINEL

        await self.cache.set(
            key,
            FilmRecord(
                url=url, title=title, characters=_string_list(properties.get("characters"))
            ),
        )
        return title

    async def load_catalog(self) -> Resolution[tuple[FilmRecord, ...]]:
        """Load every film into the cache unless a non-empty catalog is loaded."""
        if self._catalog:
            return Resolution.success(self._catalog)

        async with self._catalog_lock:
            if self._catalog:
                return Resolution.success(self._catalog)

            try:
                records = await self._fetch_catalog()
            except ServiceError as e:
                return self._failed(e, "film catalog")

            await self.cache.set_many((self.film_key(r.url), r) for r in records)
            self._catalog = tuple(records)
            logger.info(f"Preloaded {len(records)} films into cache")
            return Resolution.success(self._catalog)

    async def _fetch_catalog(self) -> list[FilmRecord]:
        records: list[FilmRecord] = []
        url: str | None = self.catalog_url
        seen: set[str] = set()

        while url and url not in seen:
            seen.add(url)
            response = await self.client.fetch(url)
            items = response.data.get("result")
            if items is None:
                items = response.data.get("results")
            if not isinstance(items, list):
                raise MalformedResponseError(f"Film listing {url} has no results", url=url)

            for item in items:
                record = self._catalog_record(item)
                if record is not None:
                    records.append(record)

            url = _next_url(response.data)

        return records

    def _catalog_record(self, item: Any) -> FilmRecord | None:
        if not isinstance(item, dict):
            return None
        properties = item.get("properties")
        if not isinstance(properties, dict):
            return None
        title = properties.get("title")
        if not isinstance(title, str) or not title:
            return None

        url = properties.get("url")
        if not isinstance(url, str) or not url:
            uid = item.get("uid")
            if not uid:
                return None
            url = f"{self.base_url}/films/{uid}"

        return FilmRecord(
            url=url, title=title, characters=_string_list(properties.get("characters"))
        )
