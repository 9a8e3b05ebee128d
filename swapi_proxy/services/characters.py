"""
CharacterService - request-level flow for the characters endpoint.

ensure snapshot fresh -> filter and slice -> enrich the slice -> page links
"""

from datetime import timedelta
from typing import Any

import httpx
from loguru import logger

from swapi_proxy.models import CharacterPage
from swapi_proxy.services.cache import ReferenceCache
from swapi_proxy.services.client import FetchClient
from swapi_proxy.services.enrichment import EnrichmentOrchestrator
from swapi_proxy.services.pagination import page_links, select
from swapi_proxy.services.resolvers import (
    FilmResolver,
    HomeworldResolver,
    SpeciesResolver,
)
from swapi_proxy.services.snapshot import SnapshotCache
from swapi_proxy.settings import Settings


class CharacterService:
    """Owns the client, caches and resolvers for one running application."""

    def __init__(
        self,
        client: FetchClient,
        snapshots: SnapshotCache,
        orchestrator: EnrichmentOrchestrator,
        page_size: int = 10,
    ):
        self.client = client
        self.snapshots = snapshots
        self.orchestrator = orchestrator
        self.page_size = page_size

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "CharacterService":
        base_url = settings.swapi_base_url
        client = FetchClient.from_settings(settings, transport=transport)

        snapshots = SnapshotCache(
            client,
            base_url,
            ttl=timedelta(minutes=settings.snapshot_ttl_minutes),
            page_limit=settings.listing_page_limit,
        )
        orchestrator = EnrichmentOrchestrator(
            client,
            base_url,
            homeworld=HomeworldResolver(
                client, base_url, ReferenceCache("planets", debug=settings.debug)
            ),
            species=SpeciesResolver(
                client,
                base_url,
                ReferenceCache("species", debug=settings.debug),
                page_limit=settings.listing_page_limit,
            ),
            films=FilmResolver(
                client, base_url, ReferenceCache("films", debug=settings.debug)
            ),
        )
        return cls(client, snapshots, orchestrator, page_size=settings.page_size)

    async def get_page(
        self,
        search: str | None = None,
        page: int = 1,
        return_all: bool = False,
    ) -> CharacterPage:
        """
        Build one page of enriched characters.

        Raises:
            SnapshotLoadError: No character listing is available
        """
        snapshot = await self.snapshots.ensure_fresh()

        selection = select(
            snapshot.entities,
            search=search,
            page=page,
            page_size=self.page_size,
            return_all=return_all,
        )
        logger.info(
            f"Serving {len(selection.items)} characters "
            f"(search={search!r}, page={page}, all={return_all})"
        )

        characters = await self.orchestrator.enrich(selection.items)
        next_link, previous_link = page_links(
            page, selection.total_pages, return_all=return_all, search=search
        )

        return CharacterPage(
            characters=characters,
            total_pages=selection.total_pages,
            next=next_link,
            previous=previous_link,
        )

    def get_health_status(self) -> dict[str, Any]:
        return {
            "snapshot": self.snapshots.get_health_status(),
            "caches": {
                "planets": self.orchestrator.homeworld.cache.get_stats().to_dict(),
                "species": self.orchestrator.species.cache.get_stats().to_dict(),
                "films": self.orchestrator.films.cache.get_stats().to_dict(),
            },
            "client": self.client.get_health_status(),
        }

    async def close(self) -> None:
        await self.client.close()
