"""
EnrichmentOrchestrator - turns a slice of listed characters into full records.

For every character the detail record is fetched first; the homeworld,
species and film resolvers then run concurrently. All upstream calls, across
characters and across requests, go through the FetchClient's admission slots.
"""

import asyncio
from typing import Any, Sequence

from loguru import logger

from swapi_proxy.models import SENTINEL, BaseEntity, EnrichedEntity
from swapi_proxy.services.client import FetchClient
from swapi_proxy.services.errors import ServiceError
from swapi_proxy.services.resolvers import (
    FilmResolver,
    HomeworldResolver,
    SpeciesResolver,
    fetch_properties,
)


def _text(value: Any) -> str:
    if value is None or value == "":
        return SENTINEL
    return str(value)


class EnrichmentOrchestrator:
    """
    Builds EnrichedEntity records in input order.

    A character whose detail cannot be fetched is returned degraded (listed
    name, every other field "Unknown"). A failed resolver only degrades its
    own field.
    """

    def __init__(
        self,
        client: FetchClient,
        base_url: str,
        homeworld: HomeworldResolver,
        species: SpeciesResolver,
        films: FilmResolver,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.homeworld = homeworld
        self.species = species
        self.films = films

    def detail_url(self, entity: BaseEntity) -> str:
        return f"{self.base_url}/people/{entity.id}"

    async def enrich(self, entities: Sequence[BaseEntity]) -> list[EnrichedEntity]:
        """Enrich every entity; position i of the result belongs to entities[i]."""
        if not entities:
            return []

        enriched = await asyncio.gather(*(self.enrich_one(e) for e in entities))
        logger.info(f"Enriched {len(enriched)} characters")
        return list(enriched)

    async def enrich_one(self, entity: BaseEntity) -> EnrichedEntity:
        url = self.detail_url(entity)
        try:
            detail = await fetch_properties(self.client, url)
        except ServiceError as e:
            logger.warning(f"Error fetching details for character {entity.id}: {e}")
            return EnrichedEntity.degraded(entity)

        homeworld, species, films = await asyncio.gather(
            self.homeworld.resolve(detail),
            self.species.resolve(entity.id, detail),
            self.films.resolve(entity.id, detail),
        )

        return EnrichedEntity(
            id=entity.id,
            name=_text(detail.get("name")),
            height=_text(detail.get("height")),
            mass=_text(detail.get("mass")),
            homeworld=homeworld.unwrap_or(SENTINEL),
            species=species.unwrap_or(SENTINEL),
            films=films.unwrap_or([SENTINEL]),
        )
