"""
Domain models shared by the services and the API layer.
"""

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

SENTINEL = "Unknown"

_PEOPLE_ID_RE = re.compile(r"/people/(\d+)")


def extract_people_id(url: str | None) -> str | None:
    """Pull the numeric id out of a ``.../people/<id>`` URL."""
    if not url:
        return None
    match = _PEOPLE_ID_RE.search(url)
    return match.group(1) if match else None


def references_person(urls: Any, entity_id: str) -> bool:
    """True if any URL in urls points at ``/people/<entity_id>``."""
    if not isinstance(urls, list):
        return False
    suffix = f"/people/{entity_id}"
    return any(isinstance(u, str) and u.rstrip("/").endswith(suffix) for u in urls)


class BaseEntity(BaseModel):
    """A character as listed by the upstream people index."""

    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    name: str

    @classmethod
    def from_listing_item(cls, item: dict[str, Any]) -> "BaseEntity | None":
        """Build from one ``results`` entry; None if it has no id or a bad field."""
        url = item.get("url") or ""
        name = item.get("name") or SENTINEL
        uid = item.get("uid")
        if not isinstance(url, str) or not isinstance(name, str):
            return None
        if uid is not None and not isinstance(uid, (str, int)):
            return None

        entity_id = uid or extract_people_id(url)
        if not entity_id:
            return None
        return cls(id=str(entity_id), url=url, name=name)


class EnrichedEntity(BaseModel):
    """A character with its referenced attributes resolved to display values."""

    id: str = Field(serialization_alias="uid")
    name: str = SENTINEL
    height: str = SENTINEL
    mass: str = SENTINEL
    homeworld: str = SENTINEL
    species: str = SENTINEL
    films: list[str] = Field(default_factory=lambda: [SENTINEL])

    @classmethod
    def degraded(cls, base: BaseEntity) -> "EnrichedEntity":
        """Record used when the character's own detail cannot be fetched."""
        return cls(id=base.id, name=base.name or SENTINEL)


class FilmRecord(BaseModel):
    """Film title plus the people it references."""

    url: str
    title: str
    characters: list[str] = Field(default_factory=list)


class SpeciesRecord(BaseModel):
    """Species name plus the people it references."""

    url: str
    name: str
    people: list[str] = Field(default_factory=list)


class CharacterPage(BaseModel):
    """Response body of the characters endpoint."""

    characters: list[EnrichedEntity]
    total_pages: int
    next: str | bool | None = None
    previous: str | bool | None = None

    def to_response(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
