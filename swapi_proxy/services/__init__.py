"""
Service layer - upstream access, caching and character enrichment.

Provides:
- FetchClient: Rate-limit aware HTTP client with bounded concurrency
- SnapshotCache: TTL-gated, all-or-nothing cache of the people listing
- ReferenceCache: Static reference data (planets, species, films)
- Resolvers: Homeworld, species and film lookups returning Resolution
- EnrichmentOrchestrator: Order-preserving enrichment of a page
- CharacterService: Request flow used by the API
"""

from swapi_proxy.services.errors import (
    ServiceError,
    UpstreamError,
    RateLimitError,
    MalformedResponseError,
    SnapshotLoadError,
)
from swapi_proxy.services.client import FetchClient, UpstreamResponse
from swapi_proxy.services.cache import ReferenceCache
from swapi_proxy.services.snapshot import Snapshot, SnapshotCache
from swapi_proxy.services.result import ErrorKind, Resolution
from swapi_proxy.services.resolvers import (
    FilmResolver,
    HomeworldResolver,
    SpeciesResolver,
)
from swapi_proxy.services.enrichment import EnrichmentOrchestrator
from swapi_proxy.services.pagination import PageSelection, page_links, select
from swapi_proxy.services.characters import CharacterService

__all__ = [
    # Errors
    "ServiceError",
    "UpstreamError",
    "RateLimitError",
    "MalformedResponseError",
    "SnapshotLoadError",
    # Client
    "FetchClient",
    "UpstreamResponse",
    # Caches
    "ReferenceCache",
    "Snapshot",
    "SnapshotCache",
    # Resolution
    "ErrorKind",
    "Resolution",
    "FilmResolver",
    "HomeworldResolver",
    "SpeciesResolver",
    # Orchestration
    "EnrichmentOrchestrator",
    "PageSelection",
    "page_links",
    "select",
    "CharacterService",
]
