"""FastAPI application exposing the enriched characters endpoint."""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from swapi_proxy import __version__
from swapi_proxy.exceptions import InternalServerError, ServiceUnavailableError
from swapi_proxy.services.characters import CharacterService
from swapi_proxy.services.errors import SnapshotLoadError
from swapi_proxy.settings import Settings, global_settings


class CharacterServer:
    """HTTP server for the character proxy."""

    def __init__(self, service: CharacterService, settings: Settings):
        self.service = service
        self.settings = settings
        self.app = FastAPI(
            title="SWAPI Character Proxy",
            version=__version__,
            lifespan=self._lifespan,
        )

        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origin_list,
            allow_methods=["GET"],
            allow_headers=["*"],
        )

        # Register routes
        self.app.get("/api/characters")(self.get_characters)
        self.app.get("/health")(self.health_check)

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        logger.info(f"Character proxy ready, upstream {self.settings.swapi_base_url}")
        yield
        await self.service.close()
        logger.info("Character proxy stopped")

    async def get_characters(
        self,
        search: Optional[str] = Query(None),
        page: int = Query(1, ge=1),
        return_all: bool = Query(False, alias="all"),
    ):
        """Return one page (or all) of enriched characters.

        Args:
            search: Case-insensitive name filter
            page: 1-based page number, ignored when all is set
            return_all: Skip pagination and return every match

        Returns:
            Response dict with characters, total_pages, next and previous
        """
        try:
            result = await self.service.get_page(
                search=search, page=page, return_all=return_all
            )
        except SnapshotLoadError as e:
            logger.error(f"Characters unavailable: {e}")
            raise ServiceUnavailableError() from e
        except Exception as e:
            logger.exception(f"Error building characters page: {e}")
            raise InternalServerError() from e

        return result.to_response()

    async def health_check(self):
        """Health check endpoint."""
        return {
            "status": "ok",
            "service": "swapi-proxy",
            **self.service.get_health_status(),
        }


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create the FastAPI app.

    Args:
        settings: Configuration, defaults to the environment settings
        transport: Optional httpx transport for the upstream client

    Returns:
        FastAPI app
    """
    settings = settings or global_settings
    service = CharacterService.from_settings(settings, transport=transport)
    server = CharacterServer(service, settings)
    return server.app
