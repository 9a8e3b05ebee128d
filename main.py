"""
SWAPI character proxy entry point
Serves the enriched characters API with uvicorn
"""

import sys

import uvicorn
from loguru import logger

from swapi_proxy.api import create_app
from swapi_proxy.settings import global_settings


def configure_logging(level: str) -> None:
    """Route loguru output to stderr at the configured level"""
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def main() -> None:
    """Configure logging and serve the app"""
    configure_logging(global_settings.log_level)
    logger.info("Starting SWAPI character proxy...")

    app = create_app(global_settings)
    uvicorn.run(
        app,
        host=global_settings.host,
        port=global_settings.port,
        log_level=global_settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
