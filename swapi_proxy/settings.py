import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Upstream Configuration
    swapi_base_url: str = Field(
        default="https://swapi.tech/api", alias="SWAPI_BASE_URL"
    )
    listing_page_limit: int = Field(default=100, alias="LISTING_PAGE_LIMIT")
    request_timeout: float = Field(default=30.0, alias="REQUEST_TIMEOUT")

    # Fetch Client Configuration
    max_concurrency: int = Field(default=2, alias="MAX_CONCURRENCY")
    max_attempts: int = Field(default=5, alias="FETCH_MAX_ATTEMPTS")
    backoff_base_seconds: float = Field(default=2.0, alias="FETCH_BACKOFF_BASE")

    # Cache Configuration
    snapshot_ttl_minutes: float = Field(default=15, alias="SNAPSHOT_TTL_MINUTES")

    # API Configuration
    page_size: int = Field(default=10, alias="PAGE_SIZE")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=5000, alias="PORT")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    debug: bool = Field(default=False, alias="DEBUG")

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


global_settings = Settings.model_validate(dict(os.environ))
