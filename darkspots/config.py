"""Service configuration pulled from environment variables via pydantic."""
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")

DEFAULT_RASTER_PATH = Path(__file__).resolve().parent / "data" / "light_pollution_sample.json"


class Settings(BaseSettings):
    """Environment-driven configuration for the dark-sky spot finder."""
    model_config = SettingsConfigDict(env_prefix="DARKSPOTS_", extra="ignore")

    raster_source: str = "json"  # options: json, sql
    raster_path: Path = DEFAULT_RASTER_PATH
    raster_database_url: str | None = None
    raster_table: str = "light_pollution_cells"
    raster_metadata_table: str = "light_pollution_grid"

    overpass_url: str = "https://overpass-api.de/api/interpreter"
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    user_agent: str = "darkspots/0.1 (dark-sky spot finder)"
    accessibility_search_radius_m: int = 2000
    accessibility_timeout_seconds: float = 5.0
    geocoder_timeout_seconds: float = 5.0
    max_augment_workers: int = 10
    http_cache_seconds: int = 3600

    darkness_weight: float = 2.0
    accessibility_weight: float = 1.0
    nearest_pool_size: int = 10
    band_pool_size: int = 5
    desired_result_count: int = 3

    api_key: str | None = None
    api_key_redis_url: str | None = None
    api_key_redis_set: str = "api_keys"

    @field_validator("overpass_url", "nominatim_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    @field_validator("raster_source", mode="after")
    @classmethod
    def lower_raster_source(cls, v: str) -> str:
        """Raster source names are matched case-insensitively."""
        return str(v).strip().lower()


settings = Settings()


if __name__ == "__main__":
    logger.logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
