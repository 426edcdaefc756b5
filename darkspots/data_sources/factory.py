"""Factory helpers for choosing the raster dataset and lookup backends at startup."""

from __future__ import annotations

from darkspots import config
from darkspots.data_sources.base import CallableSpotDataSource, SpotDataSource
from darkspots.data_sources.nominatim_client import reverse_geocode
from darkspots.data_sources.overpass_client import fetch_features
from darkspots.raster import RasterGrid
from utils.logging_utils import get_tagged_logger, mask_db_url

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_RASTER_SOURCE = "json"


def build_data_source(settings: config.Settings | None = None) -> SpotDataSource:
    """Wire the OpenStreetMap feature lookup and reverse geocoder."""
    settings = settings or config.settings
    logger.info(
        "Using OpenStreetMap lookups",
        extra={"overpass_url": settings.overpass_url, "nominatim_url": settings.nominatim_url},
    )
    return CallableSpotDataSource(features=fetch_features, geocoder=reverse_geocode)


def build_raster(settings: config.Settings | None = None) -> RasterGrid:
    """Load the configured light-pollution raster."""
    settings = settings or config.settings
    source = (settings.raster_source or DEFAULT_RASTER_SOURCE).lower()

    if source == "json":
        from .raster_sources import load_raster_json

        logger.info("Using JSON raster source", extra={"path": str(settings.raster_path)})
        return load_raster_json(settings.raster_path)

    if source == "sql":
        from .raster_sources import SqlRasterSource

        db_url = settings.raster_database_url
        if not db_url:
            raise ValueError("raster_database_url must be set for the SQL raster source")
        logger.info("Using SQL raster source", extra={"db_url": mask_db_url(db_url)})
        return SqlRasterSource.from_url(
            db_url,
            cells_table=settings.raster_table,
            metadata_table=settings.raster_metadata_table,
        ).load()

    raise ValueError(f"Unknown raster source '{source}'")
