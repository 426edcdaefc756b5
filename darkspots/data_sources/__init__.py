"""External collaborators: feature lookup, reverse geocoder and raster datasets."""

from .base import CallableSpotDataSource, SpotDataSource
from .factory import build_data_source, build_raster
from .overpass_client import RoadFeature, fetch_features, parse_features
from .nominatim_client import reverse_geocode
from .raster_sources import SqlRasterSource, load_raster_json

__all__ = [
    "build_data_source",
    "build_raster",
    "SpotDataSource",
    "CallableSpotDataSource",
    "RoadFeature",
    "fetch_features",
    "parse_features",
    "reverse_geocode",
    "SqlRasterSource",
    "load_raster_json",
]
