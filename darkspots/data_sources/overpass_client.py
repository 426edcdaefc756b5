"""Helpers for fetching road/parking features from the OpenStreetMap Overpass API."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

import requests_cache
from pydantic import BaseModel, ConfigDict, Field

from darkspots.config import settings
from darkspots.domain import FeatureKind
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="overpass_client")

# Overpass queries are POSTed, so POST responses must be cacheable too.
session = requests_cache.CachedSession(
    ".overpass_cache",
    expire_after=settings.http_cache_seconds,
    allowable_methods=("GET", "POST"),
)
session.headers.update({"User-Agent": settings.user_agent})

ROAD_HIGHWAY_PATTERN = "^(primary|secondary|tertiary|unclassified|residential)$"


@dataclass(frozen=True)
class RoadFeature:
    """Normalized feature returned by the feature lookup."""
    kind: FeatureKind
    name: Optional[str]
    center_lat: float
    center_lng: float


class _OverpassCenter(BaseModel):
    model_config = ConfigDict(extra="ignore")
    lat: float
    lon: float


class _OverpassElement(BaseModel):
    model_config = ConfigDict(extra="ignore")
    type: str
    id: int
    lat: float | None = None
    lon: float | None = None
    center: _OverpassCenter | None = None
    tags: Dict[str, str] = Field(default_factory=dict)


class _OverpassResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")
    elements: List[_OverpassElement]


def build_overpass_query(lat: float, lng: float, radius_m: int) -> str:
    """Overpass QL for parking, parks, viewpoints and drivable roads around a point."""
    around = f"(around:{radius_m},{lat},{lng})"
    return f"""
    [out:json][timeout:25];
    (
      node["amenity"="parking"]{around};
      way["amenity"="parking"]{around};
      node["highway"="rest_area"]{around};
      way["highway"="rest_area"]{around};
      way["leisure"="park"]{around};
      way["leisure"="nature_reserve"]{around};
      relation["boundary"="national_park"]{around};
      way["natural"="beach"]{around};
      node["tourism"="viewpoint"]{around};
      way["highway"~"{ROAD_HIGHWAY_PATTERN}"]{around};
    );
    out center;
    """


def categorize_tags(tags: Dict[str, str]) -> Optional[FeatureKind]:
    """Map OSM tags to a feature kind; parking wins over park, viewpoint and road."""
    if tags.get("amenity") == "parking" or tags.get("highway") == "rest_area":
        return FeatureKind.PARKING
    if (
        tags.get("leisure") in ("park", "nature_reserve")
        or tags.get("boundary") == "national_park"
        or tags.get("natural") == "beach"
    ):
        return FeatureKind.PARK
    if tags.get("tourism") == "viewpoint":
        return FeatureKind.VIEWPOINT
    if tags.get("highway"):
        return FeatureKind.ROAD
    return None


def _element_to_feature(element: _OverpassElement) -> Optional[RoadFeature]:
    """Convert a validated element, dropping ones without kind or coordinates."""
    kind = categorize_tags(element.tags)
    if kind is None:
        return None
    if element.lat is not None and element.lon is not None:
        lat, lng = element.lat, element.lon
    elif element.center is not None:
        lat, lng = element.center.lat, element.center.lon
    else:
        return None
    return RoadFeature(kind=kind, name=element.tags.get("name") or None, center_lat=lat, center_lng=lng)


def parse_features(payload: dict) -> List[RoadFeature]:
    """Validate a raw Overpass payload and normalize it into RoadFeatures.

    Raises pydantic.ValidationError when the payload does not have the
    expected shape.
    """
    response = _OverpassResponse.model_validate(payload)
    out: List[RoadFeature] = []
    for element in response.elements:
        feature = _element_to_feature(element)
        if feature is not None:
            out.append(feature)
    return out


def fetch_features(
    latitude: float,
    longitude: float,
    *,
    radius_m: int | None = None,
    timeout: float | None = None,
) -> List[RoadFeature]:
    """Query Overpass for accessibility features around the coordinate.

    Network, HTTP and decoding errors propagate to the caller.
    """
    radius = radius_m if radius_m is not None else settings.accessibility_search_radius_m
    query = build_overpass_query(latitude, longitude, radius)

    resp = session.post(
        settings.overpass_url,
        data={"data": query},
        timeout=timeout if timeout is not None else settings.accessibility_timeout_seconds,
    )
    resp.raise_for_status()
    features = parse_features(resp.json())
    logger.debug(
        "Fetched Overpass features",
        extra={"latitude": latitude, "longitude": longitude, "radius_m": radius, "features": len(features)},
    )
    return features
