"""Domain vocabulary and strict schemas for dark-sky spot searches.

This module defines the stable contract between the search engine and its
callers: enums, radius bands, the search policy, and the Pydantic models for
the user-facing results. No search logic lives here.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling; instances are immutable."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class FeatureKind(str, Enum):
    """Category of a road/parking feature reported by the feature lookup."""
    PARKING = "parking"
    PARK = "park"
    VIEWPOINT = "viewpoint"
    ROAD = "road"


# Kinds that can be reported as the nearest feature of an accessibility verdict.
ACCESS_FEATURE_KINDS: Tuple[FeatureKind, ...] = (FeatureKind.PARKING, FeatureKind.ROAD, FeatureKind.PARK)


class Coordinates(_StrictBaseModel):
    """A WGS84 point."""
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


class RadiusBand(_StrictBaseModel):
    """Annulus around the origin, inclusive on both ends."""
    min_km: float = Field(ge=0.0)
    max_km: float = Field(gt=0.0)
    display_label: str

    @model_validator(mode="after")
    def _check_order(self) -> "RadiusBand":
        """Reject bands whose inner radius exceeds the outer radius."""
        if self.min_km > self.max_km:
            raise ValueError(f"min_km ({self.min_km}) must not exceed max_km ({self.max_km})")
        return self


DEFAULT_RADIUS_BANDS: Tuple[RadiusBand, ...] = (
    RadiusBand(min_km=0, max_km=10, display_label="10 km"),
    RadiusBand(min_km=10, max_km=50, display_label="50 km"),
    RadiusBand(min_km=50, max_km=150, display_label="150 km"),
)


class NearestFeature(_StrictBaseModel):
    """Closest parking/road/park feature to a candidate."""
    kind: FeatureKind
    name: str | None = None
    distance_meters: float = Field(ge=0.0)


class AccessibilityFeature(_StrictBaseModel):
    """A notable feature near a candidate, used for display."""
    kind: FeatureKind
    name: str | None = None
    distance_meters: int = Field(ge=0)


class AccessibilityVerdict(_StrictBaseModel):
    """Outcome of one accessibility lookup for a single coordinate."""
    has_road_access: bool = False
    nearest_feature: NearestFeature | None = None
    accessibility_score: int = Field(default=0, ge=0)
    features: List[AccessibilityFeature] = Field(default_factory=list)
    degraded: bool = False


class SearchPolicy(_StrictBaseModel):
    """Tunable weights and pool sizes for the search strategies.

    The defaults reproduce the historical behaviour: darkness is weighted twice
    as much as accessibility, nearest-N searches pool 10 candidates and banded
    searches pool 5 per band.
    """
    darkness_weight: float = 2.0
    accessibility_weight: float = 1.0
    nearest_pool_size: int = Field(default=10, gt=0)
    band_pool_size: int = Field(default=5, gt=0)
    minimum_accessible_count: int = Field(default=1, ge=1)
    uncovered_brightness_class: int = Field(default=5, ge=1, le=9)

    @classmethod
    def from_settings(cls, settings: Any) -> "SearchPolicy":
        """Build a policy from a Settings-like object."""
        return cls(
            darkness_weight=settings.darkness_weight,
            accessibility_weight=settings.accessibility_weight,
            nearest_pool_size=settings.nearest_pool_size,
            band_pool_size=settings.band_pool_size,
        )


class ScoredSpot(_StrictBaseModel):
    """A ranked, user-facing dark-sky spot."""
    lat: float
    lng: float
    brightness_class: int = Field(ge=1, le=9)
    score: int = Field(ge=1, le=10)
    label: str
    sky_quality: str
    distance_km: int = Field(ge=0)
    has_road_access: bool
    nearest_feature: NearestFeature | None = None
    accessibility_score: int = 0
    accessibility_features: List[AccessibilityFeature] = Field(default_factory=list)
    combined_score: float | None = None
    band_radius_km: float | None = None
    band_label: str | None = None


class OriginLocation(_StrictBaseModel):
    """Search origin with its resolved display name."""
    lat: float
    lng: float
    display_name: str


class BandSearchResult(_StrictBaseModel):
    """Best spot per radius band plus the labelled origin."""
    origin: OriginLocation
    spots: List[ScoredSpot] = Field(default_factory=list)


class SpotRating(_StrictBaseModel):
    """Darkness and accessibility rating of an arbitrary point."""
    lat: float
    lng: float
    brightness_class: int = Field(ge=1, le=9)
    score: int = Field(ge=1, le=10)
    label: str
    covered: bool
    has_road_access: bool
    nearest_feature: NearestFeature | None = None
