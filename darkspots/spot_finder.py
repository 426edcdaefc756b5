"""Composite dark-sky spot search.

Two strategies are built on the raster scanner, the darkness ranker and the
accessibility augmenter:

* nearest-N (`find_spots`): one disk around the origin, darkest candidates
  first, preferring ones with road access but falling back to remote ones;
* banded (`find_best_per_band`): one representative per radius band, chosen
  by a weighted sum of darkness and accessibility.

Both are deterministic for identical raster data and identical lookup
responses: ranking only starts once every lookup of a batch has resolved.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple, Union

from darkspots import config
from darkspots.accessibility import AccessibilityAugmenter, AugmentedCandidate
from darkspots.candidates import darkness_key, find_dark_candidates, take
from darkspots.data_sources.base import SpotDataSource
from darkspots.domain import (
    DEFAULT_RADIUS_BANDS,
    BandSearchResult,
    Coordinates,
    OriginLocation,
    RadiusBand,
    ScoredSpot,
    SearchPolicy,
    SpotRating,
)
from darkspots.geo import (
    InvalidSearchInput,
    bortle_label,
    brightness_to_score,
    score_to_label,
    validate_coordinates,
    validate_radius,
)
from darkspots.raster import RasterGrid
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="spot_finder")

OriginLike = Union[Coordinates, Tuple[float, float]]

# Darkness is measured against this class; brighter cells contribute nothing.
DARKNESS_BASELINE_CLASS = 9
# Radius used by `rate_spot` when the exact point has no coverage.
RATING_FALLBACK_RADIUS_KM = 1.0


def _as_origin(origin: OriginLike) -> Coordinates:
    """Validate and normalize an origin into Coordinates."""
    if isinstance(origin, Coordinates):
        return origin
    try:
        lat, lng = origin
    except (TypeError, ValueError) as exc:
        raise InvalidSearchInput(f"Origin must be a (lat, lng) pair, got {origin!r}") from exc
    validate_coordinates(lat, lng)
    return Coordinates(lat=float(lat), lng=float(lng))


def _validate_count(name: str, value: int) -> int:
    """Counts must be positive integers."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidSearchInput(f"{name} must be a positive integer, got {value!r}")
    return value


def round_km(distance_km: float) -> int:
    """Round half up to whole kilometers."""
    return int(math.floor(distance_km + 0.5))


def combined_score(brightness_class: int, accessibility_score: float, policy: SearchPolicy) -> float:
    """Weighted sum of darkness and accessibility used by banded search."""
    darkness = (DARKNESS_BASELINE_CLASS - brightness_class) * policy.darkness_weight
    return darkness + accessibility_score * policy.accessibility_weight


def to_scored_spot(
    augmented: AugmentedCandidate,
    *,
    combined: float | None = None,
    band: RadiusBand | None = None,
) -> ScoredSpot:
    """Map an augmented candidate to the user-facing ScoredSpot."""
    candidate = augmented.candidate
    verdict = augmented.verdict
    score = brightness_to_score(candidate.brightness_class)
    return ScoredSpot(
        lat=candidate.lat,
        lng=candidate.lng,
        brightness_class=candidate.brightness_class,
        score=score,
        label=score_to_label(score),
        sky_quality=bortle_label(candidate.brightness_class),
        distance_km=round_km(candidate.distance_km),
        has_road_access=verdict.has_road_access,
        nearest_feature=verdict.nearest_feature,
        accessibility_score=verdict.accessibility_score,
        accessibility_features=list(verdict.features),
        combined_score=combined,
        band_radius_km=band.max_km if band else None,
        band_label=band.display_label if band else None,
    )


class SpotFinder:
    """Stateless search orchestrator over a shared raster and lookup backend."""

    def __init__(
        self,
        grid: RasterGrid,
        data_source: SpotDataSource,
        *,
        policy: SearchPolicy | None = None,
        augmenter: AccessibilityAugmenter | None = None,
        settings: config.Settings | None = None,
    ):
        """Bind the raster, collaborators and search policy."""
        settings = settings or config.settings
        self.grid = grid
        self.data_source = data_source
        self.policy = policy or SearchPolicy.from_settings(settings)
        self.augmenter = augmenter or AccessibilityAugmenter(
            data_source,
            search_radius_m=settings.accessibility_search_radius_m,
            timeout_seconds=settings.accessibility_timeout_seconds,
            max_workers=settings.max_augment_workers,
        )
        self.geocoder_timeout = settings.geocoder_timeout_seconds

    def find_spots(
        self,
        origin: OriginLike,
        max_distance_km: float,
        desired_result_count: int = 3,
        minimum_count: int | None = None,
    ) -> List[ScoredSpot]:
        """
        Return up to `desired_result_count` dark spots within `max_distance_km`.

        Candidates with road access are preferred; when fewer than
        `minimum_count` (default: the policy's minimum, 1) have access, the
        whole augmented pool is used instead so remote spots still show up.
        """
        origin = _as_origin(origin)
        validate_radius(0, max_distance_km)
        _validate_count("desired_result_count", desired_result_count)
        minimum = _validate_count(
            "minimum_count", minimum_count if minimum_count is not None else self.policy.minimum_accessible_count
        )

        pool = find_dark_candidates(self.grid, origin, 0, max_distance_km, self.policy.nearest_pool_size)
        if not pool:
            logger.info(
                "No raster coverage in range",
                extra={"lat": origin.lat, "lng": origin.lng, "max_distance_km": max_distance_km},
            )
            return []

        augmented = self.augmenter.augment_all(pool)
        accessible = [a for a in augmented if a.has_road_access]
        if len(accessible) < minimum:
            logger.info(
                "Too few accessible candidates; falling back to remote spots",
                extra={"accessible": len(accessible), "minimum": minimum, "pool": len(augmented)},
            )
            accessible = augmented

        ranked = sorted(accessible, key=lambda a: darkness_key(a.candidate))
        spots = [to_scored_spot(a) for a in take(ranked, desired_result_count)]
        logger.info(
            "Nearest-N search complete",
            extra={"lat": origin.lat, "lng": origin.lng, "pool": len(pool), "results": len(spots)},
        )
        return spots

    def _best_in_band(self, origin: Coordinates, band: RadiusBand) -> Optional[ScoredSpot]:
        """Pick the highest combined-score candidate of one band, or None."""
        pool = find_dark_candidates(self.grid, origin, band.min_km, band.max_km, self.policy.band_pool_size)
        if not pool:
            logger.info("Band has no raster coverage", extra={"band": band.display_label})
            return None

        scored = [
            (combined_score(a.candidate.brightness_class, a.accessibility_score, self.policy), a)
            for a in self.augmenter.augment_all(pool)
        ]
        # highest combined score, then darker, then closer, then grid order
        best_score, best = min(scored, key=lambda pair: (-pair[0], *darkness_key(pair[1].candidate)))
        return to_scored_spot(best, combined=best_score, band=band)

    def _resolve_origin_name(self, origin: Coordinates) -> str:
        """Display name for the origin, falling back to formatted coordinates."""
        name = None
        try:
            name = self.data_source.reverse_geocode(origin.lat, origin.lng, timeout=self.geocoder_timeout)
        except Exception as exc:
            logger.warning("Reverse geocoding failed", extra={"lat": origin.lat, "lng": origin.lng, "error": repr(exc)})
        return name or f"{origin.lat:.4f}, {origin.lng:.4f}"

    def find_best_per_band(
        self,
        origin: OriginLike,
        bands: Sequence[RadiusBand] | None = None,
    ) -> BandSearchResult:
        """
        Return the best spot of every non-empty radius band.

        Bands without coverage are omitted, so the result may hold fewer spots
        than bands were requested.
        """
        origin = _as_origin(origin)
        bands = list(bands) if bands is not None else list(DEFAULT_RADIUS_BANDS)
        if not bands:
            raise InvalidSearchInput("At least one radius band is required")
        for band in bands:
            validate_radius(band.min_km, band.max_km)

        spots: List[ScoredSpot] = []
        for band in bands:
            spot = self._best_in_band(origin, band)
            if spot is not None:
                spots.append(spot)

        display_name = self._resolve_origin_name(origin)
        logger.info(
            "Banded search complete",
            extra={"lat": origin.lat, "lng": origin.lng, "bands": len(bands), "results": len(spots)},
        )
        return BandSearchResult(
            origin=OriginLocation(lat=origin.lat, lng=origin.lng, display_name=display_name),
            spots=spots,
        )

    def rate_spot(self, origin: OriginLike) -> SpotRating:
        """Rate darkness and road access of a single point."""
        origin = _as_origin(origin)
        brightness = self.grid.lookup(origin.lat, origin.lng)
        covered = brightness is not None
        if not covered:
            nearby = find_dark_candidates(self.grid, origin, 0, RATING_FALLBACK_RADIUS_KM, 1)
            if nearby:
                brightness, covered = nearby[0].brightness_class, True
            else:
                brightness = self.policy.uncovered_brightness_class

        verdict = self.augmenter.check(origin.lat, origin.lng)
        score = brightness_to_score(brightness)
        return SpotRating(
            lat=origin.lat,
            lng=origin.lng,
            brightness_class=brightness,
            score=score,
            label=score_to_label(score),
            covered=covered,
            has_road_access=verdict.has_road_access,
            nearest_feature=verdict.nearest_feature,
        )


def build_spot_finder(settings: config.Settings | None = None) -> SpotFinder:
    """Load the configured raster and lookups and build a SpotFinder."""
    from darkspots.data_sources import build_data_source, build_raster

    settings = settings or config.settings
    return SpotFinder(build_raster(settings), build_data_source(settings), settings=settings)
