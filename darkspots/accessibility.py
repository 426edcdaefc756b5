"""Attach road/parking accessibility to dark-sky candidates.

Every candidate costs exactly one feature lookup. The lookups for a search run
concurrently on a thread pool and are joined before any ranking happens, so
the order of results never depends on which lookup finished first. A lookup
that fails or overruns its deadline degrades that candidate to "no road
access" instead of failing the search.
"""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from darkspots.candidates import Candidate
from darkspots.data_sources.base import SpotDataSource
from darkspots.data_sources.overpass_client import RoadFeature
from darkspots.domain import (
    ACCESS_FEATURE_KINDS,
    AccessibilityFeature,
    AccessibilityVerdict,
    FeatureKind,
    NearestFeature,
)
from darkspots.geo import haversine_m
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="accessibility")

FEATURE_POINTS = {
    FeatureKind.PARKING: 2,
    FeatureKind.PARK: 2,
    FeatureKind.VIEWPOINT: 1,
    FeatureKind.ROAD: 1,
}
MAX_DISPLAY_FEATURES = 5
# Extra time granted to the join on top of the per-lookup timeout.
JOIN_GRACE_SECONDS = 1.0


@dataclass(frozen=True)
class AugmentedCandidate:
    """A candidate with its accessibility verdict attached."""
    candidate: Candidate
    verdict: AccessibilityVerdict

    @property
    def has_road_access(self) -> bool:
        return self.verdict.has_road_access

    @property
    def accessibility_score(self) -> int:
        return self.verdict.accessibility_score


def degraded_verdict() -> AccessibilityVerdict:
    """Verdict used when the lookup could not be completed."""
    return AccessibilityVerdict(has_road_access=False, degraded=True)


def assess_features(lat: float, lng: float, features: Iterable[RoadFeature]) -> AccessibilityVerdict:
    """Turn the features found around (lat, lng) into a verdict.

    Any feature counts as evidence of road access. The nearest parking, road
    or park is reported, and the score adds 2 for parking, 2 for a park, 1 for
    a viewpoint and 1 for a road, each at most once.
    """
    measured = [(haversine_m(lat, lng, f.center_lat, f.center_lng), f) for f in features]
    if not measured:
        return AccessibilityVerdict(has_road_access=False)

    # stable: equal distances keep lookup order
    measured.sort(key=lambda pair: pair[0])

    nearest = next(((d, f) for d, f in measured if f.kind in ACCESS_FEATURE_KINDS), None)
    nearest_feature = None
    if nearest is not None:
        distance, feature = nearest
        nearest_feature = NearestFeature(kind=feature.kind, name=feature.name, distance_meters=round(distance, 1))

    kinds = {f.kind for _d, f in measured}
    score = sum(points for kind, points in FEATURE_POINTS.items() if kind in kinds)

    display: List[AccessibilityFeature] = []
    seen = set()
    for distance, feature in measured:
        if feature.kind == FeatureKind.ROAD:
            continue
        key = (feature.kind, feature.name or "unnamed")
        if key in seen:
            continue
        seen.add(key)
        display.append(AccessibilityFeature(kind=feature.kind, name=feature.name, distance_meters=round(distance)))
        if len(display) >= MAX_DISPLAY_FEATURES:
            break

    return AccessibilityVerdict(
        has_road_access=True,
        nearest_feature=nearest_feature,
        accessibility_score=score,
        features=display,
    )


class AccessibilityAugmenter:
    """Look up accessibility for candidates through a SpotDataSource."""

    def __init__(
        self,
        data_source: SpotDataSource,
        *,
        search_radius_m: int = 2000,
        timeout_seconds: float = 5.0,
        max_workers: int = 10,
    ):
        """Bind the lookup backend and per-lookup limits."""
        self.data_source = data_source
        self.search_radius_m = search_radius_m
        self.timeout_seconds = timeout_seconds
        self.max_workers = max(1, int(max_workers))

    def check(self, lat: float, lng: float) -> AccessibilityVerdict:
        """Run one lookup for a coordinate, degrading on any lookup failure."""
        try:
            features = self.data_source.fetch_features(
                lat, lng, radius_m=self.search_radius_m, timeout=self.timeout_seconds
            )
            return assess_features(lat, lng, features)
        except Exception as exc:
            logger.warning(
                "Accessibility lookup failed; treating as no road access",
                extra={"lat": lat, "lng": lng, "error": repr(exc)},
            )
            return degraded_verdict()

    def augment(self, candidate: Candidate) -> AugmentedCandidate:
        """Attach a verdict to a single candidate."""
        return AugmentedCandidate(candidate=candidate, verdict=self.check(candidate.lat, candidate.lng))

    def _join_timeout(self, count: int) -> float:
        waves = math.ceil(count / self.max_workers)
        return self.timeout_seconds * waves + JOIN_GRACE_SECONDS

    def augment_all(self, candidates: Sequence[Candidate]) -> List[AugmentedCandidate]:
        """
        Augment all candidates concurrently and return them in input order.

        Waits for every lookup to finish or for the join deadline; lookups
        still running at the deadline are abandoned and degraded.
        """
        if not candidates:
            return []

        workers = min(self.max_workers, len(candidates))
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="augment")
        try:
            futures = [pool.submit(self.augment, c) for c in candidates]
            done, pending = wait(futures, timeout=self._join_timeout(len(candidates)))
            results: List[AugmentedCandidate] = []
            for candidate, future in zip(candidates, futures):
                if future in done:
                    error = future.exception()
                    if error is None:
                        results.append(future.result())
                        continue
                    logger.warning(
                        "Accessibility lookup crashed; treating as no road access",
                        extra={"lat": candidate.lat, "lng": candidate.lng, "error": repr(error)},
                    )
                    results.append(AugmentedCandidate(candidate=candidate, verdict=degraded_verdict()))
                    continue
                logger.warning(
                    "Accessibility lookup exceeded deadline; treating as no road access",
                    extra={"lat": candidate.lat, "lng": candidate.lng, "timeout_seconds": self.timeout_seconds},
                )
                results.append(AugmentedCandidate(candidate=candidate, verdict=degraded_verdict()))
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        abandoned = sum(1 for f in pending if f.running())
        if abandoned:
            logger.warning(
                "Left lookups running past the deadline",
                extra={"abandoned": abandoned, "candidates": len(candidates)},
            )

        logger.debug(
            "Augmented candidates",
            extra={
                "candidates": len(results),
                "accessible": sum(1 for r in results if r.has_road_access),
                "degraded": sum(1 for r in results if r.verdict.degraded),
            },
        )
        return results
