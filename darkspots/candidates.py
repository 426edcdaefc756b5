"""Annulus scanning and darkness ranking over the light-pollution raster."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List

from darkspots.domain import Coordinates
from darkspots.geo import EARTH_RADIUS_KM, haversine_km
from darkspots.raster import RasterGrid
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="candidates")

KM_PER_DEGREE_LAT = EARTH_RADIUS_KM * math.pi / 180.0
# Slack on the latitude row prefilter; membership is decided by haversine alone.
ROW_FILTER_MARGIN_KM = 1.0


@dataclass(frozen=True)
class Candidate:
    """A covered raster cell inside the search annulus."""
    lat: float
    lng: float
    brightness_class: int
    distance_km: float
    row: int
    col: int


def _candidate_rows(grid: RasterGrid, origin: Coordinates, max_km: float) -> range:
    """Rows whose cell centres can possibly lie within max_km of the origin."""
    reach_deg = (max_km + ROW_FILTER_MARGIN_KM) / KM_PER_DEGREE_LAT
    north = origin.lat + reach_deg
    south = origin.lat - reach_deg
    first = max(0, math.floor((grid.max_lat - north) / grid.resolution))
    last = min(grid.n_rows, math.floor((grid.max_lat - south) / grid.resolution) + 1)
    return range(first, max(first, last))


def scan_candidates(
    grid: RasterGrid,
    origin: Coordinates,
    min_km: float,
    max_km: float,
) -> List[Candidate]:
    """
    Collect every covered cell whose centre is within [min_km, max_km] of origin.

    Bounds are inclusive and distances come from `haversine_km`. An annulus
    that misses the raster entirely yields an empty list.
    """
    out: List[Candidate] = []
    for cell in grid.iter_cells(_candidate_rows(grid, origin, max_km)):
        distance = haversine_km(origin.lat, origin.lng, cell.lat, cell.lng)
        if min_km <= distance <= max_km:
            out.append(
                Candidate(
                    lat=cell.lat,
                    lng=cell.lng,
                    brightness_class=cell.brightness_class,
                    distance_km=distance,
                    row=cell.row,
                    col=cell.col,
                )
            )
    logger.debug(
        "Scanned annulus",
        extra={"lat": origin.lat, "lng": origin.lng, "min_km": min_km, "max_km": max_km, "candidates": len(out)},
    )
    return out


def darkness_key(candidate: Candidate) -> tuple:
    """Darkest first, then closest, then row-major grid order."""
    return (candidate.brightness_class, candidate.distance_km, candidate.row, candidate.col)


def rank_candidates(candidates: Iterable[Candidate]) -> List[Candidate]:
    """Return candidates sorted by `darkness_key`."""
    return sorted(candidates, key=darkness_key)


def take(ranked: List[Candidate], n: int) -> List[Candidate]:
    """First n items of a ranked list (never more than n)."""
    return list(ranked[: max(0, int(n))])


def find_dark_candidates(
    grid: RasterGrid,
    origin: Coordinates,
    min_km: float,
    max_km: float,
    count: int,
) -> List[Candidate]:
    """Scan an annulus and keep the `count` darkest candidates."""
    return take(rank_candidates(scan_candidates(grid, origin, min_km, max_km)), count)
