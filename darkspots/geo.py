"""Distance, darkness-score and input-validation helpers."""
from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0

# (minimum score, label), checked top-down.
SCORE_LABELS = (
    (9, "Exceptional - pristine dark sky"),
    (7, "Great for stargazing"),
    (5, "Decent - some light pollution"),
    (4, "Limited - bright sky"),
)
POOR_SCORE_LABEL = "Poor - urban glow"

BORTLE_LABELS = {
    1: "Excellent",
    2: "Excellent",
    3: "Good",
    4: "Good",
    5: "Moderate",
    6: "Moderate",
    7: "Poor",
    8: "Poor",
    9: "Poor",
}


class InvalidSearchInput(ValueError):
    """Raised when a search request is structurally invalid."""


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Compute great-circle distance in kilometers between two points."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters."""
    return haversine_km(lat1, lng1, lat2, lng2) * 1000.0


def brightness_to_score(brightness_class: int) -> int:
    """Map a Bortle class to a 1-10 desirability score (darker is higher)."""
    return max(1, min(10, 11 - int(brightness_class)))


def score_to_label(score: float) -> str:
    """Return the human-readable band for a 1-10 score."""
    for threshold, label in SCORE_LABELS:
        if score >= threshold:
            return label
    return POOR_SCORE_LABEL


def bortle_label(brightness_class: float) -> str:
    """Coarse sky-quality label for a Bortle class."""
    clamped = min(9, max(1, round(brightness_class)))
    return BORTLE_LABELS.get(clamped, "Unknown")


def validate_coordinates(lat: float, lng: float) -> None:
    """Raise InvalidSearchInput unless (lat, lng) is a finite WGS84 point."""
    try:
        lat_f = float(lat)
        lng_f = float(lng)
    except (TypeError, ValueError) as exc:
        raise InvalidSearchInput(f"Coordinates must be numeric: ({lat!r}, {lng!r})") from exc
    if not (math.isfinite(lat_f) and math.isfinite(lng_f)):
        raise InvalidSearchInput(f"Coordinates must be finite: ({lat!r}, {lng!r})")
    if not -90.0 <= lat_f <= 90.0:
        raise InvalidSearchInput(f"Latitude out of range: {lat_f}")
    if not -180.0 <= lng_f <= 180.0:
        raise InvalidSearchInput(f"Longitude out of range: {lng_f}")


def validate_radius(min_km: float, max_km: float) -> None:
    """Raise InvalidSearchInput unless 0 <= min_km <= max_km and max_km > 0."""
    for name, value in (("min_km", min_km), ("max_km", max_km)):
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            raise InvalidSearchInput(f"{name} must be a finite number, got {value!r}")
    if max_km <= 0:
        raise InvalidSearchInput(f"Search radius must be positive, got {max_km}")
    if min_km < 0:
        raise InvalidSearchInput(f"Inner radius must not be negative, got {min_km}")
    if min_km > max_km:
        raise InvalidSearchInput(f"Inner radius {min_km} exceeds outer radius {max_km}")
