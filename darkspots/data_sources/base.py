"""Interfaces and helpers for the external collaborators of a spot search."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from darkspots.data_sources.overpass_client import RoadFeature


class SpotDataSource(Protocol):
    """Interface for anything that can report nearby features and place names."""

    def fetch_features(
        self,
        latitude: float,
        longitude: float,
        *,
        radius_m: int | None = None,
        timeout: float | None = None,
    ) -> List[RoadFeature]:
        """Return road/parking/park features around the coordinate."""
        ...

    def reverse_geocode(
        self,
        latitude: float,
        longitude: float,
        *,
        timeout: float | None = None,
    ) -> Optional[str]:
        """Return a display name for the coordinate, or None."""
        ...


@dataclass
class CallableSpotDataSource(SpotDataSource):
    """Wrap two callables so they can be swapped for different backends."""

    features: Callable[..., List[RoadFeature]]
    geocoder: Callable[..., Optional[str]]

    def fetch_features(self, *args, **kwargs) -> List[RoadFeature]:
        """Delegate to the configured feature-lookup callable."""
        return self.features(*args, **kwargs)

    def reverse_geocode(self, *args, **kwargs) -> Optional[str]:
        """Delegate to the configured reverse-geocoding callable."""
        return self.geocoder(*args, **kwargs)
