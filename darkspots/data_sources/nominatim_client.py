"""Reverse geocoding against the OpenStreetMap Nominatim API."""
from __future__ import annotations

from typing import Optional

import requests_cache
from pydantic import BaseModel, ConfigDict
from retry_requests import retry

from darkspots.config import settings
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="nominatim_client")

cache_session = requests_cache.CachedSession(".nominatim_cache", expire_after=settings.http_cache_seconds)
session = retry(cache_session, retries=2, backoff_factor=0.2)
session.headers.update({"User-Agent": settings.user_agent})


class _ReverseResult(BaseModel):
    model_config = ConfigDict(extra="ignore")
    display_name: str | None = None


def parse_display_name(payload: object) -> Optional[str]:
    """Return the display name of a reverse-geocoding payload, if any."""
    if not isinstance(payload, dict):
        return None
    name = _ReverseResult.model_validate(payload).display_name
    if not name or not name.strip():
        return None
    return name.strip()


def reverse_geocode(
    latitude: float,
    longitude: float,
    *,
    timeout: float | None = None,
) -> Optional[str]:
    """Resolve a coordinate to a display name, or None if Nominatim has none."""
    params = {
        "lat": latitude,
        "lon": longitude,
        "format": "json",
    }

    resp = session.get(
        f"{settings.nominatim_url}/reverse",
        params=params,
        timeout=timeout if timeout is not None else settings.geocoder_timeout_seconds,
    )
    resp.raise_for_status()
    name = parse_display_name(resp.json())
    logger.debug("Reverse geocoded origin", extra={"latitude": latitude, "longitude": longitude, "display_name": name})
    return name
