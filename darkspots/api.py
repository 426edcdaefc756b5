"""HTTP API for the dark-sky spot finder."""

import hmac
from typing import List, Optional

import redis
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel

from .config import settings
from .domain import BandSearchResult, ScoredSpot, SpotRating
from .geo import InvalidSearchInput, validate_coordinates
from .spot_finder import SpotFinder, build_spot_finder
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="darkspots/api")

_redis_client = None
if settings.api_key_redis_url:
    try:
        _redis_client = redis.Redis.from_url(settings.api_key_redis_url)
        logger.info("API key checks will use Redis backend", extra={"redis_url": settings.api_key_redis_url})
    except (ValueError, redis.RedisError) as exc:
        logger.warning("Failed to connect to Redis for API key checks; falling back to static key",
                       extra={"error": str(exc)})


def require_api_key(x_api_key: str | None = Header(default=None)):
    """
    Validate X-API-Key header against Redis (if configured) or the static api_key setting.
    """
    if not settings.api_key and not _redis_client:
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if _redis_client:
        try:
            if _redis_client.sismember(settings.api_key_redis_set, x_api_key):
                return
        except redis.RedisError as e:
            logger.warning("Redis API key lookup error; falling back to static key",
                           extra={"error": str(e)})

    if settings.api_key and hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


_finder: Optional[SpotFinder] = None


def get_spot_finder() -> SpotFinder:
    """Return the process-wide SpotFinder, loading the raster on first use."""
    global _finder
    if _finder is None:
        _finder = build_spot_finder(settings)
    return _finder


router = APIRouter(dependencies=[Depends(require_api_key)])


class FindSpotsResponse(BaseModel):
    """Nearest-N search response."""
    spots: List[ScoredSpot]


def _bad_request(exc: Exception) -> HTTPException:
    logger.info("Rejected search request", extra={"error": str(exc)})
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/find-spots", response_model=FindSpotsResponse)
def find_spots(
    lat: float,
    lng: float,
    max_distance: float = Query(alias="maxDistance"),
    count: int | None = None,
    finder: SpotFinder = Depends(get_spot_finder),
):
    """Darkest reachable spots within maxDistance km of the origin."""
    try:
        validate_coordinates(lat, lng)
        spots = finder.find_spots(
            (lat, lng),
            max_distance,
            desired_result_count=count if count is not None else settings.desired_result_count,
        )
    except InvalidSearchInput as exc:
        raise _bad_request(exc)
    return FindSpotsResponse(spots=spots)


@router.get("/spots", response_model=BandSearchResult)
def spots_by_band(lat: float, lng: float, finder: SpotFinder = Depends(get_spot_finder)):
    """Best spot in each of the default radius bands."""
    try:
        validate_coordinates(lat, lng)
        return finder.find_best_per_band((lat, lng))
    except InvalidSearchInput as exc:
        raise _bad_request(exc)


@router.get("/spot-info", response_model=SpotRating)
def spot_info(lat: float, lng: float, finder: SpotFinder = Depends(get_spot_finder)):
    """Darkness and road-access rating of a single point."""
    try:
        validate_coordinates(lat, lng)
        return finder.rate_spot((lat, lng))
    except InvalidSearchInput as exc:
        raise _bad_request(exc)
