"""
Google Maps Distance Service — road distance and duration between addresses.

Optimization strategy:
  1. Distance cache in Redis (2-hour TTL) keyed by normalized address pair
  2. Cache errors are logged and bypassed, never fatal

Failures are explicit: there is no straight-line fallback, because a fare
must never be quoted from an invented distance.
"""

import hashlib
import logging
import math
from dataclasses import dataclass

import httpx
import redis.asyncio as aioredis

from config import settings

logger = logging.getLogger(__name__)

_redis: aioredis.Redis | None = None
_http: httpx.AsyncClient | None = None

DISTANCE_MATRIX_URL = "https://maps.googleapis.com/maps/api/distancematrix/json"

NO_ROUTE_STATUSES = {"ZERO_RESULTS", "NOT_FOUND"}


class DistanceLookupError(Exception):
    """Base class for distance provider failures."""


class RouteNotFound(DistanceLookupError):
    """No drivable route exists between the two points."""


class ProviderUnavailable(DistanceLookupError):
    """Network, quota or configuration failure talking to the provider."""


@dataclass(frozen=True)
class RouteEstimate:
    distance_km: float
    duration_min: int
    source: str = "google"


async def _get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis


async def _get_http() -> httpx.AsyncClient:
    global _http
    if _http is None:
        _http = httpx.AsyncClient(timeout=settings.MAPS_TIMEOUT_SEC)
    return _http


async def close() -> None:
    """Release pooled connections (called on app shutdown)."""
    global _redis, _http
    if _http is not None:
        await _http.aclose()
        _http = None
    if _redis is not None:
        await _redis.aclose()
        _redis = None


def _address_hash(address: str) -> str:
    """Normalize and hash an address for cache key."""
    normalized = " ".join(address.strip().lower().split())
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


def _cache_key(origin: str, destination: str) -> str:
    return f"dist:{_address_hash(origin)}:{_address_hash(destination)}"


async def _read_cache(key: str) -> RouteEstimate | None:
    try:
        r = await _get_redis()
        cached = await r.hgetall(key)
    except Exception as e:
        logger.warning("Distance cache read failed: %s", e)
        return None
    if cached and "distance_km" in cached:
        return RouteEstimate(
            distance_km=float(cached["distance_km"]),
            duration_min=int(cached["duration_min"]),
            source="cache",
        )
    return None


async def _write_cache(key: str, route: RouteEstimate) -> None:
    try:
        r = await _get_redis()
        await r.hset(key, mapping={
            "distance_km": str(route.distance_km),
            "duration_min": str(route.duration_min),
        })
        await r.expire(key, settings.DISTANCE_CACHE_TTL)
    except Exception as e:
        logger.warning("Distance cache write failed: %s", e)


def _parse_distance_matrix(data: dict) -> RouteEstimate:
    """Extract the single origin/destination element from a Distance Matrix reply."""
    status = data.get("status")
    if status != "OK":
        raise ProviderUnavailable(
            f"Distance Matrix failed: {status} {data.get('error_message', '')}".strip()
        )

    try:
        element = data["rows"][0]["elements"][0]
    except (KeyError, IndexError, TypeError):
        raise ProviderUnavailable("Distance Matrix returned no elements")

    element_status = element.get("status")
    if element_status in NO_ROUTE_STATUSES:
        raise RouteNotFound("No delivery route found between these addresses")
    if element_status != "OK":
        raise ProviderUnavailable(f"Distance Matrix element failed: {element_status}")

    distance_m = element["distance"]["value"]
    duration_s = element["duration"]["value"]
    return RouteEstimate(
        distance_km=distance_m / 1000.0,
        duration_min=math.ceil(duration_s / 60),
    )


async def get_distance(origin: str, destination: str) -> RouteEstimate:
    """
    Get driving distance and duration between two addresses.

    Raises:
        RouteNotFound: the provider knows both points but has no route
        ProviderUnavailable: network/API failure or missing API key
    """
    key = _cache_key(origin, destination)
    cached = await _read_cache(key)
    if cached is not None:
        return cached

    if not settings.GOOGLE_MAPS_API_KEY:
        raise ProviderUnavailable("GOOGLE_MAPS_API_KEY is not configured")

    try:
        http = await _get_http()
        resp = await http.get(
            DISTANCE_MATRIX_URL,
            params={
                "origins": origin,
                "destinations": destination,
                "mode": "driving",
                "units": "metric",
                "region": "jp",
                "key": settings.GOOGLE_MAPS_API_KEY,
            },
        )
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPError as e:
        logger.warning("Distance Matrix request failed for %r → %r: %s", origin[:60], destination[:60], e)
        raise ProviderUnavailable(f"Distance provider unreachable: {e}") from e
    except ValueError as e:
        raise ProviderUnavailable("Distance provider returned invalid JSON") from e

    route = _parse_distance_matrix(data)
    await _write_cache(key, route)
    return route
