# app/utils/lookups.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from app.core.cache import TTLCache
from app.core.coalescer import RequestCoalescer
from app.core.config import DEFAULT_ROUTING_PROFILE, ROUTING_PROFILES, TRAFFIC_RADIUS_M
from app.core.errors import MapError
from app.schemas.map import (
    Coordinate,
    GeocodeResult,
    LocationInfo,
    Place,
    ResolvedAddress,
    RouteResult,
    StatusMessage,
    TrafficIncident,
    WeatherReport,
)
from app.utils.helpers import geocode_key, reverse_key, route_key, weather_key

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MapLookups:
    """
    Cached, coalesced front door to the geocoder and the JSON providers.

    A cache hit returns the stored object itself. On a miss, concurrent
    callers for the same key share one upstream call, and only a call that
    completes writes the cache.
    """

    def __init__(
        self,
        geocoder,
        providers,
        geocode_cache: TTLCache,
        weather_cache: TTLCache,
        route_cache: TTLCache,
        coalescer: RequestCoalescer | None = None,
    ):
        self.geocoder = geocoder
        self.providers = providers
        self.geocode_cache = geocode_cache
        self.weather_cache = weather_cache
        self.route_cache = route_cache
        self.coalescer = coalescer or RequestCoalescer("lookups")

    async def _cached(self, cache: TTLCache, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        hit = cache.get(key)
        if hit is not None:
            logger.debug("cache hit %s", key)
            return hit

        async def fetch() -> T:
            value = await factory()
            cache.set(key, value)
            return value

        return await self.coalescer.request(key, fetch)

    async def geocode(self, query: str) -> GeocodeResult:
        query = query.strip()
        return await self._cached(self.geocode_cache, geocode_key(query), lambda: self.geocoder.geocode(query))

    async def reverse_geocode(self, lat: float, lng: float) -> ResolvedAddress:
        return await self._cached(
            self.geocode_cache, reverse_key(lat, lng), lambda: self.geocoder.reverse(lat, lng)
        )

    async def weather(self, lat: float, lng: float) -> WeatherReport:
        return await self._cached(
            self.weather_cache, weather_key(lat, lng), lambda: self.providers.weather(lat, lng)
        )

    async def route(
        self,
        start: Coordinate,
        end: Coordinate,
        profile: str = DEFAULT_ROUTING_PROFILE,
        traffic: bool = True,
    ) -> RouteResult:
        if profile not in ROUTING_PROFILES:
            raise ValueError(f"Unknown routing profile {profile!r}")
        key = route_key(start, end, {"profile": profile, "traffic": traffic})
        return await self._cached(
            self.route_cache, key, lambda: self.providers.route(start, end, profile=profile, traffic=traffic)
        )

    # traffic and places change too fast to be worth caching
    async def traffic(self, lat: float, lng: float, radius_m: float = TRAFFIC_RADIUS_M) -> list[TrafficIncident]:
        return await self.providers.traffic(lat, lng, radius_m)

    async def places(self, query: str, bounds: tuple[float, float, float, float]) -> list[Place]:
        return await self.providers.places(query, bounds)

    async def location_info(self, lat: float, lng: float) -> LocationInfo:
        """Address, weather and nearby traffic at once; one failing section does not sink the others."""
        address, weather, traffic = await asyncio.gather(
            self.reverse_geocode(lat, lng),
            self.weather(lat, lng),
            self.traffic(lat, lng),
            return_exceptions=True,
        )

        info = LocationInfo(lat=lat, lng=lng)
        for name, value in (("address", address), ("weather", weather), ("traffic", traffic)):
            if isinstance(value, MapError):
                info.errors[name] = StatusMessage(kind=value.kind, message=value.message)
            elif isinstance(value, BaseException):
                raise value
            else:
                setattr(info, name, value)
        return info

    def caches(self) -> dict[str, TTLCache]:
        return {
            "geocode": self.geocode_cache,
            "weather": self.weather_cache,
            "route": self.route_cache,
        }
