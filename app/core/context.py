# app/core/context.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from app.core.cache import TTLCache
from app.location.session import LocationSession
from app.utils.lookups import MapLookups


@dataclass
class AppContext:
    """
    Everything a request handler needs, built once at startup.

    ``caches`` holds one TTLCache per resource type (geocode, weather, route,
    address); nothing else owns a cache.
    """

    geocoder: Any
    providers: Any
    caches: Dict[str, TTLCache]
    lookups: MapLookups = field(init=False, repr=False)

    def __post_init__(self):
        self.lookups = MapLookups(
            geocoder=self.geocoder,
            providers=self.providers,
            geocode_cache=self.caches["geocode"],
            weather_cache=self.caches["weather"],
            route_cache=self.caches["route"],
        )

    @property
    def address_cache(self) -> TTLCache:
        return self.caches["address"]

    def new_location_session(self, scheduler=None) -> LocationSession:
        return LocationSession(
            resolver=self.geocoder.reverse,
            address_cache=self.address_cache,
            scheduler=scheduler,
        )

    def clear_caches(self) -> list[str]:
        for cache in self.caches.values():
            cache.clear()
        return list(self.caches)

    async def aclose(self) -> None:
        aclose = getattr(self.providers, "aclose", None)
        if aclose is not None:
            await aclose()
