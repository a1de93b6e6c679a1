# app/utils/geocode.py
from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Optional

from geopy.exc import GeocoderServiceError, GeocoderTimedOut
from geopy.geocoders import Nominatim

from app.core.config import (
    GEOCODER_DOMAIN,
    GEOCODER_MIN_INTERVAL_SEC,
    GEOCODER_SCHEME,
    GEOCODER_TIMEOUT,
    GEOCODER_USER_AGENT,
    REVERSE_ZOOM,
)
from app.core.errors import NotFound, ProviderUnavailable, Timeout
from app.schemas.map import GeocodeResult, ResolvedAddress
from app.utils.helpers import coordinate_key, format_short_address

logger = logging.getLogger(__name__)


class Geocoder:
    """
    Forward and reverse geocoding through Nominatim (geopy).

    geopy's Nominatim client is blocking, so the async entry points run it in a
    worker thread. Calls are spaced by ``min_interval`` seconds across threads
    to respect the Nominatim usage policy.
    """

    def __init__(self, geolocator: Optional[Nominatim] = None, min_interval: float = GEOCODER_MIN_INTERVAL_SEC):
        self._geolocator_instance = geolocator
        self._geo_lock = threading.Lock()
        self._rate_lock = threading.Lock()
        self._last_call = 0.0
        self.min_interval = min_interval

    # ---- Lazy geolocator (one per process) ---------------------------------
    @property
    def geolocator(self) -> Nominatim:
        val = self._geolocator_instance
        if val is None:
            with self._geo_lock:
                val = self._geolocator_instance
                if val is None:
                    logger.info("Initializing Nominatim geocoder (%s)", GEOCODER_DOMAIN)
                    val = Nominatim(
                        user_agent=GEOCODER_USER_AGENT,
                        timeout=GEOCODER_TIMEOUT,
                        domain=GEOCODER_DOMAIN,
                        scheme=GEOCODER_SCHEME,
                    )
                    self._geolocator_instance = val
        return val

    def _rate(self) -> None:
        with self._rate_lock:
            dt = time.time() - self._last_call
            if dt < self.min_interval:
                time.sleep(self.min_interval - dt)
            self._last_call = time.time()

    def _call(self, what: str, fn, *args, **kwargs):
        self._rate()
        try:
            return fn(*args, **kwargs)
        except GeocoderTimedOut as e:
            logger.warning("%s timed out: %s", what, e)
            raise Timeout(f"{what} timed out", source="geocoding") from e
        except GeocoderServiceError as e:
            logger.warning("%s failed: %s", what, e)
            raise ProviderUnavailable(f"{what} failed: {e}", source="geocoding") from e
        except ValueError as e:
            # geopy rejects out-of-range points before any request is made
            logger.warning("%s rejected input: %s", what, e)
            raise NotFound(f"{what}: {e}", source="geocoding") from e

    def geocode_sync(self, query: str) -> GeocodeResult:
        loc = self._call("Geocoding", self.geolocator.geocode, query, exactly_one=True, addressdetails=True)
        if not loc:
            raise NotFound(f"Location not found: {query}", source="geocoding")

        raw = loc.raw or {}
        bounds = None
        # Nominatim boundingbox is [south, north, west, east] as strings
        if len(raw.get("boundingbox") or []) == 4:
            s, n, w, e = (float(v) for v in raw["boundingbox"])
            bounds = {"south": s, "north": n, "west": w, "east": e}
        return GeocodeResult(
            lat=loc.latitude,
            lng=loc.longitude,
            display_name=loc.address,
            bounds=bounds,
            components=raw.get("address") or {},
        )

    def reverse_sync(self, lat: float, lng: float) -> ResolvedAddress:
        loc = self._call(
            "Reverse geocoding",
            self.geolocator.reverse,
            (lat, lng),
            exactly_one=True,
            addressdetails=True,
            zoom=REVERSE_ZOOM,
        )
        if not loc:
            raise NotFound(f"No address at {lat},{lng}", source="geocoding")

        details = (loc.raw or {}).get("address") or {}
        return ResolvedAddress(
            coordinate_key=coordinate_key(lat, lng),
            full_text=loc.address,
            short_text=format_short_address(details),
            details=details,
        )

    async def geocode(self, query: str) -> GeocodeResult:
        return await asyncio.to_thread(self.geocode_sync, query)

    async def reverse(self, lat: float, lng: float) -> ResolvedAddress:
        return await asyncio.to_thread(self.reverse_sync, lat, lng)
