# app/core/loader.py
import time

from app.core.cache import TTLCache
from app.core.config import CACHE_MAX_SIZE, CACHE_RESOURCES, CACHE_TTL_SEC
from app.core.context import AppContext
from app.utils.geocode import Geocoder
from app.utils.providers import ProviderClient


def build_caches(timer=time.monotonic) -> dict:
    return {
        name: TTLCache(maxsize=CACHE_MAX_SIZE, ttl=CACHE_TTL_SEC, timer=timer, name=name)
        for name in CACHE_RESOURCES
    }


def build_context(geocoder=None, providers=None, timer=time.monotonic) -> AppContext:
    """
    Wire the real geocoder and provider client unless replacements are given.
    """
    return AppContext(
        geocoder=geocoder or Geocoder(),
        providers=providers or ProviderClient(),
        caches=build_caches(timer),
    )
