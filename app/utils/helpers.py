import math
import json
from typing import Any, Mapping

from app.core.config import COORD_PRECISION


def coordinate_key(lat: float, lng: float, precision: int = COORD_PRECISION) -> str:
    """
    Round a coordinate pair to a stable string key, e.g. '48.856600,2.352200'.
    Two fixes closer than the rounding step share a key.
    """
    return f"{lat:.{precision}f},{lng:.{precision}f}"


def geocode_key(query: str) -> str:
    return f"geocode:{query}"


def reverse_key(lat: float, lng: float) -> str:
    return f"reverse:{lat},{lng}"


def weather_key(lat: float, lng: float) -> str:
    return f"weather:{lat},{lng}"


def route_key(start, end, options: Mapping[str, Any] | None = None) -> str:
    opts = json.dumps(dict(options or {}), sort_keys=True)
    return f"route:{start.lat},{start.lng}|{end.lat},{end.lng}|{opts}"


def format_short_address(address: Mapping[str, Any] | None) -> str:
    """
    House number, road, suburb, city/town/village and postcode, comma joined.
    Nominatim 'address' dicts are sparse so every part is optional.
    """
    if not address:
        return ""
    parts = []
    for k in ("house_number", "road", "suburb"):
        if address.get(k):
            parts.append(str(address[k]))
    locality = address.get("city") or address.get("town") or address.get("village")
    if locality:
        parts.append(str(locality))
    if address.get("postcode"):
        parts.append(str(address["postcode"]))
    return ", ".join(parts)


def bbox_around(lat: float, lng: float, radius_m: float) -> tuple[float, float, float, float]:
    """(west, south, east, north) box roughly radius_m around a point."""
    dlat = radius_m / 111_320.0
    # longitude degrees shrink towards the poles
    dlng = radius_m / (111_320.0 * max(math.cos(math.radians(lat)), 1e-6))
    return (
        max(lng - dlng, -180.0),
        max(lat - dlat, -90.0),
        min(lng + dlng, 180.0),
        min(lat + dlat, 90.0),
    )
