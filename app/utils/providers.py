# app/utils/providers.py
"""
Thin async adapters for the third-party JSON APIs behind the proxy.

Each method makes one GET, reshapes the upstream payload into one of the
``app.schemas.map`` models and translates transport failures into the
``app.core.errors`` taxonomy. Nothing here caches; see ``app.utils.lookups``.
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from app.core.config import (
    PLACES_API_KEY,
    PLACES_URL,
    PROXY_TIMEOUT_SEC,
    ROUTING_PROFILES,
    ROUTING_URL,
    TOMTOM_API_KEY,
    TRAFFIC_INCIDENTS_URL,
    TRAFFIC_RADIUS_M,
    TRAFFIC_SEVERITY_COLORS,
    WEATHER_API_KEY,
    WEATHER_ICONS,
    WEATHER_UNITS,
    WEATHER_URL,
)
from app.core.errors import NotFound, ProviderUnavailable, Timeout
from app.schemas.map import Coordinate, Place, RouteResult, TrafficIncident, WeatherReport
from app.utils.helpers import bbox_around

logger = logging.getLogger(__name__)

# TomTom incident magnitude ("ty") -> severity bucket
INCIDENT_MAGNITUDES = {
    0: "UNKNOWN",
    1: "MINOR",
    2: "MODERATE",
    3: "MAJOR",
    4: "UNKNOWN",
}

PLACES_CATEGORIES = "commercial,catering,tourism,accommodation,service"


def _severity(value: Any) -> str:
    if isinstance(value, int):
        return INCIDENT_MAGNITUDES.get(value, "UNKNOWN")
    sev = str(value or "UNKNOWN").upper()
    return sev if sev in TRAFFIC_SEVERITY_COLORS else "UNKNOWN"


def parse_incident(raw: dict) -> TrafficIncident:
    # incidentDetails "s3" points carry p/ic/ty/d/f/t; older payloads are verbose
    if "p" in raw:
        sev = _severity(raw.get("ty"))
        pos = raw.get("p") or {}
        location = " to ".join(x for x in (raw.get("f"), raw.get("t")) if x)
        return TrafficIncident(
            type=str(raw.get("ic", "UNKNOWN")),
            description=raw.get("d", ""),
            location=location,
            severity=sev,
            color=TRAFFIC_SEVERITY_COLORS[sev],
            lat=pos.get("y"),
            lng=pos.get("x"),
        )

    sev = _severity(raw.get("severity") or raw.get("magnitudeOfDelay"))
    address = ((raw.get("location") or {}).get("address") or {}).get("freeformAddress", "")
    return TrafficIncident(
        type=str(raw.get("type", "UNKNOWN")),
        description=raw.get("shortDescription") or raw.get("description") or "",
        location=address,
        severity=sev,
        color=TRAFFIC_SEVERITY_COLORS[sev],
    )


def parse_weather(data: dict) -> WeatherReport:
    main = data.get("main") or {}
    wind = data.get("wind") or {}
    cond = (data.get("weather") or [{}])[0]
    sys_ = data.get("sys") or {}
    try:
        return WeatherReport(
            temperature=main["temp"],
            feels_like=main.get("feels_like"),
            humidity=main.get("humidity", 0),
            pressure=main.get("pressure"),
            wind_speed=wind.get("speed", 0),
            description=cond.get("description", "No data"),
            icon=cond.get("icon", ""),
            icon_name=WEATHER_ICONS.get(cond.get("icon", ""), "cloud"),
            sunrise=sys_.get("sunrise"),
            sunset=sys_.get("sunset"),
            location_name=data.get("name", ""),
        )
    except KeyError as e:
        raise ProviderUnavailable(f"Malformed weather payload (missing {e})", source="weather") from e


def parse_route(data: dict, profile: str) -> RouteResult:
    routes = data.get("routes") or []
    if not routes:
        raise NotFound("No route found", source="routing")
    first = routes[0]
    points = [
        Coordinate(lat=p["latitude"], lng=p["longitude"])
        for leg in first.get("legs") or []
        for p in leg.get("points") or []
    ]
    summary = first.get("summary") or {}
    return RouteResult(
        points=points,
        distance_meters=summary.get("lengthInMeters", 0),
        duration_seconds=summary.get("travelTimeInSeconds", 0),
        traffic_delay_seconds=summary.get("trafficDelayInSeconds") or 0,
        profile=profile,
    )


def parse_places(data: dict) -> list[Place]:
    out = []
    for feature in data.get("features") or []:
        props = feature.get("properties") or {}
        coords = (feature.get("geometry") or {}).get("coordinates") or [None, None]
        if coords[0] is None or coords[1] is None:
            continue
        category = props.get("category")
        if category is None:
            category = ",".join(props.get("categories") or [])
        out.append(
            Place(
                name=props.get("name", ""),
                category=category,
                address=props.get("formatted", ""),
                lat=coords[1],
                lng=coords[0],
            )
        )
    return out


class ProviderClient:
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        weather_key: str = WEATHER_API_KEY,
        tomtom_key: str = TOMTOM_API_KEY,
        places_key: str = PLACES_API_KEY,
    ):
        self._client = client or httpx.AsyncClient(timeout=PROXY_TIMEOUT_SEC)
        self.weather_key = weather_key
        self.tomtom_key = tomtom_key
        self.places_key = places_key

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, source: str, url: str, params: dict) -> dict:
        try:
            resp = await self._client.get(url, params=params)
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            logger.warning("[%s] upstream timeout: %s", source, url)
            raise Timeout(f"{source} request timed out", source=source) from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning("[%s] upstream returned %s", source, status)
            if status == 404:
                raise NotFound(f"{source}: nothing found", source=source) from e
            raise ProviderUnavailable(f"{source} request failed ({status})", source=source) from e
        except httpx.RequestError as e:
            logger.warning("[%s] upstream unreachable: %s", source, e)
            raise ProviderUnavailable(f"{source} service unreachable", source=source) from e

        try:
            return resp.json()
        except ValueError as e:
            raise ProviderUnavailable(f"{source} returned invalid JSON", source=source) from e

    async def weather(self, lat: float, lng: float) -> WeatherReport:
        data = await self._get_json(
            "weather",
            WEATHER_URL,
            {"lat": lat, "lon": lng, "units": WEATHER_UNITS, "appid": self.weather_key},
        )
        return parse_weather(data)

    async def traffic(self, lat: float, lng: float, radius_m: float = TRAFFIC_RADIUS_M) -> list[TrafficIncident]:
        west, south, east, north = bbox_around(lat, lng, radius_m)
        url = f"{TRAFFIC_INCIDENTS_URL}/s3/{west},{south},{east},{north}/10/-1/json"
        data = await self._get_json("traffic", url, {"key": self.tomtom_key})
        raw = data.get("incidents")
        if raw is None:
            raw = (data.get("tm") or {}).get("poi") or []
        return [parse_incident(r) for r in raw]

    async def route(
        self,
        start: Coordinate,
        end: Coordinate,
        profile: str = "driving",
        traffic: bool = True,
    ) -> RouteResult:
        opts = ROUTING_PROFILES[profile]
        url = f"{ROUTING_URL}/{start.lat},{start.lng}:{end.lat},{end.lng}/json"
        data = await self._get_json(
            "routing",
            url,
            {
                "key": self.tomtom_key,
                "traffic": "true" if traffic else "false",
                "routeType": opts["route_type"],
                "travelMode": opts["travel_mode"],
            },
        )
        return parse_route(data, profile)

    async def places(self, query: str, bounds: tuple[float, float, float, float]) -> list[Place]:
        west, south, east, north = bounds
        data = await self._get_json(
            "places",
            PLACES_URL,
            {
                "categories": PLACES_CATEGORIES,
                "name": query,
                "filter": f"rect:{west},{south},{east},{north}",
                "apiKey": self.places_key,
            },
        )
        return parse_places(data)
