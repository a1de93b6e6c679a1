# app/api/overlays.py
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import ORJSONResponse
from app.core.config import TRAFFIC_RADIUS_M
from app.core.errors import MapError
from app.core.registry import get_context
from app.schemas.map import LocationInfo, TrafficIncident, WeatherReport

router = APIRouter(prefix="/api", tags=["overlays"], default_response_class=ORJSONResponse)


@router.get("/weather")
async def weather(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
) -> WeatherReport:
    try:
        return await get_context().lookups.weather(lat, lng)
    except MapError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/traffic")
async def traffic(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float = Query(TRAFFIC_RADIUS_M, gt=0, le=50_000, description="Search radius in meters"),
) -> list[TrafficIncident]:
    try:
        return await get_context().lookups.traffic(lat, lng, radius)
    except MapError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/location-info")
async def location_info(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
) -> LocationInfo:
    """
    Address, weather and nearby traffic for one point, fetched together.
    Sections that fail are reported under 'errors' instead of failing the call.
    """
    return await get_context().lookups.location_info(lat, lng)
