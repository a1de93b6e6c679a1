# app/api/routing.py
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import ORJSONResponse
from app.core.config import DEFAULT_ROUTING_PROFILE, ROUTING_PROFILES
from app.core.errors import MapError
from app.core.registry import get_context
from app.schemas.map import Coordinate, RouteResult

router = APIRouter(prefix="/api", tags=["routing"], default_response_class=ORJSONResponse)


@router.get("/route")
async def route(
    start_lat: float = Query(..., ge=-90, le=90),
    start_lng: float = Query(..., ge=-180, le=180),
    end_lat: float = Query(..., ge=-90, le=90),
    end_lng: float = Query(..., ge=-180, le=180),
    profile: str = Query(DEFAULT_ROUTING_PROFILE, description="driving, walking or cycling"),
    traffic: bool = Query(True, description="Use live traffic"),
) -> RouteResult:
    if profile not in ROUTING_PROFILES:
        raise HTTPException(
            status_code=400,
            detail=f"Unknown profile {profile!r}; expected one of {sorted(ROUTING_PROFILES)}.",
        )
    start = Coordinate(lat=start_lat, lng=start_lng)
    end = Coordinate(lat=end_lat, lng=end_lng)
    try:
        return await get_context().lookups.route(start, end, profile=profile, traffic=traffic)
    except MapError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
