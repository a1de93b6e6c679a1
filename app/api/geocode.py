# app/api/geocode.py
from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import ORJSONResponse
from app.core.errors import MapError
from app.core.registry import get_context
from app.schemas.map import GeocodeResult, Place, ResolvedAddress

router = APIRouter(prefix="/api", tags=["geocoding"], default_response_class=ORJSONResponse)


@router.get("/geocode")
async def geocode(q: str = Query(..., min_length=1, description="Place name or address")) -> GeocodeResult:
    """
    Forward geocode a search string. Repeated searches within the cache
    window are answered from memory.
    """
    if not q.strip():
        raise HTTPException(status_code=400, detail="Empty search query.")
    try:
        return await get_context().lookups.geocode(q)
    except MapError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/reverse")
async def reverse(
    lat: float = Query(..., ge=-90, le=90, description="Latitude in WGS84"),
    lng: float = Query(..., ge=-180, le=180, description="Longitude in WGS84"),
) -> ResolvedAddress:
    try:
        return await get_context().lookups.reverse_geocode(lat, lng)
    except MapError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get("/places")
async def places(
    q: str = Query(..., min_length=1),
    west: float = Query(..., ge=-180, le=180),
    south: float = Query(..., ge=-90, le=90),
    east: float = Query(..., ge=-180, le=180),
    north: float = Query(..., ge=-90, le=90),
) -> list[Place]:
    """Search points of interest inside the visible map bounds."""
    if south > north:
        raise HTTPException(status_code=400, detail="south must not exceed north.")
    try:
        return await get_context().lookups.places(q, (west, south, east, north))
    except MapError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
