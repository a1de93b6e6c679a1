# app/api/distances.py
from fastapi import APIRouter, Body
from fastapi.responses import ORJSONResponse
from app.schemas.map import MeasureRequest, MeasureResult
from app.utils.distance_calc import measure_path

router = APIRouter(prefix="/api", tags=["measure"], default_response_class=ORJSONResponse)


@router.post("/measure")
def measure(request: MeasureRequest = Body(..., description="Polyline to measure, in order")) -> MeasureResult:
    """
    Return the geodesic length of a clicked path, with per-segment
    distances (m) and initial bearings (degrees from north).
    """
    return measure_path(request.points)
