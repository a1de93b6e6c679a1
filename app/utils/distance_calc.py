# app/utils/distance_calc.py
from __future__ import annotations

from math import atan2, cos, degrees, radians, sin
from typing import Sequence

from geopy.distance import geodesic

from app.core.config import MEASURE_PRECISION
from app.schemas.map import Coordinate, MeasureResult, MeasureSegment


def initial_bearing(start: Coordinate, end: Coordinate) -> float:
    """
    Forward azimuth from start to end in degrees, 0 = north, clockwise.
    """
    lat1, lat2 = radians(start.lat), radians(end.lat)
    dlon = radians(end.lng - start.lng)
    x = sin(dlon) * cos(lat2)
    y = cos(lat1) * sin(lat2) - sin(lat1) * cos(lat2) * cos(dlon)
    return (degrees(atan2(x, y)) + 360.0) % 360.0


def format_distance(meters: float, precision: int = MEASURE_PRECISION) -> str:
    if meters >= 1000:
        return f"{meters / 1000:.{precision}f} km"
    return f"{meters:.{precision}f} m"


def measure_path(points: Sequence[Coordinate]) -> MeasureResult:
    """
    Geodesic (WGS84) length of a polyline, segment by segment.
    """
    if len(points) < 2:
        raise ValueError("Need at least two points to measure a distance.")

    segments = []
    for a, b in zip(points, points[1:]):
        d = geodesic((a.lat, a.lng), (b.lat, b.lng)).meters
        segments.append(
            MeasureSegment(
                start=a,
                end=b,
                distance_meters=round(d, MEASURE_PRECISION),
                bearing=round(initial_bearing(a, b), MEASURE_PRECISION),
            )
        )

    total = sum(s.distance_meters for s in segments)
    return MeasureResult(
        total_meters=round(total, MEASURE_PRECISION),
        segments=segments,
        text=format_distance(total),
    )
