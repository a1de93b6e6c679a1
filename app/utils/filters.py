from app.core.config import COORD_PRECISION
from app.utils.distance_calc import format_distance


def coord(v, digits=COORD_PRECISION):
    if v is None:
        return "N/A"
    try:
        return f"{float(v):.{digits}f}"
    except (TypeError, ValueError):
        return str(v)


def distance(v):
    if v is None:
        return "N/A"
    try:
        return format_distance(float(v))
    except (TypeError, ValueError):
        return str(v)


def duration(v):
    if v is None:
        return "N/A"
    try:
        secs = int(round(float(v)))
    except (TypeError, ValueError):
        return str(v)
    if secs < 60:
        return f"{secs} s"
    hours, rem = divmod(secs, 3600)
    mins = rem // 60
    if hours:
        return f"{hours} h {mins} min"
    return f"{mins} min"
