import math
from datetime import datetime, timezone

EARTH_RADIUS_KM = 6371.0

COMPASS_POINTS = [
    "N", "NNE", "NE", "ENE",
    "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW",
    "W", "WNW", "NW", "NNW",
]  # fmt: skip


def get_distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle (haversine) distance between two points in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def get_wind_direction_label(degrees: float) -> str:
    """16-point compass label for a bearing, e.g. 225 -> 'SW'."""
    # round half up
    index = int(math.floor(degrees / 22.5 + 0.5)) % 16
    return COMPASS_POINTS[index]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def split_comma_list(value):
    """Turn "a, b,c" into ["a", "b", "c"]; non-strings pass through."""
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value
