from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0
# Approximate length of one degree of latitude.
METERS_PER_DEGREE = 111_320.0


def haversine_km(lon1: float, lat1: float, lon2: float, lat2: float) -> float:
    """Great-circle distance between two (longitude, latitude) points in km."""

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def bounding_box(lon: float, lat: float, radius_m: float) -> tuple[float, float, float, float]:
    """Return (min_lon, min_lat, max_lon, max_lat) enclosing a radius.

    Used as a coarse index-friendly prefilter; callers still apply the exact
    distance check.
    """

    d_lat = radius_m / METERS_PER_DEGREE
    cos_lat = math.cos(math.radians(lat))
    if cos_lat < 1e-6:
        d_lon = 180.0
    else:
        d_lon = min(180.0, radius_m / (METERS_PER_DEGREE * cos_lat))
    return lon - d_lon, max(-90.0, lat - d_lat), lon + d_lon, min(90.0, lat + d_lat)
