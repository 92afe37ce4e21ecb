"""Great-circle distance helpers for location-based search."""

from __future__ import annotations

import math

EARTH_RADIUS_MILES = 3959.0


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Unrounded great-circle distance in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def get_distance_label(miles: float) -> str:
    """Short display label for a distance."""
    if miles < 1:
        return "Nearby"
    if miles < 100:
        return f"{miles:g} miles away"
    return f"{miles:g}+ miles away"
