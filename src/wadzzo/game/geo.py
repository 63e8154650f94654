"""Great-circle helpers for pin placement and proximity."""

from __future__ import annotations

import math
import random

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in kilometres between two points given in degrees."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def random_point_within(
    lat: float,
    lng: float,
    radius_m: float,
    rng: random.Random | None = None,
) -> tuple[float, float]:
    """A point drawn uniformly from the disc of ``radius_m`` metres around (lat, lng)."""
    rng = rng or random.Random()
    # sqrt keeps the density uniform over the disc area
    distance_km = (radius_m / 1000.0) * math.sqrt(rng.random())
    bearing = rng.uniform(0, 2 * math.pi)

    lat_r = math.radians(lat)
    lng_r = math.radians(lng)
    angular = distance_km / EARTH_RADIUS_KM

    new_lat = math.asin(
        math.sin(lat_r) * math.cos(angular) + math.cos(lat_r) * math.sin(angular) * math.cos(bearing)
    )
    new_lng = lng_r + math.atan2(
        math.sin(bearing) * math.sin(angular) * math.cos(lat_r),
        math.cos(angular) - math.sin(lat_r) * math.sin(new_lat),
    )
    return math.degrees(new_lat), (math.degrees(new_lng) + 540) % 360 - 180
