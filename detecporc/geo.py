"""
Geospatial helpers.

Straight-line (great-circle) distance is the accepted approximation for
"nearby"; no street routing.
"""
from dataclasses import dataclass
from math import atan2, cos, floor, radians, sin, sqrt
from typing import Optional

EARTH_RADIUS_M = 6_371_000
WALKING_SPEED_KMH = 5
MOTORBIKE_SPEED_KMH = 25


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points."""
    lat1 = radians(a.lat)
    lat2 = radians(b.lat)
    dlat = lat2 - lat1
    dlng = radians(b.lng - a.lng)

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    return EARTH_RADIUS_M * 2 * atan2(sqrt(h), sqrt(1 - h))


def _round_half_up(value: float) -> int:
    return int(floor(value + 0.5))


def format_distance(meters: Optional[float]) -> str:
    """Whole meters under 1 km, kilometers with two decimals above."""
    if meters is None:
        return "-"
    if meters < 1000:
        return f"{_round_half_up(meters)} m"
    return f"{meters / 1000:.2f} km"


def travel_minutes(meters: float, speed_kmh: float) -> float:
    return meters / 1000 / speed_kmh * 60


def format_duration(minutes: float) -> str:
    total = _round_half_up(minutes)
    if total < 60:
        return f"{total} min"
    hours, rest = divmod(total, 60)
    return f"{hours} h {rest} min"


def travel_times(meters: float) -> dict:
    """Formatted walking and motorbike estimates for a distance."""
    return {
        "walk": format_duration(travel_minutes(meters, WALKING_SPEED_KMH)),
        "moto": format_duration(travel_minutes(meters, MOTORBIKE_SPEED_KMH)),
    }
