"""
Ranking and filtering of points around a caller's position.

Pure functions of (points, origin, filters); nothing here touches storage, so
it is safe to call from any thread and from the terminal client alike.
"""
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional

from detecporc.geo import GeoPoint, haversine_m
from detecporc.schemas import Point, RankedPoint


@dataclass(frozen=True)
class Filters:
    query: str = ""
    max_distance_km: Optional[float] = None
    limit: Optional[int] = None


def _matches_query(point: Point, query: str) -> bool:
    if not query:
        return True
    content = f"{point.name} {point.address} {point.comment}".lower()
    return query in content


def _within(distance: Optional[float], max_distance_km: Optional[float]) -> bool:
    if max_distance_km is None or not math.isfinite(max_distance_km):
        return True
    return distance is not None and distance <= max_distance_km * 1000


def annotate(points: Iterable[Point], origin: Optional[GeoPoint] = None) -> List[RankedPoint]:
    """Attach the distance from `origin` to each point (None without origin)."""
    ranked = []
    for point in points:
        distance = haversine_m(origin, GeoPoint(point.lat, point.lng)) if origin else None
        ranked.append(RankedPoint(**point.model_dump(), distance=distance))
    return ranked


def rank(
    points: Iterable[Point],
    origin: Optional[GeoPoint] = None,
    filters: Optional[Filters] = None,
) -> List[RankedPoint]:
    filters = filters or Filters()
    query = filters.query.strip().lower()

    result = [
        p for p in annotate(points, origin)
        if _matches_query(p, query) and _within(p.distance, filters.max_distance_km)
    ]
    if origin is not None:
        # stable: ties and unknown distances keep input order, unknown last
        result.sort(key=lambda p: math.inf if p.distance is None else p.distance)
    if filters.limit is not None:
        result = result[:max(filters.limit, 0)]
    return result


def nearest(ranked: Iterable[RankedPoint]) -> Optional[RankedPoint]:
    known = [p for p in ranked if p.distance is not None]
    return min(known, key=lambda p: p.distance) if known else None
