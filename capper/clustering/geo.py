from __future__ import annotations

import math
from typing import Iterable, List, Optional

from capper.core.models import Coordinate, PhotoRecord

METERS_PER_MILE = 1609.344
EARTH_RADIUS_KM = 6371.0


def haversine_distance_meters(a: Coordinate, b: Coordinate) -> float:
    """Return approximate great-circle distance in meters."""
    dlat = math.radians(b.latitude - a.latitude)
    dlon = math.radians(b.longitude - a.longitude)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(a.latitude))
        * math.cos(math.radians(b.latitude))
        * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c * 1000


def centroid(coordinates: Iterable[Coordinate]) -> Optional[Coordinate]:
    """
    Mean latitude/longitude of the given points, or None when there are none.

    Plain averaging is only accurate over small extents (a cluster's split
    radius); it is not a spherical mean and does not handle the antimeridian.
    """
    points = list(coordinates)
    if not points:
        return None
    lat = sum(p.latitude for p in points) / len(points)
    lon = sum(p.longitude for p in points) / len(points)
    return Coordinate(latitude=lat, longitude=lon)


def should_include_in_trips(
    coordinate: Optional[Coordinate], home: Coordinate, min_miles: float = 50.0
) -> bool:
    """Keep photos at least `min_miles` from home; photos without GPS are never trip photos."""
    if coordinate is None:
        return False
    distance_miles = haversine_distance_meters(home, coordinate) / METERS_PER_MILE
    return distance_miles >= min_miles


def filter_trip_photos(
    records: Iterable[PhotoRecord], home: Coordinate, min_miles: float = 50.0
) -> List[PhotoRecord]:
    return [r for r in records if should_include_in_trips(r.coordinate, home, min_miles)]
