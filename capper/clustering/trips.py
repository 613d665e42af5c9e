from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Optional, Sequence

from capper.core.models import Coordinate, PlaceCluster, TripSegment

from .geo import METERS_PER_MILE, haversine_distance_meters

logger = logging.getLogger(__name__)


@dataclass
class TripConfig:
    max_gap_days: int = 2
    exclusion_radius_miles: float = 100.0
    neighbourhood_radius_miles: float = 50.0
    country_fallback_max_miles: float = 100.0

    @classmethod
    def from_env(cls) -> "TripConfig":
        return cls(
            max_gap_days=int(os.getenv("TRIP_MAX_GAP_DAYS", "2")),
            exclusion_radius_miles=float(os.getenv("TRIP_EXCLUSION_RADIUS_MILES", "100")),
            neighbourhood_radius_miles=float(os.getenv("TRIP_NEIGHBOURHOOD_RADIUS_MILES", "50")),
            country_fallback_max_miles=float(os.getenv("TRIP_COUNTRY_FALLBACK_MILES", "100")),
        )


class _OpenTrip:
    def __init__(self, first: PlaceCluster):
        self.clusters: List[PlaceCluster] = []
        self._lat_sum = 0.0
        self._lon_sum = 0.0
        self._located = 0
        self.last_point: Optional[Coordinate] = None
        self.last_country: Optional[str] = None
        self.add(first)

    @property
    def centroid(self) -> Optional[Coordinate]:
        if not self._located:
            return None
        return Coordinate(
            latitude=self._lat_sum / self._located, longitude=self._lon_sum / self._located
        )

    def add(self, cluster: PlaceCluster) -> None:
        self.clusters.append(cluster)
        if cluster.representative is not None:
            self._lat_sum += cluster.representative.latitude
            self._lon_sum += cluster.representative.longitude
            self._located += 1
            self.last_point = cluster.representative
            self.last_country = cluster.country_code

    def segment(self) -> TripSegment:
        return TripSegment(
            cluster_ids=[c.id for c in self.clusters],
            centroid=self.centroid,
            start_time=min(c.start_time for c in self.clusters),
            end_time=max(c.end_time for c in self.clusters),
        )


def _miles(a: Coordinate, b: Coordinate) -> float:
    return haversine_distance_meters(a, b) / METERS_PER_MILE


def _day_gap(trip: _OpenTrip, cluster: PlaceCluster) -> int:
    last_day = max(c.end_time for c in trip.clusters).date()
    return (cluster.start_time.date() - last_day).days


def _joins_trip(trip: _OpenTrip, cluster: PlaceCluster, config: TripConfig) -> bool:
    if _day_gap(trip, cluster) > config.max_gap_days:
        return False
    center = trip.centroid
    if cluster.representative is None or center is None or trip.last_point is None:
        return True
    if _miles(center, cluster.representative) > config.exclusion_radius_miles:
        return False

    distance = _miles(trip.last_point, cluster.representative)
    if distance <= config.neighbourhood_radius_miles:
        return True
    same_country = (
        cluster.country_code is not None
        and cluster.country_code == trip.last_country
    )
    return same_country and distance <= config.country_fallback_max_miles


def group_trips(
    clusters: Sequence[PlaceCluster], config: Optional[TripConfig] = None
) -> List[TripSegment]:
    """
    Group time-ordered place clusters into trips.

    A cluster starts a new trip when it begins more than `max_gap_days` calendar
    days after the trip's last cluster, or lies beyond `exclusion_radius_miles`
    of the trip's centroid. Otherwise it joins when it is within
    `neighbourhood_radius_miles` of the trip's last located cluster, or in the
    same country within `country_fallback_max_miles`. Clusters without a
    location join on the day-gap rule alone.
    """
    config = config or TripConfig()
    ordered = sorted(clusters, key=lambda c: c.start_time)
    if not ordered:
        return []

    trips: List[_OpenTrip] = [_OpenTrip(ordered[0])]
    for cluster in ordered[1:]:
        if _joins_trip(trips[-1], cluster, config):
            trips[-1].add(cluster)
        else:
            trips.append(_OpenTrip(cluster))

    logger.info("Trip grouping: %d clusters -> %d trips", len(ordered), len(trips))
    return [trip.segment() for trip in trips]
