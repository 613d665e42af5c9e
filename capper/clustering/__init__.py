"""Time and distance based grouping of photos into place clusters and trips."""

from .engine import ClusteringConfig, EmptyInputError, build_cluster, cluster_photos
from .geo import (
    centroid,
    filter_trip_photos,
    haversine_distance_meters,
    should_include_in_trips,
)
from .trips import TripConfig, group_trips

__all__ = [
    "ClusteringConfig",
    "EmptyInputError",
    "TripConfig",
    "build_cluster",
    "centroid",
    "cluster_photos",
    "filter_trip_photos",
    "group_trips",
    "haversine_distance_meters",
    "should_include_in_trips",
]
