from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, List, Optional, Sequence

from capper.core.models import PhotoRecord, PlaceCluster

from .geo import centroid, haversine_distance_meters

logger = logging.getLogger(__name__)


class EmptyInputError(ValueError):
    """Raised when asked to cluster an empty batch of photos."""


@dataclass
class ClusteringConfig:
    max_time_gap_between_clusters: timedelta = timedelta(hours=2)
    max_distance_within_cluster: float = 1000.0  # meters

    @classmethod
    def from_env(cls) -> "ClusteringConfig":
        gap_minutes = float(os.getenv("CLUSTER_MAX_GAP_MINUTES", "120"))
        distance = float(os.getenv("CLUSTER_MAX_DISTANCE_METERS", "1000"))
        return cls(
            max_time_gap_between_clusters=timedelta(minutes=gap_minutes),
            max_distance_within_cluster=distance,
        )


def _starts_new_cluster(
    previous: PhotoRecord, current: PhotoRecord, config: ClusteringConfig
) -> bool:
    if current.timestamp - previous.timestamp > config.max_time_gap_between_clusters:
        return True
    if previous.coordinate is None or current.coordinate is None:
        return False
    distance = haversine_distance_meters(previous.coordinate, current.coordinate)
    return distance > config.max_distance_within_cluster


def build_cluster(members: Sequence[PhotoRecord]) -> PlaceCluster:
    """Summarize time-ordered members into a cluster with an unresolved title."""
    timestamps = [m.timestamp for m in members]
    return PlaceCluster(
        photo_ids=[m.id for m in members],
        representative=centroid(m.coordinate for m in members if m.coordinate is not None),
        start_time=min(timestamps),
        end_time=max(timestamps),
        photo_count=len(members),
    )


def cluster_photos(
    records: Iterable[PhotoRecord], config: Optional[ClusteringConfig] = None
) -> List[PlaceCluster]:
    """Split photos into place clusters on long time gaps or large moves between shots."""
    config = config or ClusteringConfig()
    ordered = sorted(records, key=lambda r: r.timestamp)
    if not ordered:
        raise EmptyInputError("No photo records to cluster")

    groups: List[list[PhotoRecord]] = []
    current_group: list[PhotoRecord] = [ordered[0]]
    for previous, record in zip(ordered, ordered[1:]):
        if _starts_new_cluster(previous, record, config):
            groups.append(current_group)
            current_group = []
        current_group.append(record)
    groups.append(current_group)

    logger.info("Clustering: %d photos -> %d clusters", len(ordered), len(groups))
    return [build_cluster(group) for group in groups]
