from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from capper.clustering import TripConfig, group_trips
from capper.core.models import Coordinate, PlaceCluster

DAY1 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)
PARIS = Coordinate(latitude=48.8566, longitude=2.3522)
VERSAILLES = Coordinate(latitude=48.8049, longitude=2.1204)
LYON = Coordinate(latitude=45.764, longitude=4.8357)


def _cluster(
    cid: str,
    start: datetime,
    coord: Optional[Coordinate] = None,
    country: Optional[str] = None,
    hours: float = 1,
) -> PlaceCluster:
    return PlaceCluster(
        id=cid,
        photo_ids=[f"{cid}-photo"],
        representative=coord,
        country_code=country,
        start_time=start,
        end_time=start + timedelta(hours=hours),
        photo_count=1,
    )


def _ids(trips) -> list[list[str]]:
    return [trip.cluster_ids for trip in trips]


def test_nearby_stops_on_consecutive_days_form_one_trip() -> None:
    clusters = [
        _cluster("paris", DAY1, PARIS),
        _cluster("versailles", DAY1 + timedelta(days=1), VERSAILLES),
        _cluster("paris-again", DAY1 + timedelta(days=2), PARIS),
    ]
    trips = group_trips(clusters)
    assert _ids(trips) == [["paris", "versailles", "paris-again"]]
    assert trips[0].start_time == DAY1
    assert trips[0].end_time == DAY1 + timedelta(days=2, hours=1)
    assert trips[0].centroid is not None
    assert abs(trips[0].centroid.latitude - (2 * PARIS.latitude + VERSAILLES.latitude) / 3) < 1e-9


def test_gap_counts_calendar_days() -> None:
    late = datetime(2024, 1, 1, 22, 0, tzinfo=timezone.utc)
    first = _cluster("a", late, PARIS)
    bridged = _cluster("b", datetime(2024, 1, 3, 1, 0, tzinfo=timezone.utc), PARIS)
    too_late = _cluster("c", datetime(2024, 1, 6, 8, 0, tzinfo=timezone.utc), PARIS)
    assert _ids(group_trips([first, bridged, too_late])) == [["a", "b"], ["c"]]


def test_far_stop_starts_a_new_trip() -> None:
    clusters = [
        _cluster("paris", DAY1, PARIS, "FR"),
        _cluster("lyon", DAY1 + timedelta(hours=6), LYON, "FR"),
    ]
    assert _ids(group_trips(clusters)) == [["paris"], ["lyon"]]


def test_same_country_bridges_beyond_neighbourhood_radius() -> None:
    start = Coordinate(latitude=45.0, longitude=5.0)
    # One degree of latitude is about 69 miles.
    next_stop = Coordinate(latitude=46.0, longitude=5.0)

    def pair(country: Optional[str]) -> list[PlaceCluster]:
        return [
            _cluster("a", DAY1, start, "FR"),
            _cluster("b", DAY1 + timedelta(days=1), next_stop, country),
        ]

    assert _ids(group_trips(pair("FR"))) == [["a", "b"]]
    assert _ids(group_trips(pair("CH"))) == [["a"], ["b"]]
    assert _ids(group_trips(pair(None))) == [["a"], ["b"]]


def test_drifting_chain_is_cut_by_trip_centroid() -> None:
    # Each hop is about 48 miles, under the neighbourhood radius.
    clusters = [
        _cluster(
            str(i),
            DAY1 + timedelta(hours=3 * i),
            Coordinate(latitude=45.0 + 0.7 * i, longitude=5.0),
        )
        for i in range(5)
    ]
    assert _ids(group_trips(clusters)) == [["0", "1", "2", "3"], ["4"]]


def test_unlocated_clusters_join_on_day_gap() -> None:
    clusters = [
        _cluster("blind", DAY1),
        _cluster("paris", DAY1 + timedelta(hours=5), PARIS),
        _cluster("blind-2", DAY1 + timedelta(days=2)),
        _cluster("blind-3", DAY1 + timedelta(days=6)),
    ]
    trips = group_trips(clusters)
    assert _ids(trips) == [["blind", "paris", "blind-2"], ["blind-3"]]
    assert trips[0].centroid == PARIS
    assert trips[1].centroid is None


def test_clusters_are_ordered_and_empty_input_has_no_trips() -> None:
    clusters = [
        _cluster("second", DAY1 + timedelta(hours=4), VERSAILLES),
        _cluster("first", DAY1, PARIS),
    ]
    assert _ids(group_trips(clusters)) == [["first", "second"]]
    assert group_trips([]) == []


def test_custom_config_and_env(monkeypatch) -> None:
    clusters = [
        _cluster("paris", DAY1, PARIS),
        _cluster("versailles", DAY1 + timedelta(days=1), VERSAILLES),
    ]
    assert _ids(group_trips(clusters, TripConfig(max_gap_days=0))) == [["paris"], ["versailles"]]

    assert TripConfig.from_env() == TripConfig()
    monkeypatch.setenv("TRIP_MAX_GAP_DAYS", "5")
    monkeypatch.setenv("TRIP_NEIGHBOURHOOD_RADIUS_MILES", "25")
    config = TripConfig.from_env()
    assert config.max_gap_days == 5
    assert config.neighbourhood_radius_miles == 25.0
    assert config.exclusion_radius_miles == 100.0
