#!/usr/bin/env python
"""
Cluster a directory of photos into place stops and print the recap draft.

Usage:
  python scripts/recap.py /absolute/path/to/photos
  GEOCODING_ENABLED=1 LOCATIONIQ_API_KEY=... python scripts/recap.py ~/Pictures --home 40.7,-74.0
"""
from __future__ import annotations

import argparse
import asyncio
from datetime import timedelta
from pathlib import Path

from capper.clustering import ClusteringConfig, EmptyInputError
from capper.core.env import configure_logging, load_dotenv_if_present
from capper.core.models import Coordinate, PhotoRecord, RecapDraft
from capper.drafts import RecapService, build_recap_service
from capper.ingest import scan_photo_records


def _parse_home(value: str) -> Coordinate:
    try:
        lat, lon = (float(part) for part in value.split(","))
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--home expects LAT,LON") from exc
    return Coordinate(latitude=lat, longitude=lon)


async def _build(
    service: RecapService,
    records: list[PhotoRecord],
    home: Coordinate | None,
    exclude_miles: float,
) -> RecapDraft:
    try:
        return await service.build_draft(records, home=home, exclude_radius_miles=exclude_miles)
    finally:
        await service.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Group photos into place clusters.")
    parser.add_argument("directory", type=Path, help="Directory containing photos (recursed)")
    parser.add_argument("--home", type=_parse_home, default=None, help="Exclude photos near LAT,LON")
    parser.add_argument("--exclude-miles", type=float, default=50.0)
    parser.add_argument("--max-gap-minutes", type=float, default=None)
    parser.add_argument("--max-distance-meters", type=float, default=None)
    args = parser.parse_args()

    load_dotenv_if_present()
    configure_logging()
    target = args.directory
    if not target.exists() or not target.is_dir():
        raise FileNotFoundError(f"Directory not found or not a folder: {target}")

    config = ClusteringConfig.from_env()
    if args.max_gap_minutes is not None:
        config.max_time_gap_between_clusters = timedelta(minutes=args.max_gap_minutes)
    if args.max_distance_meters is not None:
        config.max_distance_within_cluster = args.max_distance_meters
    service = build_recap_service(clustering=config)

    records = scan_photo_records(target)
    try:
        draft = asyncio.run(_build(service, records, args.home, args.exclude_miles))
    except EmptyInputError:
        print(f"No usable photos found under {target}")
        return

    print(f"{len(draft.clusters)} place clusters from {len(records)} photos:")
    for idx, cluster in enumerate(draft.clusters, start=1):
        subtitle = f" ({cluster.subtitle})" if cluster.subtitle else ""
        print(f"{idx:>3}. {cluster.display_title}{subtitle}")
        print(f"     {cluster.date_range_label} - {cluster.photo_count} photos")

    titles = {cluster.id: cluster.display_title for cluster in draft.clusters}
    print(f"{len(draft.trips)} trips:")
    for trip in draft.trips:
        stops = ", ".join(titles[cid] for cid in trip.cluster_ids)
        print(f"  {trip.start_time:%b %d, %Y} - {trip.end_time:%b %d, %Y}: {stops}")


if __name__ == "__main__":
    main()
