from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from capper.core.models import Coordinate, PhotoRecord

from .exif_reader import CaptureMetadata, read_capture_metadata

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".heic"}


def _hash_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as infile:
        for chunk in iter(lambda: infile.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _coordinate(meta: CaptureMetadata) -> Optional[Coordinate]:
    if meta.gps_lat is None or meta.gps_lon is None:
        return None
    try:
        return Coordinate(latitude=meta.gps_lat, longitude=meta.gps_lon)
    except ValidationError:
        logger.warning("Ignoring out-of-range GPS %s,%s", meta.gps_lat, meta.gps_lon)
        return None


def photo_record_from_file(path: Path) -> PhotoRecord:
    """Build a record from EXIF capture data, falling back to the file mtime."""
    meta = read_capture_metadata(path)
    timestamp = meta.datetime_original or datetime.fromtimestamp(
        path.stat().st_mtime, tz=timezone.utc
    )
    return PhotoRecord(id=_hash_file(path), timestamp=timestamp, coordinate=_coordinate(meta))


def scan_photo_records(root: str | Path) -> list[PhotoRecord]:
    """Scan a directory tree for photo files and return clustering inputs."""
    root_path = Path(root)
    records: list[PhotoRecord] = []
    for path in sorted(root_path.rglob("*")):
        if not path.is_file():
            continue
        if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
            continue
        records.append(photo_record_from_file(path))
    logger.info("Ingest: found %d photos under %s", len(records), root_path)
    return records
