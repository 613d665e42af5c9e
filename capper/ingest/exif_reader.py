from __future__ import annotations

import numbers
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from PIL import Image
from pydantic import BaseModel

DATETIME_ORIGINAL_TAG = 36867  # EXIF DateTimeOriginal
DATETIME_TAG = 306  # EXIF DateTime fallback
EXIF_IFD_TAG = 34665  # ExifOffset
GPS_INFO_TAG = 34853  # GPSInfo


class CaptureMetadata(BaseModel):
    datetime_original: Optional[datetime] = None
    gps_lat: Optional[float] = None
    gps_lon: Optional[float] = None


def _to_float(value: object) -> Optional[float]:
    if isinstance(value, tuple) and len(value) == 2 and value[1]:
        return float(value[0]) / float(value[1])
    if isinstance(value, numbers.Real):
        return float(value)
    return None


def _convert_gps_coordinate(values: object, ref: object) -> Optional[float]:
    if not isinstance(values, tuple) or len(values) != 3 or ref is None:
        return None
    parts = [_to_float(v) for v in values]
    if any(p is None for p in parts):
        return None
    degrees, minutes, seconds = parts  # type: ignore[misc]
    coordinate = degrees + minutes / 60.0 + seconds / 3600.0
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if isinstance(ref, str) and ref.strip().upper() in {"S", "W"}:
        coordinate *= -1
    return coordinate


def _parse_exif_datetime(value: object) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.strptime(str(value).strip("\x00 "), "%Y:%m:%d %H:%M:%S").replace(
            tzinfo=timezone.utc
        )
    except ValueError:
        return None


def read_capture_metadata(path: str | Path) -> CaptureMetadata:
    """Extract capture time and GPS position from a photo file."""
    datetime_original: Optional[datetime] = None
    gps_lat: Optional[float] = None
    gps_lon: Optional[float] = None

    try:
        with Image.open(path) as img:
            exif = img.getexif()
            if not exif:
                return CaptureMetadata()

            # DateTimeOriginal normally lives in the Exif sub-IFD; some writers put it in IFD0.
            sub_ifd = exif.get_ifd(EXIF_IFD_TAG)
            dt_value = (
                sub_ifd.get(DATETIME_ORIGINAL_TAG)
                or exif.get(DATETIME_ORIGINAL_TAG)
                or exif.get(DATETIME_TAG)
            )
            datetime_original = _parse_exif_datetime(dt_value)

            gps_info = exif.get_ifd(GPS_INFO_TAG)
            if gps_info:
                gps_lat = _convert_gps_coordinate(gps_info.get(2), gps_info.get(1))
                gps_lon = _convert_gps_coordinate(gps_info.get(4), gps_info.get(3))
    except Exception:
        # A photo with unreadable EXIF still gets clustered by file time.
        return CaptureMetadata()

    return CaptureMetadata(
        datetime_original=datetime_original,
        gps_lat=gps_lat,
        gps_lon=gps_lon,
    )
