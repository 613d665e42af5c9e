import os
from datetime import datetime, timezone
from pathlib import Path

from PIL import Image

from capper.ingest import read_capture_metadata, scan_photo_records
from capper.ingest.exif_reader import _convert_gps_coordinate


def _make_image(path: Path, taken: str | None = None) -> None:
    img = Image.new("RGB", (10, 10), color="red")
    if taken:
        exif = Image.Exif()
        exif[36867] = taken
        exif[306] = taken  # fallback DateTime
        img.save(path, exif=exif)
    else:
        img.save(path)


def test_read_capture_metadata_parses_datetime(tmp_path: Path) -> None:
    file_path = tmp_path / "with_exif.jpg"
    _make_image(file_path, taken="2021:01:02 03:04:05")

    meta = read_capture_metadata(file_path)
    assert meta.datetime_original == datetime(2021, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert meta.gps_lat is None and meta.gps_lon is None


def test_read_capture_metadata_tolerates_garbage(tmp_path: Path) -> None:
    broken = tmp_path / "broken.jpg"
    broken.write_bytes(b"not really a jpeg")
    meta = read_capture_metadata(broken)
    assert meta.datetime_original is None


def test_gps_conversion_honours_hemisphere() -> None:
    assert _convert_gps_coordinate((40.0, 30.0, 0.0), "N") == 40.5
    assert _convert_gps_coordinate(((74, 1), (0, 1), (36, 1)), "W") == -74.01
    assert _convert_gps_coordinate((51.0, 30.0, 0.0), b"S") == -51.5
    assert _convert_gps_coordinate((1.0, 2.0), "N") is None
    assert _convert_gps_coordinate((1.0, 2.0, 3.0), None) is None


def test_scan_photo_records_uses_exif_then_mtime(tmp_path: Path) -> None:
    with_exif = tmp_path / "a.jpg"
    without_exif = tmp_path / "nested" / "b.png"
    without_exif.parent.mkdir()
    _make_image(with_exif, taken="2022:06:01 12:00:00")
    _make_image(without_exif)
    mtime = datetime(2020, 3, 4, 5, 6, 7, tzinfo=timezone.utc).timestamp()
    os.utime(without_exif, (mtime, mtime))
    (tmp_path / "notes.txt").write_text("skip me")

    records = scan_photo_records(tmp_path)
    by_time = {r.timestamp.year: r for r in records}

    assert len(records) == 2
    assert all(len(r.id) == 64 for r in records)
    assert by_time[2022].timestamp == datetime(2022, 6, 1, 12, tzinfo=timezone.utc)
    assert by_time[2020].timestamp == datetime(2020, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
    assert all(r.coordinate is None for r in records)
