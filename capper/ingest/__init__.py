"""Photo source: read capture time and GPS from image files."""

from .exif_reader import CaptureMetadata, read_capture_metadata
from .scanner import SUPPORTED_EXTENSIONS, photo_record_from_file, scan_photo_records

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "CaptureMetadata",
    "photo_record_from_file",
    "read_capture_metadata",
    "scan_photo_records",
]
