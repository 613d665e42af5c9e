"""Database layer for the persisted geocode cache."""

from .schema import (
    Base,
    GeocodeCacheRow,
    create_engine_from_url,
    init_db,
    session_factory,
)

__all__ = [
    "Base",
    "GeocodeCacheRow",
    "create_engine_from_url",
    "init_db",
    "session_factory",
]
