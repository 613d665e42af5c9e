from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from capper.core.models import Coordinate, GeocodeResult
from capper.index.schema import GeocodeCacheRow

logger = logging.getLogger(__name__)


def cache_key(coordinate: Coordinate, precision: int = 4) -> str:
    """Round to `precision` decimal degrees (4 is roughly 11 m) and format as 'lat,lon'."""
    # Adding 0.0 folds -0.0 into 0.0 so both sides of the equator share a key.
    lat = round(coordinate.latitude, precision) + 0.0
    lon = round(coordinate.longitude, precision) + 0.0
    return f"{lat:.{precision}f},{lon:.{precision}f}"


class GeocodeStore(Protocol):
    def load_all(self) -> Dict[str, GeocodeResult]: ...

    def save(self, key: str, result: GeocodeResult) -> None: ...


class SqlGeocodeStore:
    """Persists successful geocodes so a restart does not repeat lookups."""

    def __init__(self, session_maker: sessionmaker[Session]):
        self.session_maker = session_maker

    def load_all(self) -> Dict[str, GeocodeResult]:
        with self.session_maker() as session:
            rows = session.scalars(select(GeocodeCacheRow)).all()
            return {
                row.key: GeocodeResult(
                    title=row.title, subtitle=row.subtitle, country_code=row.country_code
                )
                for row in rows
            }

    def save(self, key: str, result: GeocodeResult) -> None:
        with self.session_maker() as session:
            row = session.get(GeocodeCacheRow, key)
            if row is None:
                row = GeocodeCacheRow(key=key, title=result.title)
                session.add(row)
            row.title = result.title
            row.subtitle = result.subtitle
            row.country_code = result.country_code
            session.commit()


class GeocodeCache:
    """In-process geocode cache without eviction, optionally backed by a store."""

    def __init__(self, precision: int = 4, store: Optional[GeocodeStore] = None):
        self.precision = precision
        self.store = store
        self._entries: Dict[str, GeocodeResult] = {}
        if store is not None:
            self._entries.update(store.load_all())
            logger.info("Geocode cache: loaded %d persisted entries", len(self._entries))

    def key_for(self, coordinate: Coordinate) -> str:
        return cache_key(coordinate, self.precision)

    def get(self, key: str) -> Optional[GeocodeResult]:
        return self._entries.get(key)

    def put(self, key: str, result: GeocodeResult) -> None:
        self._entries[key] = result

    async def store_result(self, key: str, result: GeocodeResult) -> None:
        """Cache in memory, then persist to the store from a worker thread."""
        self.put(key, result)
        if self.store is not None:
            try:
                await asyncio.to_thread(self.store.save, key, result)
            except Exception as exc:  # pragma: no cover - database/environment failures
                logger.warning("Failed to persist geocode for %s: %s", key, exc)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
