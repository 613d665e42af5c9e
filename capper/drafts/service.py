from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from capper.clustering import (
    ClusteringConfig,
    TripConfig,
    cluster_photos,
    filter_trip_photos,
    group_trips,
)
from capper.core.models import UNKNOWN_PLACE, Coordinate, PhotoRecord, PlaceCluster, RecapDraft
from capper.geocoding import (
    GeocodeCache,
    GeocoderConfig,
    GeocodingResolver,
    LocationIQGeocoder,
    OfflineGeocoder,
    RateLimiter,
    ReverseGeocoder,
    SqlGeocodeStore,
)
from capper.index import init_db, session_factory

from .store import DraftStore, DraftSuperseded

logger = logging.getLogger(__name__)


class RecapService:
    """Turns a photo batch into the live recap draft and keeps its titles current."""

    def __init__(
        self,
        resolver: GeocodingResolver,
        *,
        store: Optional[DraftStore] = None,
        config: Optional[ClusteringConfig] = None,
        trip_config: Optional[TripConfig] = None,
    ):
        self.resolver = resolver
        self.store = store or DraftStore()
        self.config = config or ClusteringConfig()
        self.trip_config = trip_config or TripConfig()

    def create_draft(
        self,
        records: Iterable[PhotoRecord],
        *,
        home: Optional[Coordinate] = None,
        exclude_radius_miles: float = 50.0,
    ) -> RecapDraft:
        """Cluster a batch into a new, not yet live, draft."""
        batch = list(records)
        if home is not None:
            batch = filter_trip_photos(batch, home, exclude_radius_miles)
        clusters = cluster_photos(batch, self.config)
        for cluster in clusters:
            if cluster.representative is None:
                cluster.resolved_title = UNKNOWN_PLACE
        return RecapDraft(clusters=clusters, trips=group_trips(clusters, self.trip_config))

    async def build_draft(
        self,
        records: Iterable[PhotoRecord],
        *,
        home: Optional[Coordinate] = None,
        exclude_radius_miles: float = 50.0,
    ) -> RecapDraft:
        """
        Create a draft, make it live, and wait until its clusters are labeled.

        Raises DraftSuperseded when another draft replaces this one, or it is
        discarded, before its titles resolve.
        """
        draft = self.create_draft(records, home=home, exclude_radius_miles=exclude_radius_miles)
        self.store.replace(draft)
        if any(c.representative is not None for c in draft.clusters):
            task = asyncio.ensure_future(self._resolve_titles(draft))
            self.store.track(draft.id, task)
        live = await self.wait_for_titles(draft.id)
        if live is None:
            raise DraftSuperseded(f"Draft {draft.id} was superseded before its titles resolved")
        return live

    async def wait_for_titles(self, draft_id: str) -> Optional[RecapDraft]:
        task = self.store.pending(draft_id)
        if task is not None:
            # asyncio.wait neither raises if the task was cancelled nor cancels it.
            await asyncio.wait({task})
        return self.store.get(draft_id)

    async def _resolve_titles(self, draft: RecapDraft) -> None:
        targets = [
            (cluster.id, cluster.representative)
            for cluster in draft.clusters
            if cluster.representative is not None
        ]

        async def _resolve_one(cluster_id: str, coordinate: Coordinate) -> None:
            result = await self.resolver.resolve(coordinate)
            self.store.apply_geocode(draft.id, cluster_id, result)

        await asyncio.gather(*(_resolve_one(cid, coord) for cid, coord in targets))
        if self.store.get(draft.id) is not None:
            # Regroup with the resolved country codes.
            draft.trips = group_trips(draft.clusters, self.trip_config)
        logger.info("Draft %s: resolved %d cluster titles", draft.id, len(targets))

    def rename_cluster(
        self, draft_id: str, cluster_id: str, custom_title: Optional[str]
    ) -> PlaceCluster:
        return self.store.rename_cluster(draft_id, cluster_id, custom_title)

    def discard(self, draft_id: str) -> bool:
        return self.store.discard(draft_id)

    async def aclose(self) -> None:
        """Release the geocoder's connections."""
        await self.resolver.aclose()


def build_recap_service(
    clustering: Optional[ClusteringConfig] = None,
    geocoding: Optional[GeocoderConfig] = None,
    trips: Optional[TripConfig] = None,
) -> RecapService:
    """Wire a service from env config: LocationIQ when enabled, optional persisted cache."""
    clustering = clustering or ClusteringConfig.from_env()
    geocoding = geocoding or GeocoderConfig.from_env()
    trips = trips or TripConfig.from_env()
    provider: ReverseGeocoder
    if geocoding.enable_remote:
        provider = LocationIQGeocoder(geocoding)
        rate_limiter = RateLimiter(geocoding.rate_limit_per_minute)
    else:
        logger.info("Remote geocoding disabled; clusters will be labeled %r", UNKNOWN_PLACE)
        provider = OfflineGeocoder()
        # Offline lookups are not throttled.
        rate_limiter = RateLimiter(0)

    store = None
    if geocoding.cache_database_url:
        engine = init_db(geocoding.cache_database_url)
        store = SqlGeocodeStore(session_factory(engine))
    cache = GeocodeCache(precision=geocoding.cache_precision, store=store)
    resolver = GeocodingResolver(
        provider, config=geocoding, cache=cache, rate_limiter=rate_limiter
    )
    return RecapService(resolver, config=clustering, trip_config=trips)
