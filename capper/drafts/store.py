from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from capper.core.models import GeocodeResult, PlaceCluster, RecapDraft

logger = logging.getLogger(__name__)


class DraftNotFound(LookupError):
    """Raised when a draft or cluster id does not belong to the live draft."""


class DraftSuperseded(DraftNotFound):
    """Raised when a draft was replaced or discarded before its titles resolved."""


class DraftStore:
    """
    Owns the single live recap draft.

    A new draft replaces the previous one wholesale; replacing or discarding a
    draft cancels its pending geocode work, and results that still arrive for a
    dead draft are dropped.
    """

    def __init__(self) -> None:
        self._current: Optional[RecapDraft] = None
        self._pending: Dict[str, asyncio.Task[None]] = {}

    @property
    def current(self) -> Optional[RecapDraft]:
        return self._current

    def get(self, draft_id: str) -> Optional[RecapDraft]:
        if self._current is not None and self._current.id == draft_id:
            return self._current
        return None

    def replace(self, draft: RecapDraft) -> None:
        if self._current is not None:
            self.discard(self._current.id)
        self._current = draft
        logger.info("Draft %s is live with %d clusters", draft.id, len(draft.clusters))

    def discard(self, draft_id: str) -> bool:
        task = self._pending.pop(draft_id, None)
        if task is not None and not task.done():
            task.cancel()
        if self.get(draft_id) is None:
            return False
        self._current = None
        logger.info("Draft %s discarded", draft_id)
        return True

    def track(self, draft_id: str, task: asyncio.Task[None]) -> None:
        self._pending[draft_id] = task
        task.add_done_callback(lambda done: self._forget(draft_id, done))

    def _forget(self, draft_id: str, task: asyncio.Task[None]) -> None:
        if self._pending.get(draft_id) is task:
            del self._pending[draft_id]

    def pending(self, draft_id: str) -> Optional[asyncio.Task[None]]:
        return self._pending.get(draft_id)

    def _live_cluster(self, draft_id: str, cluster_id: str) -> Optional[PlaceCluster]:
        draft = self.get(draft_id)
        return draft.find_cluster(cluster_id) if draft else None

    def apply_geocode(self, draft_id: str, cluster_id: str, result: GeocodeResult) -> bool:
        cluster = self._live_cluster(draft_id, cluster_id)
        if cluster is None:
            logger.debug("Dropping stale geocode for draft %s cluster %s", draft_id, cluster_id)
            return False
        cluster.resolved_title = result.title
        cluster.subtitle = result.subtitle
        cluster.country_code = result.country_code
        return True

    def rename_cluster(
        self, draft_id: str, cluster_id: str, custom_title: Optional[str]
    ) -> PlaceCluster:
        cluster = self._live_cluster(draft_id, cluster_id)
        if cluster is None:
            raise DraftNotFound(f"Cluster {cluster_id} not found in draft {draft_id}")
        title = custom_title.strip() if custom_title else ""
        cluster.custom_title = title or None
        return cluster
