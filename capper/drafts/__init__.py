"""Recap draft ownership: clustering a batch and applying geocode results."""

from .service import RecapService, build_recap_service
from .store import DraftNotFound, DraftStore, DraftSuperseded

__all__ = [
    "DraftNotFound",
    "DraftStore",
    "DraftSuperseded",
    "RecapService",
    "build_recap_service",
]
