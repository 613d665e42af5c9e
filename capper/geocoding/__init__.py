"""Reverse geocoding of cluster coordinates into place labels."""

from .cache import GeocodeCache, SqlGeocodeStore, cache_key
from .providers import (
    GeocoderConfig,
    GeocodeTimeout,
    GeocodeUnavailable,
    LocationIQGeocoder,
    NoGeocodeResult,
    OfflineGeocoder,
    ReverseGeocoder,
    components_from_locationiq,
)
from .resolver import GeocodingResolver, RateLimiter, describe_place

__all__ = [
    "GeocodeCache",
    "GeocodeTimeout",
    "GeocodeUnavailable",
    "GeocoderConfig",
    "GeocodingResolver",
    "LocationIQGeocoder",
    "NoGeocodeResult",
    "OfflineGeocoder",
    "RateLimiter",
    "ReverseGeocoder",
    "SqlGeocodeStore",
    "cache_key",
    "components_from_locationiq",
    "describe_place",
]
