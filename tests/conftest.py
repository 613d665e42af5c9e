from __future__ import annotations

import pytest

_CONFIG_ENV = [
    "LOCATIONIQ_API_KEY",
    "LOCATIONIQ_BASE_URL",
    "GEOCODING_ENABLED",
    "GEOCODE_TIMEOUT_SECONDS",
    "GEOCODE_CACHE_PRECISION",
    "GEOCODE_RATE_LIMIT_PER_MINUTE",
    "GEOCODE_CACHE_DATABASE_URL",
    "CLUSTER_MAX_GAP_MINUTES",
    "CLUSTER_MAX_DISTANCE_METERS",
    "TRIP_MAX_GAP_DAYS",
    "TRIP_EXCLUSION_RADIUS_MILES",
    "TRIP_NEIGHBOURHOOD_RADIUS_MILES",
    "TRIP_COUNTRY_FALLBACK_MILES",
]


@pytest.fixture(autouse=True)
def isolate_config_env(monkeypatch):
    """Keep a developer's .env or shell settings from leaking into config defaults."""
    for name in _CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)
    yield
