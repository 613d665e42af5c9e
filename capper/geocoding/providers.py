from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import httpx

from capper.core.models import PlaceComponents

logger = logging.getLogger(__name__)


class GeocodeUnavailable(RuntimeError):
    """Raised when a backend cannot produce a place for a coordinate."""


class NoGeocodeResult(GeocodeUnavailable):
    """The backend answered but knows no place at the coordinate."""


class GeocodeTimeout(GeocodeUnavailable):
    """The backend did not answer in time."""


@dataclass
class GeocoderConfig:
    enable_remote: bool
    api_key: Optional[str]
    base_url: str = "https://us1.locationiq.com/v1"
    timeout: float = 5.0
    cache_precision: int = 4
    rate_limit_per_minute: int = 30
    cache_database_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "GeocoderConfig":
        api_key = os.getenv("LOCATIONIQ_API_KEY")
        enable_remote = os.getenv("GEOCODING_ENABLED", "0") == "1" and bool(api_key)
        return cls(
            enable_remote=enable_remote,
            api_key=api_key,
            base_url=os.getenv("LOCATIONIQ_BASE_URL", "https://us1.locationiq.com/v1"),
            timeout=float(os.getenv("GEOCODE_TIMEOUT_SECONDS", "5.0")),
            cache_precision=int(os.getenv("GEOCODE_CACHE_PRECISION", "4")),
            rate_limit_per_minute=int(os.getenv("GEOCODE_RATE_LIMIT_PER_MINUTE", "30")),
            cache_database_url=os.getenv("GEOCODE_CACHE_DATABASE_URL") or None,
        )


class ReverseGeocoder(Protocol):
    async def reverse(self, latitude: float, longitude: float) -> PlaceComponents: ...

    async def aclose(self) -> None: ...


class OfflineGeocoder:
    """Backend used when remote lookups are disabled; every cluster falls back."""

    async def reverse(self, latitude: float, longitude: float) -> PlaceComponents:
        raise GeocodeUnavailable("Remote geocoding disabled")

    async def aclose(self) -> None:
        return None


_VENUE_FIELDS = [
    "shop",
    "amenity",
    "tourism",
    "attraction",
    "leisure",
    "man_made",
    "building",
]
_NEIGHBOURHOOD_FIELDS = ["neighbourhood", "suburb", "quarter", "city_district"]
_LOCALITY_FIELDS = ["city", "town", "village", "hamlet", "municipality"]
_REGION_FIELDS = ["state", "region", "county"]
_STREET_SUFFIXES = (
    " st",
    " ave",
    " rd",
    " blvd",
    " lane",
    " dr",
    " drive",
    " street",
    " avenue",
    " road",
    " boulevard",
)


def _clean(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _first(address: dict[str, Any], fields: list[str]) -> Optional[str]:
    for field in fields:
        val = _clean(address.get(field))
        if val:
            return val
    return None


def _looks_like_venue(name: str) -> bool:
    """Reject names that are really street addresses."""
    if name[0].isdigit():
        return False
    lower = name.lower()
    return not lower.endswith(_STREET_SUFFIXES)


def components_from_locationiq(data: dict[str, Any]) -> PlaceComponents:
    """Map a LocationIQ/Nominatim reverse payload onto place components."""
    address = data.get("address") if isinstance(data.get("address"), dict) else {}
    neighbourhood = _first(address, _NEIGHBOURHOOD_FIELDS)
    locality = _first(address, _LOCALITY_FIELDS)

    name = _clean(data.get("name")) or _first(address, _VENUE_FIELDS)
    if name and (name in (neighbourhood, locality) or not _looks_like_venue(name)):
        name = None

    country_code = _clean(address.get("country_code"))
    return PlaceComponents(
        name=name,
        neighbourhood=neighbourhood,
        locality=locality,
        region=_first(address, _REGION_FIELDS),
        country=_clean(address.get("country")),
        country_code=country_code.upper() if country_code else None,
    )


class LocationIQGeocoder:
    """Reverse geocoder backed by LocationIQ (OpenStreetMap data)."""

    def __init__(self, config: GeocoderConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.client = client or httpx.AsyncClient(base_url=config.base_url, timeout=config.timeout)

    async def reverse(self, latitude: float, longitude: float) -> PlaceComponents:
        if not self.config.api_key:
            raise GeocodeUnavailable("LOCATIONIQ_API_KEY not set")
        try:
            response = await self.client.get(
                "reverse",
                params={
                    "key": self.config.api_key,
                    "lat": latitude,
                    "lon": longitude,
                    "format": "json",
                    "addressdetails": 1,
                },
            )
            if response.status_code == 404:
                raise NoGeocodeResult(f"No place at {latitude:.5f},{longitude:.5f}")
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            raise GeocodeTimeout(f"LocationIQ timed out: {exc}") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise GeocodeUnavailable(f"LocationIQ lookup failed: {exc}") from exc

        if not isinstance(data, dict) or data.get("error"):
            raise NoGeocodeResult(f"No place at {latitude:.5f},{longitude:.5f}")
        logger.debug("LocationIQ resolved %.5f,%.5f", latitude, longitude)
        return components_from_locationiq(data)

    async def aclose(self) -> None:
        await self.client.aclose()
