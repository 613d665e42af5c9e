from __future__ import annotations

import asyncio

import httpx
import pytest

from capper.core.models import PlaceComponents
from capper.drafts import build_recap_service
from capper.geocoding import (
    GeocoderConfig,
    GeocodeTimeout,
    GeocodeUnavailable,
    LocationIQGeocoder,
    NoGeocodeResult,
    OfflineGeocoder,
    components_from_locationiq,
)

CONFIG = GeocoderConfig(
    enable_remote=True,
    api_key="key",
    base_url="http://example.test/v1",
    timeout=0.1,
)


def _geocoder(handler, config: GeocoderConfig = CONFIG) -> LocationIQGeocoder:
    client = httpx.AsyncClient(
        base_url=config.base_url, transport=httpx.MockTransport(handler)
    )
    return LocationIQGeocoder(config, client=client)


def test_reverse_maps_payload_and_sends_params() -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(dict(request.url.params))
        seen["path"] = request.url.path
        return httpx.Response(
            200,
            json={
                "lat": "48.8584",
                "lon": "2.2945",
                "address": {
                    "attraction": "Tour Eiffel",
                    "suburb": "Gros-Caillou",
                    "city": "Paris",
                    "state": "Ile-de-France",
                    "country": "France",
                    "country_code": "fr",
                },
            },
        )

    components = asyncio.run(_geocoder(handler).reverse(48.8584, 2.2945))
    assert components == PlaceComponents(
        name="Tour Eiffel",
        neighbourhood="Gros-Caillou",
        locality="Paris",
        region="Ile-de-France",
        country="France",
        country_code="FR",
    )
    assert seen["path"] == "/v1/reverse"
    assert seen["key"] == "key"
    assert seen["format"] == "json"


def test_not_found_is_no_result() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "Unable to geocode"})

    with pytest.raises(NoGeocodeResult):
        asyncio.run(_geocoder(handler).reverse(0.0, 0.0))


def test_error_payload_is_no_result() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "Unable to geocode"})

    with pytest.raises(NoGeocodeResult):
        asyncio.run(_geocoder(handler).reverse(0.0, 0.0))


def test_server_error_is_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="busy")

    with pytest.raises(GeocodeUnavailable):
        asyncio.run(_geocoder(handler).reverse(1.0, 1.0))


def test_transport_timeout_is_geocode_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(GeocodeTimeout):
        asyncio.run(_geocoder(handler).reverse(1.0, 1.0))


def test_missing_api_key_never_calls_network() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={})

    config = GeocoderConfig(enable_remote=False, api_key=None, base_url="http://example.test")
    with pytest.raises(GeocodeUnavailable):
        asyncio.run(_geocoder(handler, config).reverse(1.0, 1.0))
    assert calls == []


def test_offline_geocoder_always_unavailable() -> None:
    with pytest.raises(GeocodeUnavailable):
        asyncio.run(OfflineGeocoder().reverse(1.0, 1.0))


def test_street_addresses_are_not_venues() -> None:
    data = {
        "name": "123 Main St",
        "address": {"road": "Main Street", "city": "Gotham", "country": "Freedonia"},
    }
    assert components_from_locationiq(data).name is None

    data = {"name": "Baker Street", "address": {"city": "London"}}
    assert components_from_locationiq(data).name is None

    data = {"address": {"shop": "Corner Coffee", "road": "123 Main St", "city": "Gotham"}}
    components = components_from_locationiq(data)
    assert components.name == "Corner Coffee"
    assert components.locality == "Gotham"


def test_name_repeating_locality_is_dropped() -> None:
    data = {"name": "Kyoto", "address": {"city": "Kyoto", "country": "Japan"}}
    components = components_from_locationiq(data)
    assert components.name is None
    assert components.locality == "Kyoto"


def test_remote_service_is_throttled_and_closes_its_client() -> None:
    service = build_recap_service(geocoding=CONFIG)
    provider = service.resolver.provider
    assert isinstance(provider, LocationIQGeocoder)
    assert service.resolver.rate_limiter.per_minute == 30
    assert provider.client.is_closed is False

    asyncio.run(service.aclose())
    assert provider.client.is_closed is True
