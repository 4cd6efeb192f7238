"""
Tests — Geocoding Client
=========================
Unit tests for :func:`~address_geocoder.geocoder.build_address`,
:class:`~address_geocoder.geocoder.AddressDetails`,
:class:`~address_geocoder.geocoder.GeocodeResult` and
:class:`~address_geocoder.geocoder.NominatimClient`.

All HTTP calls are mocked via the ``responses`` library — no real
network requests are made during testing.  The rate-limit pause is
recorded by a fake ``sleep`` instead of actually waiting.
"""

from __future__ import annotations

import pytest
import requests
import responses as rsps_lib
from responses import matchers

from address_geocoder.geocoder import (
    DEFAULT_BASE_URL,
    AddressDetails,
    GeocodeResult,
    NominatimClient,
    NominatimConfig,
    build_address,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class FakeSleep:
    """Records requested pauses instead of sleeping."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture()
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture()
def client(fake_sleep: FakeSleep) -> NominatimClient:
    return NominatimClient(NominatimConfig(user_agent="test/1.0"), sleep=fake_sleep)


def _nominatim_hit(lat: str, lon: str, display: str, address: dict | None = None) -> list[dict]:
    """Build a mock Nominatim JSON response with one result."""
    return [
        {
            "lat": lat,
            "lon": lon,
            "display_name": display,
            "address": address or {},
        }
    ]


# ---------------------------------------------------------------------------
# build_address
# ---------------------------------------------------------------------------


class TestBuildAddress:
    def test_all_components(self) -> None:
        assert build_address("Musterstraße 1", "12345", "Berlin", "Deutschland") == (
            "Musterstraße 1, 12345, Berlin, Deutschland"
        )

    def test_all_missing(self) -> None:
        assert build_address(None, None, None, None) == ""
        assert build_address() == ""

    def test_trim_and_skip_missing(self) -> None:
        assert build_address("  A  ", "B", None, None) == "A, B"

    def test_blank_components_dropped(self) -> None:
        assert build_address("", "12345", "   ", "DE") == "12345, DE"


# ---------------------------------------------------------------------------
# AddressDetails / GeocodeResult
# ---------------------------------------------------------------------------


class TestAddressDetails:
    def test_from_dict_ignores_unknown_keys(self) -> None:
        details = AddressDetails.from_dict({"road": "Hauptstraße", "ISO3166-2-lvl4": "DE-BE"})
        assert details.road == "Hauptstraße"

    def test_from_dict_none(self) -> None:
        assert AddressDetails.from_dict(None) == AddressDetails()

    def test_label_with_street_and_city(self) -> None:
        details = AddressDetails(road="Hauptstraße", house_number="5", postcode="10115", city="Berlin")
        assert details.label() == "Hauptstraße 5, 10115 Berlin"

    def test_locality_prefers_city_then_town(self) -> None:
        assert AddressDetails(town="Celle", county="Landkreis Celle").locality() == "Celle"
        assert AddressDetails(postcode="29221").locality() == "29221"

    def test_label_fallback_to_state(self) -> None:
        assert AddressDetails(state="Bayern", country="Deutschland").label() == "Bayern"

    def test_label_empty(self) -> None:
        assert AddressDetails().label() == ""


class TestGeocodeResult:
    def test_from_nominatim_parses_floats(self) -> None:
        result = GeocodeResult.from_nominatim(
            {"lat": "52.5200", "lon": "13.4050", "display_name": "Berlin, Deutschland",
             "address": {"city": "Berlin", "country": "Deutschland"}}
        )
        assert result.latitude == 52.52
        assert result.longitude == 13.405
        assert result.coordinates == (52.52, 13.405)
        assert result.address.city == "Berlin"

    def test_non_finite_coordinates_rejected(self) -> None:
        with pytest.raises(ValueError):
            GeocodeResult.from_nominatim({"lat": "nan", "lon": "1.0"})

    def test_resolved_name_falls_back_to_display_name(self) -> None:
        result = GeocodeResult(latitude=1.0, longitude=2.0, display_name="Somewhere")
        assert result.resolved_name == "Somewhere"

    def test_resolved_name_none(self) -> None:
        assert GeocodeResult(latitude=1.0, longitude=2.0).resolved_name is None


# ---------------------------------------------------------------------------
# NominatimClient (mocked HTTP)
# ---------------------------------------------------------------------------


class TestNominatimClient:
    @rsps_lib.activate
    def test_successful_geocode(self, client: NominatimClient) -> None:
        rsps_lib.add(
            rsps_lib.GET,
            DEFAULT_BASE_URL,
            json=_nominatim_hit("52.5200", "13.4050", "Berlin, Deutschland", {"city": "Berlin"}),
            status=200,
            match=[
                matchers.query_param_matcher(
                    {
                        "q": "Berlin",
                        "format": "json",
                        "addressdetails": "1",
                        "limit": "1",
                        "accept-language": "de,en",
                    }
                ),
                matchers.header_matcher({"User-Agent": "test/1.0"}),
            ],
        )
        result = client.geocode("Berlin")
        assert result is not None
        assert result.latitude == pytest.approx(52.52)
        assert result.longitude == pytest.approx(13.405)
        assert result.display_name == "Berlin, Deutschland"

    @rsps_lib.activate
    def test_blank_address_makes_no_request(self, client: NominatimClient, fake_sleep: FakeSleep) -> None:
        assert client.geocode("") is None
        assert client.geocode("   ") is None
        assert client.geocode_with_rate_limit("") is None
        assert len(rsps_lib.calls) == 0
        assert fake_sleep.calls == []

    @rsps_lib.activate
    def test_no_results_returns_none(self, client: NominatimClient) -> None:
        rsps_lib.add(rsps_lib.GET, DEFAULT_BASE_URL, json=[], status=200)
        assert client.geocode("zzz-nonexistent-place-xyz") is None

    @rsps_lib.activate
    @pytest.mark.parametrize("status", [400, 429, 500, 503])
    def test_http_error_returns_none(self, client: NominatimClient, status: int) -> None:
        rsps_lib.add(rsps_lib.GET, DEFAULT_BASE_URL, status=status)
        assert client.geocode("any address") is None

    @rsps_lib.activate
    def test_connection_error_returns_none(self, client: NominatimClient) -> None:
        rsps_lib.add(
            rsps_lib.GET, DEFAULT_BASE_URL, body=requests.ConnectionError("connection refused")
        )
        assert client.geocode("any address") is None

    @rsps_lib.activate
    def test_invalid_json_returns_none(self, client: NominatimClient) -> None:
        rsps_lib.add(rsps_lib.GET, DEFAULT_BASE_URL, body="<html>oops</html>", status=200)
        assert client.geocode("any address") is None

    @rsps_lib.activate
    def test_malformed_hit_returns_none(self, client: NominatimClient) -> None:
        rsps_lib.add(rsps_lib.GET, DEFAULT_BASE_URL, json=[{"lat": "abc", "lon": "1"}], status=200)
        assert client.geocode("any address") is None

    @rsps_lib.activate
    def test_custom_base_url(self, fake_sleep: FakeSleep) -> None:
        url = "https://geocoder.example.org/search"
        rsps_lib.add(rsps_lib.GET, url, json=_nominatim_hit("1.5", "2.5", "X"), status=200)
        client = NominatimClient(NominatimConfig(base_url=url), sleep=fake_sleep)
        result = client.geocode("X")
        assert result is not None
        assert result.coordinates == (1.5, 2.5)


class TestRateLimit:
    @rsps_lib.activate
    def test_sleeps_after_success(self, client: NominatimClient, fake_sleep: FakeSleep) -> None:
        rsps_lib.add(rsps_lib.GET, DEFAULT_BASE_URL, json=_nominatim_hit("1", "2", "X"), status=200)
        assert client.geocode_with_rate_limit("X") is not None
        assert fake_sleep.calls == [1.0]

    @rsps_lib.activate
    def test_sleeps_after_not_found(self, client: NominatimClient, fake_sleep: FakeSleep) -> None:
        rsps_lib.add(rsps_lib.GET, DEFAULT_BASE_URL, json=[], status=200)
        assert client.geocode_with_rate_limit("X") is None
        assert fake_sleep.calls == [1.0]

    @rsps_lib.activate
    def test_sleeps_after_http_error(self, client: NominatimClient, fake_sleep: FakeSleep) -> None:
        rsps_lib.add(rsps_lib.GET, DEFAULT_BASE_URL, status=500)
        assert client.geocode_with_rate_limit("X") is None
        assert fake_sleep.calls == [1.0]

    def test_sleep_happens_after_request(self, fake_sleep: FakeSleep) -> None:
        events: list[str] = []

        class RecordingClient(NominatimClient):
            def geocode(self, address: str) -> GeocodeResult | None:
                events.append("request")
                return None

        client = RecordingClient(
            NominatimConfig(rate_limit_seconds=2.5),
            sleep=lambda s: events.append(f"sleep {s}"),
        )
        client.geocode_with_rate_limit("X")
        assert events == ["request", "sleep 2.5"]

    def test_zero_rate_limit_skips_sleep(self, fake_sleep: FakeSleep) -> None:
        class NullClient(NominatimClient):
            def geocode(self, address: str) -> GeocodeResult | None:
                return None

        client = NullClient(NominatimConfig(rate_limit_seconds=0), sleep=fake_sleep)
        client.geocode_with_rate_limit("X")
        assert fake_sleep.calls == []
