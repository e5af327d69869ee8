import asyncio

import httpx
import pytest

from placeshare.geocode.base import (
    FORWARD_FAILED_MESSAGE,
    FORWARD_NOT_FOUND_MESSAGE,
    REVERSE_FAILED_MESSAGE,
)
from placeshare.geocode.google import GoogleGeocodingService
from placeshare.geocode.nominatim import NominatimGeocodingService
from placeshare.geocode.session import GeocodingSession
from placeshare.observability.metrics import MetricsRegistry
from placeshare.workflow.errors import GeocodingError
from placeshare.workflow.state import Coordinate


def _session(handler, *, max_attempts: int = 3, metrics=None) -> GeocodingSession:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeocodingSession(client, max_attempts=max_attempts, backoff_seconds=0, metrics=metrics)


def test_google_forward_returns_first_result():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "status": "OK",
                "results": [{"geometry": {"location": {"lat": 37.4224764, "lng": -122.0842499}}}],
            },
        )

    service = GoogleGeocodingService(_session(handler), api_key="secret")
    coordinate = asyncio.run(service.forward("1600 Amphitheatre Parkway"))

    assert coordinate == Coordinate(lat=37.4224764, lng=-122.0842499)
    assert seen[0].url.host == "maps.googleapis.com"
    assert seen[0].url.params["address"] == "1600 Amphitheatre Parkway"
    assert seen[0].url.params["key"] == "secret"


def test_google_reverse_returns_formatted_address():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["latlng"] == "40.714224,-73.961452"
        return httpx.Response(
            200,
            json={"results": [{"formatted_address": "277 Bedford Ave, Brooklyn, NY 11211, USA"}]},
        )

    service = GoogleGeocodingService(_session(handler), api_key="secret")
    address = asyncio.run(service.reverse(Coordinate(lat=40.714224, lng=-73.961452)))
    assert address == "277 Bedford Ave, Brooklyn, NY 11211, USA"


def test_google_error_message_is_passed_through_verbatim():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid.", "results": []},
        )

    service = GoogleGeocodingService(_session(handler), api_key="bad")
    with pytest.raises(GeocodingError) as excinfo:
        asyncio.run(service.forward("anywhere"))
    assert excinfo.value.message == "The provided API key is invalid."


def test_google_empty_results_is_not_found():
    service = GoogleGeocodingService(
        _session(lambda request: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []})),
        api_key="k",
    )
    with pytest.raises(GeocodingError) as excinfo:
        asyncio.run(service.forward("qwertyuiop"))
    assert excinfo.value.message == FORWARD_NOT_FOUND_MESSAGE


def test_bad_status_maps_to_fetch_failure_message():
    service = GoogleGeocodingService(_session(lambda request: httpx.Response(503, text="down")), api_key="k")
    with pytest.raises(GeocodingError) as forward_exc:
        asyncio.run(service.forward("x"))
    with pytest.raises(GeocodingError) as reverse_exc:
        asyncio.run(service.reverse(Coordinate(lat=1, lng=1)))
    assert forward_exc.value.message == FORWARD_FAILED_MESSAGE
    assert reverse_exc.value.message == REVERSE_FAILED_MESSAGE


def test_transport_errors_are_retried_then_reported():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    metrics = MetricsRegistry()
    service = NominatimGeocodingService(_session(handler, max_attempts=3, metrics=metrics))
    with pytest.raises(GeocodingError) as excinfo:
        asyncio.run(service.forward("Lisbon"))

    assert len(calls) == 3
    assert metrics.get("geocode_retries") == 3
    assert excinfo.value.message == FORWARD_FAILED_MESSAGE


def test_transient_transport_error_recovers():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        if len(attempts) == 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json=[{"lat": "38.7077507", "lon": "-9.1365919"}])

    service = NominatimGeocodingService(_session(handler))
    assert asyncio.run(service.forward("Lisbon")) == Coordinate(lat=38.7077507, lng=-9.1365919)
    assert len(attempts) == 2


def test_malformed_json_is_a_fetch_failure():
    service = NominatimGeocodingService(_session(lambda request: httpx.Response(200, text="<html>")))
    with pytest.raises(GeocodingError) as excinfo:
        asyncio.run(service.forward("x"))
    assert excinfo.value.message == FORWARD_FAILED_MESSAGE


def test_nominatim_forward_and_reverse():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/search":
            assert request.url.params["q"] == "Eiffel Tower"
            assert request.url.params["format"] == "jsonv2"
            return httpx.Response(200, json=[{"lat": "48.8582599", "lon": "2.2945006"}])
        assert request.url.path == "/reverse"
        assert request.url.params["lat"] == "48.8582599"
        return httpx.Response(200, json={"display_name": "Tour Eiffel, Paris, France"})

    service = NominatimGeocodingService(_session(handler), base_url="https://nominatim.test/")
    coordinate = asyncio.run(service.forward("Eiffel Tower"))
    assert coordinate == Coordinate(lat=48.8582599, lng=2.2945006)
    assert asyncio.run(service.reverse(coordinate)) == "Tour Eiffel, Paris, France"


def test_nominatim_reverse_error_is_verbatim():
    service = NominatimGeocodingService(
        _session(lambda request: httpx.Response(200, json={"error": "Unable to geocode"}))
    )
    with pytest.raises(GeocodingError) as excinfo:
        asyncio.run(service.reverse(Coordinate(lat=0, lng=0)))
    assert excinfo.value.message == "Unable to geocode"


def test_nominatim_empty_search_is_not_found():
    service = NominatimGeocodingService(_session(lambda request: httpx.Response(200, json=[])))
    with pytest.raises(GeocodingError) as excinfo:
        asyncio.run(service.forward("qwertyuiop"))
    assert excinfo.value.message == FORWARD_NOT_FOUND_MESSAGE
