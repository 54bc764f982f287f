"""Tests for ArrivalsClient against a mocked transport."""

import asyncio

import httpx
import pytest
from factories import STOP, make_bus

from stoplive.core.arrivals_client import ArrivalsClient
from stoplive.core.errors import ArrivalsSourceError
from stoplive.schemas.arrivals import GeoPoint


def _run(handler, call):
    async def scenario():
        client = ArrivalsClient(transport=httpx.MockTransport(handler))
        try:
            return await call(client)
        finally:
            await client.close()

    return asyncio.run(scenario())


def test_passenger_params_omitted_without_coordinate():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"stop": STOP, "buses": [make_bus("b0", 4)]})

    arrivals = _run(handler, lambda c: c.fetch_stop_arrivals("stop-1"))

    assert seen[0].url.path.endswith("/buses/stop/stop-1")
    assert "passengerLat" not in seen[0].url.params
    assert "passengerLng" not in seen[0].url.params
    assert arrivals.stop.code == "CS01"
    assert arrivals.passenger is None


def test_passenger_params_sent_with_coordinate():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={
            "stop": STOP,
            "buses": [make_bus("b0", 4, totalJourneyMinutes=10)],
            "passenger": {"walkingDistanceKm": 0.35, "walkingMinutes": 4},
        })

    here = GeoPoint(lat=13.08, lng=80.27)
    arrivals = _run(handler, lambda c: c.fetch_stop_arrivals("stop-1", here))

    assert seen[0].url.params["passengerLat"] == "13.08"
    assert seen[0].url.params["passengerLng"] == "80.27"
    assert arrivals.passenger.walking_minutes == 4
    assert arrivals.buses[0].total_journey_minutes == 10


def test_parses_geojson_and_aliases():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            "stop": STOP,
            "buses": [make_bus("b0", 2, speed=None, busNumber=4521)],
        })

    arrivals = _run(handler, lambda c: c.fetch_stop_arrivals("stop-1"))
    bus = arrivals.buses[0]

    assert arrivals.stop.id == "stop-1"
    assert arrivals.stop.location == GeoPoint(lat=13.0827, lng=80.2707)
    assert bus.id == "b0"
    assert bus.bus_number == "4521"
    assert bus.speed_kmh == 0
    assert bus.current_location == GeoPoint(lat=13.06, lng=80.25)
    assert len(bus.route_polyline) == 5
    assert bus.route_polyline[-1].is_scanned_stop


def test_empty_bus_location_reads_as_absent():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            "stop": STOP,
            "buses": [make_bus("b0", 2, currentLocation={"type": "Point", "coordinates": []})],
        })

    arrivals = _run(handler, lambda c: c.fetch_stop_arrivals("stop-1"))
    assert arrivals.buses[0].current_location is None


def test_server_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"message": "down"})

    with pytest.raises(ArrivalsSourceError):
        _run(handler, lambda c: c.fetch_stop_arrivals("stop-1"))


def test_connect_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(ArrivalsSourceError):
        _run(handler, lambda c: c.fetch_stop_arrivals("stop-1"))


def test_invalid_payload_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"buses": []})

    with pytest.raises(ArrivalsSourceError):
        _run(handler, lambda c: c.fetch_stop_arrivals("stop-1"))


def test_non_json_body_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>maintenance</html>")

    with pytest.raises(ArrivalsSourceError):
        _run(handler, lambda c: c.fetch_stop_arrivals("stop-1"))


def test_fetch_buses_reads_nested_route_and_skips_junk():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[
            {"_id": "b1", "busNumber": "TN-1", "route": {"routeNumber": "21G"},
             "currentLocation": {"coordinates": [80.25, 13.06]}, "speed": 31},
            {"_id": "b2"},
            "garbage",
        ])

    buses = _run(handler, lambda c: c.fetch_buses())

    assert len(buses) == 1
    assert buses[0].route_number == "21G"
    assert buses[0].speed_kmh == 31


def test_fetch_stops():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/stops")
        return httpx.Response(200, json=[STOP, {"name": "no id"}])

    stops = _run(handler, lambda c: c.fetch_stops())
    assert [s.id for s in stops] == ["stop-1"]
