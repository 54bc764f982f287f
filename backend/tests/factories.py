"""Builders for arrival payloads and fakes shared by the tests."""

from stoplive.core.errors import ArrivalsSourceError
from stoplive.schemas.arrivals import GeoPoint, LiveBus, StopArrivals, StopSnapshot

STOP = {
    "_id": "stop-1",
    "name": "Central Station",
    "stopCode": "CS01",
    "address": "Park Town",
    "location": {"type": "Point", "coordinates": [80.2707, 13.0827]},
}


def make_polyline(passed: int = 2, ahead: int = 3) -> list[dict]:
    """Points heading north; the last one is the scanned stop."""
    points = []
    for i in range(passed + ahead):
        points.append({
            "lat": 13.0500 + i * 0.005,
            "lng": 80.2500,
            "name": f"Stop {i + 1}",
            "isPassed": i < passed,
            "isScannedStop": i == passed + ahead - 1,
        })
    return points


def make_bus(bus_id: str, eta: int, **extra) -> dict:
    bus = {
        "_id": bus_id,
        "busNumber": f"TN-{bus_id}",
        "routeNumber": "21G",
        "routeName": "Broadway - Tambaram",
        "currentLocation": {"type": "Point", "coordinates": [80.2500, 13.0600]},
        "speed": 28,
        "etaMinutes": eta,
        "distanceKm": 2.4,
        "stopsAway": 3,
        "routePolyline": make_polyline(),
    }
    bus.update(extra)
    return bus


def make_arrivals(etas: list[int], passenger: dict | None = None, **bus_extra) -> StopArrivals:
    payload = {
        "stop": STOP,
        "buses": [make_bus(f"b{i}", eta, **bus_extra) for i, eta in enumerate(etas)],
    }
    if passenger is not None:
        payload["passenger"] = passenger
    return StopArrivals.model_validate(payload)


class FakeFetcher:
    """Replays queued results; records (stop_id, coordinate) per call."""

    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls: list[tuple[str, GeoPoint | None]] = []
        self.default = None

    def push(self, *results) -> None:
        self.results.extend(results)

    async def __call__(self, stop_id: str, coordinate: GeoPoint | None) -> StopArrivals:
        self.calls.append((stop_id, coordinate))
        result = self.results.pop(0) if self.results else self.default
        if result is None:
            raise ArrivalsSourceError("no response queued")
        if isinstance(result, Exception):
            raise result
        self.default = result
        return result


class FakeArrivalsClient:
    """Stands in for ArrivalsClient in API tests."""

    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True

    async def fetch_stop_arrivals(self, stop_id: str, passenger: GeoPoint | None = None) -> StopArrivals:
        walk = None
        if passenger is not None:
            walk = {"walkingDistanceKm": 0.4, "walkingMinutes": 5}
        return make_arrivals([1, 7], passenger=walk, totalJourneyMinutes=12)

    async def fetch_stops(self):
        return [
            StopSnapshot.model_validate(STOP),
            StopSnapshot.model_validate({
                "_id": "stop-2", "name": "Egmore", "stopCode": "EG02", "address": "Egmore",
                "location": {"coordinates": [80.2609, 13.0732]},
            }),
        ]

    async def fetch_stop(self, stop_id: str):
        stops = await self.fetch_stops()
        for stop in stops:
            if stop.id == stop_id:
                return stop
        raise ArrivalsSourceError("stop: HTTP 404")

    async def fetch_buses(self):
        return [
            LiveBus.from_raw({"_id": "b1", "busNumber": "TN-1", "route": {"routeNumber": "21G"},
                              "currentLocation": {"coordinates": [80.25, 13.06]}, "speed": 30}),
            LiveBus.from_raw({"_id": "b2", "busNumber": "TN-2", "currentLocation": None}),
        ]
