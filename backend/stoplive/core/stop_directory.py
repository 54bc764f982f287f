"""Stop list helpers for the stop picker and the network overview map."""

from stoplive.core.route_geometry import fallback_center
from stoplive.schemas.arrivals import GeoPoint, StopSnapshot


def search_stops(stops: list[StopSnapshot], query: str | None) -> list[StopSnapshot]:
    """Case-insensitive substring match on name, code or address."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(stops)
    return [
        s for s in stops
        if needle in s.name.lower() or needle in s.code.lower() or needle in s.address.lower()
    ]


def network_center(stops: list[StopSnapshot]) -> GeoPoint:
    """First stop with a location; the fallback only when there is none."""
    for stop in stops:
        if stop.location is not None:
            return stop.location
    return fallback_center()
