"""Presentation values derived from one bus arrival."""

import logging

from stoplive.schemas.arrivals import BusArrival, PassengerWalkInfo
from stoplive.schemas.view import ArrivalView, JourneyBreakdown

logger = logging.getLogger(__name__)

# ETA at which the progress bar bottoms out
PROGRESS_HORIZON_MINUTES = 30
PROGRESS_FLOOR = 5.0

CRITICAL_MAX_MINUTES = 2
WARNING_MAX_MINUTES = 5


def urgency(eta_minutes: int) -> str:
    if eta_minutes <= CRITICAL_MAX_MINUTES:
        return "critical"
    if eta_minutes <= WARNING_MAX_MINUTES:
        return "warning"
    return "normal"


def short_eta(eta_minutes: int) -> str:
    if eta_minutes == 0:
        return "Now!"
    if eta_minutes == 1:
        return "1 min"
    return f"{eta_minutes} min"


def long_eta(eta_minutes: int) -> str:
    if eta_minutes == 0:
        return "Arriving now"
    return f"{eta_minutes} min{'s' if eta_minutes != 1 else ''} away"


def progress_percent(eta_minutes: int) -> float:
    """Bar fill: 100% when arriving, shrinking linearly to a 5% floor at 30 min."""
    pct = 100 - (eta_minutes / PROGRESS_HORIZON_MINUTES) * 100
    return max(PROGRESS_FLOOR, min(100.0, pct))


def stops_label(stops_away: int) -> str:
    return f"{stops_away} stop{'s' if stops_away != 1 else ''}"


def journey_breakdown(bus: BusArrival, walk: PassengerWalkInfo) -> JourneyBreakdown:
    """Walk to the stop plus ride on the bus.

    The total comes from upstream; ride + walk is only a stand-in when the
    data source left it out.
    """
    total = bus.total_journey_minutes
    if total is None:
        total = bus.eta_minutes + walk.walking_minutes
    return JourneyBreakdown(
        ride_minutes=bus.eta_minutes,
        walk_minutes=walk.walking_minutes,
        walk_distance_km=walk.walking_distance_km,
        total_minutes=total,
        total_urgency=urgency(total),
        total_label=short_eta(total),
    )


def reduce_arrival(
    bus: BusArrival,
    index: int,
    walk: PassengerWalkInfo | None = None,
    has_passenger_coordinate: bool = False,
) -> ArrivalView:
    eta = bus.eta_minutes
    journey = None
    if has_passenger_coordinate and walk is not None:
        journey = journey_breakdown(bus, walk)
    return ArrivalView(
        index=index,
        is_next=index == 0,
        id=bus.id,
        bus_number=bus.bus_number,
        bus_name=bus.bus_name,
        route_number=bus.route_number,
        route_name=bus.route_name,
        eta_minutes=eta,
        urgency=urgency(eta),
        short_eta=short_eta(eta),
        long_eta=long_eta(eta),
        progress_percent=progress_percent(eta),
        distance_km=bus.distance_km,
        stops_away=bus.stops_away,
        stops_label=stops_label(bus.stops_away),
        speed_kmh=bus.speed_kmh,
        current_location=bus.current_location,
        journey=journey,
    )
