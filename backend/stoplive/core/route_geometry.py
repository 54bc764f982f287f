"""Split a bus route polyline into map-ready point sets."""

import logging
from dataclasses import dataclass, field

from shapely.geometry import MultiPoint

from stoplive.config import settings
from stoplive.core.geo import distance_km
from stoplive.schemas.arrivals import GeoPoint, RoutePoint
from stoplive.schemas.view import MapFrame, RouteMap, StripStop

logger = logging.getLogger(__name__)

# Zoom used when there is a single point to look at
DEFAULT_ZOOM = 13
FIT_PADDING_PX = 48
MAX_FIT_ZOOM = 15


def fallback_center() -> GeoPoint:
    return GeoPoint(lat=settings.fallback_lat, lng=settings.fallback_lng)


@dataclass
class RouteGeometry:
    passed: list[GeoPoint] = field(default_factory=list)
    ahead: list[GeoPoint] = field(default_factory=list)
    scanned_stop: RoutePoint | None = None
    fit_points: list[GeoPoint] = field(default_factory=list)
    walk_line: list[GeoPoint] | None = None
    center: GeoPoint | None = None

    @property
    def passed_drawable(self) -> bool:
        # a single point cannot form a line
        return len(self.passed) >= 2

    @property
    def ahead_drawable(self) -> bool:
        return len(self.ahead) >= 2

    @property
    def should_fit(self) -> bool:
        return len(self.fit_points) >= 2

    def fit_bounds(self) -> tuple[float, float, float, float] | None:
        """(south, west, north, east) of every point worth showing."""
        if not self.should_fit:
            return None
        # Shapely uses (x, y) = (lng, lat)
        west, south, east, north = MultiPoint([(p.lng, p.lat) for p in self.fit_points]).bounds
        return (south, west, north, east)


def _point(p: RoutePoint) -> GeoPoint:
    return GeoPoint(lat=p.lat, lng=p.lng)


def partition_route(
    points: list[RoutePoint],
    bus_location: GeoPoint | None = None,
    passenger: GeoPoint | None = None,
) -> RouteGeometry:
    """Partition a route into passed/ahead runs and collect what the map must frame.

    ``passenger`` should only be given while location tracking is granted.
    """
    geom = RouteGeometry()
    for p in points:
        (geom.passed if p.is_passed else geom.ahead).append(_point(p))

    scanned = [p for p in points if p.is_scanned_stop]
    if len(scanned) > 1:
        logger.warning("Route has %d points flagged as the scanned stop, using the first", len(scanned))
    geom.scanned_stop = scanned[0] if scanned else None

    geom.fit_points = [_point(p) for p in points]
    if bus_location is not None:
        geom.fit_points.append(bus_location)
    if passenger is not None:
        geom.fit_points.append(passenger)

    if passenger is not None and geom.scanned_stop is not None:
        geom.walk_line = [passenger, _point(geom.scanned_stop)]

    if passenger is not None:
        geom.center = passenger
    elif geom.scanned_stop is not None:
        geom.center = _point(geom.scanned_stop)
    elif geom.fit_points:
        geom.center = geom.fit_points[0]
    else:
        geom.center = fallback_center()
    return geom


def build_route_map(
    points: list[RoutePoint],
    bus_location: GeoPoint | None = None,
    passenger: GeoPoint | None = None,
    passenger_accuracy_m: float | None = None,
) -> RouteMap:
    geom = partition_route(points, bus_location, passenger)
    bounds = geom.fit_bounds()
    frame = MapFrame(
        center=geom.center,
        zoom=None if bounds else DEFAULT_ZOOM,
        fit_bounds=bounds,
        fit_padding_px=FIT_PADDING_PX,
        max_fit_zoom=MAX_FIT_ZOOM,
    )
    scanned = geom.scanned_stop
    return RouteMap(
        passed_line=geom.passed if geom.passed_drawable else None,
        ahead_line=geom.ahead if geom.ahead_drawable else None,
        passed_count=len(geom.passed),
        ahead_count=len(geom.ahead),
        scanned_stop=_point(scanned) if scanned else None,
        scanned_stop_name=scanned.name if scanned else None,
        bus_location=bus_location,
        passenger=passenger,
        passenger_accuracy_m=passenger_accuracy_m if passenger is not None else None,
        walk_line=geom.walk_line,
        walk_line_km=round(distance_km(*geom.walk_line), 2) if geom.walk_line else None,
        strip=[
            StripStop(name=p.name, is_passed=p.is_passed, is_scanned_stop=p.is_scanned_stop)
            for p in points
        ],
        frame=frame,
    )
