from pydantic import BaseModel

from stoplive.core.errors import ErrorKind
from stoplive.schemas.arrivals import GeoPoint, PassengerWalkInfo, StopSnapshot


class JourneyBreakdown(BaseModel):
    ride_minutes: int
    walk_minutes: int
    walk_distance_km: float
    total_minutes: int
    total_urgency: str
    total_label: str


class ArrivalView(BaseModel):
    index: int
    is_next: bool
    id: str
    bus_number: str
    bus_name: str | None = None
    route_number: str
    route_name: str
    eta_minutes: int
    urgency: str
    short_eta: str
    long_eta: str
    progress_percent: float
    distance_km: float
    stops_away: int
    stops_label: str
    speed_kmh: float
    current_location: GeoPoint | None = None
    journey: JourneyBreakdown | None = None


class StripStop(BaseModel):
    name: str
    is_passed: bool
    is_scanned_stop: bool


class MapFrame(BaseModel):
    center: GeoPoint
    zoom: int | None = None
    # (south, west, north, east); set only when there is something to fit
    fit_bounds: tuple[float, float, float, float] | None = None
    fit_padding_px: int
    max_fit_zoom: int


class RouteMap(BaseModel):
    passed_line: list[GeoPoint] | None = None
    ahead_line: list[GeoPoint] | None = None
    passed_count: int
    ahead_count: int
    scanned_stop: GeoPoint | None = None
    scanned_stop_name: str | None = None
    bus_location: GeoPoint | None = None
    passenger: GeoPoint | None = None
    passenger_accuracy_m: float | None = None
    walk_line: list[GeoPoint] | None = None
    # straight-line, not the routed walk
    walk_line_km: float | None = None
    strip: list[StripStop] = []
    frame: MapFrame


class LocationView(BaseModel):
    state: str
    coordinate: GeoPoint | None = None
    accuracy_m: float | None = None
    error: ErrorKind | None = None


class RefreshView(BaseModel):
    period_seconds: float
    countdown_seconds: int
    last_refresh_at: str | None = None
    is_manual_refresh_in_flight: bool
    last_error: ErrorKind | None = None


class TrackingView(BaseModel):
    stop_id: str
    status: str  # "loading" | "ready" | "error"
    fatal_error: ErrorKind | None = None
    stop: StopSnapshot | None = None
    arrivals: list[ArrivalView] = []
    selected_bus_index: int
    selected: ArrivalView | None = None
    route_map: RouteMap | None = None
    passenger: PassengerWalkInfo | None = None
    location: LocationView
    refresh: RefreshView
