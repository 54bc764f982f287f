"""Wire models for the arrival data source (camelCase / GeoJSON on the wire)."""

from typing import Any

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class GeoPoint(BaseModel):
    lat: float
    lng: float

    model_config = ConfigDict(frozen=True)


def _parse_point(value: Any) -> Any:
    """Accept {lat, lng}, {lat, lon} or GeoJSON {coordinates: [lng, lat]}."""
    if value is None or isinstance(value, GeoPoint):
        return value
    if isinstance(value, dict):
        if "coordinates" in value:
            coords = value.get("coordinates") or []
            if len(coords) != 2 or coords[0] is None or coords[1] is None:
                return None
            return {"lat": coords[1], "lng": coords[0]}
        if "lat" in value and ("lng" in value or "lon" in value):
            return {"lat": value["lat"], "lng": value.get("lng", value.get("lon"))}
        return None
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return {"lat": value[0], "lng": value[1]}
    return value


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=AliasGenerator(validation_alias=to_camel),
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


class StopSnapshot(ApiModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    name: str = ""
    code: str = Field("", validation_alias=AliasChoices("stopCode", "code"))
    address: str = ""
    location: GeoPoint | None = None

    @field_validator("location", mode="before")
    @classmethod
    def parse_location(cls, v: Any) -> Any:
        return _parse_point(v)

    @field_validator("address", "code", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


class RoutePoint(ApiModel):
    lat: float
    lng: float = Field(validation_alias=AliasChoices("lng", "lon"))
    name: str = ""
    is_passed: bool = False
    is_scanned_stop: bool = False


class BusArrival(ApiModel):
    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    bus_number: str
    bus_name: str | None = None
    route_number: str = ""
    route_name: str = ""
    current_location: GeoPoint | None = None
    speed_kmh: float = Field(0.0, ge=0, validation_alias=AliasChoices("speedKmh", "speed"))
    eta_minutes: int = Field(ge=0)
    distance_km: float = Field(0.0, ge=0)
    stops_away: int = Field(0, ge=0)
    total_journey_minutes: int | None = Field(None, ge=0)
    route_polyline: list[RoutePoint] = []

    @field_validator("current_location", mode="before")
    @classmethod
    def parse_location(cls, v: Any) -> Any:
        return _parse_point(v)

    @field_validator("speed_kmh", "distance_km", "stops_away", mode="before")
    @classmethod
    def null_is_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("route_polyline", mode="before")
    @classmethod
    def null_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class PassengerWalkInfo(ApiModel):
    walking_distance_km: float = Field(ge=0)
    walking_minutes: int = Field(ge=0)


class StopArrivals(ApiModel):
    """Payload of ``GET /buses/stop/{stop_id}``."""

    stop: StopSnapshot
    buses: list[BusArrival] = []
    passenger: PassengerWalkInfo | None = None


class LiveBus(ApiModel):
    """One entry of the global ``GET /buses`` feed."""

    id: str = Field(validation_alias=AliasChoices("_id", "id"))
    bus_number: str
    route_number: str = ""
    current_location: GeoPoint | None = None
    speed_kmh: float = Field(0.0, ge=0, validation_alias=AliasChoices("speedKmh", "speed"))

    @field_validator("current_location", mode="before")
    @classmethod
    def parse_location(cls, v: Any) -> Any:
        return _parse_point(v)

    @field_validator("speed_kmh", mode="before")
    @classmethod
    def null_is_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @classmethod
    def from_raw(cls, item: dict) -> "LiveBus":
        # Route number arrives nested under the populated route document
        if not item.get("routeNumber") and isinstance(item.get("route"), dict):
            item = {**item, "routeNumber": item["route"].get("routeNumber", "")}
        return cls.model_validate(item)

