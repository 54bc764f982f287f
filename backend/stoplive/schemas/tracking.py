from pydantic import BaseModel, Field

from stoplive.core.geolocation import GeolocationErrorCode
from stoplive.schemas.view import TrackingView


class SessionOpened(BaseModel):
    session_id: str
    view: TrackingView


class LocationFixIn(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    accuracy_m: float = Field(ge=0)


class LocationErrorIn(BaseModel):
    code: GeolocationErrorCode


class CapabilityIn(BaseModel):
    supported: bool
