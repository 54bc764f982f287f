from pydantic import BaseModel

from stoplive.schemas.arrivals import GeoPoint, LiveBus


class NetworkOverview(BaseModel):
    stop_count: int
    live_bus_count: int
    center: GeoPoint
    buses: list[LiveBus] = []
