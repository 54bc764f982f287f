"""Network overview: every stop and live bus for the landing map."""

import asyncio

from fastapi import APIRouter, HTTPException

from stoplive.core.errors import ArrivalsSourceError
from stoplive.core.stop_directory import network_center
from stoplive.schemas.network import NetworkOverview

router = APIRouter(prefix="/api/network", tags=["network"])

# Will be set by main.py
client = None


@router.get("", response_model=NetworkOverview)
async def get_network():
    if client is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    try:
        stops, buses = await asyncio.gather(client.fetch_stops(), client.fetch_buses())
    except ArrivalsSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    located = [b for b in buses if b.current_location is not None]
    return NetworkOverview(
        stop_count=len(stops),
        live_bus_count=len(buses),
        center=network_center(stops),
        buses=located,
    )
