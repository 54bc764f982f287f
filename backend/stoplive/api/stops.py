"""Stop REST API endpoints (pass-through to the arrivals API)."""

from fastapi import APIRouter, HTTPException

from stoplive.core.errors import ArrivalsSourceError
from stoplive.core.stop_directory import search_stops
from stoplive.schemas.arrivals import StopSnapshot

router = APIRouter(prefix="/api/stops", tags=["stops"])

# Will be set by main.py
client = None


@router.get("", response_model=list[StopSnapshot])
async def list_stops(q: str | None = None):
    """All stops, optionally filtered by name, code or address."""
    if client is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    try:
        stops = await client.fetch_stops()
    except ArrivalsSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return search_stops(stops, q)


@router.get("/{stop_id}", response_model=StopSnapshot)
async def get_stop(stop_id: str):
    if client is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    try:
        return await client.fetch_stop(stop_id)
    except ArrivalsSourceError as e:
        raise HTTPException(status_code=502, detail=str(e))
