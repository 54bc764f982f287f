"""Tracking session endpoints: the view-model and its action hooks."""

import logging

from fastapi import APIRouter, HTTPException

from stoplive.core.session_registry import TrackingSession
from stoplive.schemas.tracking import CapabilityIn, LocationErrorIn, LocationFixIn, SessionOpened
from stoplive.schemas.view import TrackingView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tracking", tags=["tracking"])

# Will be set by main.py on startup
registry = None


def _session(session_id: str) -> TrackingSession:
    if registry is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@router.post("/{stop_id}", response_model=SessionOpened)
async def open_session(stop_id: str):
    """Start tracking a stop; the first fetch has completed when this returns."""
    if registry is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    session = await registry.open(stop_id)
    return SessionOpened(session_id=session.id, view=session.controller.view())


@router.get("/sessions/{session_id}", response_model=TrackingView)
async def get_view(session_id: str):
    return _session(session_id).controller.view()


@router.delete("/sessions/{session_id}", status_code=204)
async def close_session(session_id: str):
    _session(session_id)
    registry.close(session_id)


@router.post("/sessions/{session_id}/refresh", response_model=TrackingView)
async def manual_refresh(session_id: str):
    controller = _session(session_id).controller
    await controller.manual_refresh()
    return controller.view()


@router.post("/sessions/{session_id}/select/{index}", response_model=TrackingView)
async def select_bus(session_id: str, index: int):
    controller = _session(session_id).controller
    try:
        controller.select_bus(index)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return controller.view()


@router.post("/sessions/{session_id}/location/request", response_model=TrackingView)
async def request_location(session_id: str):
    controller = _session(session_id).controller
    controller.request_location()
    return controller.view()


@router.post("/sessions/{session_id}/location/stop", response_model=TrackingView)
async def stop_tracking(session_id: str):
    controller = _session(session_id).controller
    controller.stop_tracking()
    return controller.view()


@router.post("/sessions/{session_id}/location/dismiss", response_model=TrackingView)
async def dismiss_location_error(session_id: str):
    controller = _session(session_id).controller
    controller.dismiss_location_error()
    return controller.view()


@router.post("/sessions/{session_id}/location/capability", status_code=204)
async def report_capability(session_id: str, body: CapabilityIn):
    """The page reports whether its browser exposes geolocation at all."""
    session = _session(session_id)
    session.provider.set_supported(body.supported)
    if not body.supported:
        session.controller.location_unsupported()


@router.post("/sessions/{session_id}/location/fix", response_model=TrackingView)
async def relay_fix(session_id: str, body: LocationFixIn):
    """Relay one device position from the page's geolocation watch."""
    session = _session(session_id)
    session.provider.push_fix(body.lat, body.lng, body.accuracy_m)
    return session.controller.view()


@router.post("/sessions/{session_id}/location/error", response_model=TrackingView)
async def relay_error(session_id: str, body: LocationErrorIn):
    session = _session(session_id)
    session.provider.push_error(body.code)
    return session.controller.view()
