"""Async client for the passenger arrivals API."""

import logging

import httpx
import orjson
from pydantic import ValidationError

from stoplive.config import settings
from stoplive.core.errors import ArrivalsSourceError
from stoplive.schemas.arrivals import GeoPoint, LiveBus, StopArrivals, StopSnapshot

logger = logging.getLogger(__name__)


class ArrivalsClient:
    """Reads stops, live buses and per-stop arrivals from the arrivals API.

    Failures are raised as ``ArrivalsSourceError``; there is no retry here,
    callers poll again on their own schedule.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(
            base_url=settings.arrivals_api_base_url,
            timeout=settings.http_timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, label: str, params: dict | None = None):
        try:
            resp = await self._client.get(path, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("Fetching %s got HTTP %d", label, e.response.status_code)
            raise ArrivalsSourceError(f"{label}: HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("Fetching %s failed (%s)", label, type(e).__name__)
            raise ArrivalsSourceError(f"{label}: {type(e).__name__}") from e
        try:
            return orjson.loads(resp.content)
        except orjson.JSONDecodeError as e:
            logger.warning("Fetching %s returned a non-JSON body", label)
            raise ArrivalsSourceError(f"{label}: malformed JSON") from e

    async def fetch_stop_arrivals(
        self, stop_id: str, passenger: GeoPoint | None = None,
    ) -> StopArrivals:
        """Fetch the stop plus the buses approaching it.

        Passenger coordinates are sent only when known.
        """
        params = None
        if passenger is not None:
            params = {"passengerLat": passenger.lat, "passengerLng": passenger.lng}
        data = await self._get_json(f"/buses/stop/{stop_id}", "stop arrivals", params)
        try:
            arrivals = StopArrivals.model_validate(data)
        except ValidationError as e:
            logger.warning("Stop %s arrivals payload rejected: %s", stop_id, e.error_count())
            raise ArrivalsSourceError("stop arrivals: invalid payload") from e
        logger.debug(
            "Stop %s: %d buses approaching (passenger=%s)",
            stop_id, len(arrivals.buses), passenger is not None,
        )
        return arrivals

    async def fetch_stops(self) -> list[StopSnapshot]:
        data = await self._get_json("/stops", "stops")
        stops = []
        for item in data if isinstance(data, list) else []:
            try:
                stops.append(StopSnapshot.model_validate(item))
            except ValidationError as e:
                logger.debug("Skipping malformed stop record: %s", e.error_count())
        logger.info("Fetched %d stops", len(stops))
        return stops

    async def fetch_stop(self, stop_id: str) -> StopSnapshot:
        data = await self._get_json(f"/stops/{stop_id}", "stop")
        try:
            return StopSnapshot.model_validate(data)
        except ValidationError as e:
            raise ArrivalsSourceError("stop: invalid payload") from e

    async def fetch_buses(self) -> list[LiveBus]:
        """Fetch every live bus on the network."""
        data = await self._get_json("/buses", "buses")
        buses = []
        for item in data if isinstance(data, list) else []:
            try:
                buses.append(LiveBus.from_raw(item))
            except (ValidationError, TypeError, AttributeError):
                logger.debug("Skipping malformed bus record")
        logger.debug("Fetched %d live buses", len(buses))
        return buses
