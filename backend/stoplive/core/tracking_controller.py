"""Per-page orchestrator: polling, passenger location and the consolidated view."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from stoplive.core.arrival_reducer import reduce_arrival
from stoplive.core.geolocation import GeolocationProvider, LocationFix, WatchOptions
from stoplive.core.location_tracker import LocationState, LocationTracker
from stoplive.core.refresh_scheduler import REFRESH_PERIOD, Fetcher, RefreshScheduler
from stoplive.core.route_geometry import build_route_map
from stoplive.schemas.arrivals import StopArrivals
from stoplive.schemas.view import LocationView, RefreshView, TrackingView

logger = logging.getLogger(__name__)


class TrackingController:
    """Live arrivals for one stop plus the passenger's opt-in location.

    Location fixes feed the refresh scheduler (a new coordinate triggers an
    immediate fetch); every successful fetch re-clamps the selected bus.
    """

    def __init__(
        self,
        stop_id: str,
        fetcher: Fetcher,
        scheduler: AsyncIOScheduler,
        provider: GeolocationProvider,
        job_prefix: str | None = None,
        period: float = REFRESH_PERIOD,
        watch_options: WatchOptions | None = None,
    ) -> None:
        self.stop_id = stop_id
        self.provider = provider
        self.selected_bus_index = 0
        self.location = LocationTracker(provider, watch_options)
        self.refresh = RefreshScheduler(
            scheduler, fetcher, job_prefix or f"stop-{stop_id}", period=period,
        )
        self.location.on_change(self._on_location_change)
        self.refresh.on_data(self._on_data)
        self._closed = False

    async def start(self) -> None:
        await self.refresh.start(self.stop_id)

    def close(self) -> None:
        """Teardown: release both timers and the geolocation watch."""
        if self._closed:
            return
        self._closed = True
        self.refresh.stop()
        self.location.close()
        logger.debug("Controller for stop %s closed", self.stop_id)

    # -- action hooks ---------------------------------------------------

    def request_location(self) -> None:
        self.location.request_location()

    def stop_tracking(self) -> None:
        self.location.stop_tracking()

    def dismiss_location_error(self) -> None:
        self.location.dismiss_error()

    def location_unsupported(self) -> None:
        self.location.mark_unsupported()

    async def manual_refresh(self) -> None:
        await self.refresh.manual_refresh()

    def select_bus(self, index: int) -> None:
        """Switch the highlighted bus; never fetches."""
        count = len(self._buses())
        if not 0 <= index < max(count, 1):
            raise ValueError(f"bus index {index} out of range for {count} buses")
        self.selected_bus_index = index

    # -- wiring ---------------------------------------------------------

    def _on_location_change(self, fix: LocationFix | None) -> None:
        self.refresh.on_coordinate_change(fix.coordinate if fix else None)

    def _on_data(self, data: StopArrivals) -> None:
        self._clamp_selection(len(data.buses))

    def _clamp_selection(self, count: int) -> None:
        if self.selected_bus_index >= count and self.selected_bus_index != 0:
            logger.debug(
                "Stop %s: selected bus %d gone (%d left), back to next bus",
                self.stop_id, self.selected_bus_index, count,
            )
            self.selected_bus_index = 0

    def _buses(self):
        data = self.refresh.state.data
        return data.buses if data is not None else []

    # -- view -----------------------------------------------------------

    def view(self) -> TrackingView:
        state = self.refresh.state
        data = state.data
        fix = self.location.fix if self.location.state is LocationState.GRANTED else None
        has_coordinate = fix is not None

        if state.is_fatal:
            status = "error"
        elif data is None:
            status = "loading"
        else:
            status = "ready"

        buses = self._buses()
        self._clamp_selection(len(buses))
        walk = data.passenger if data is not None and has_coordinate else None
        arrivals = [
            reduce_arrival(bus, i, walk, has_coordinate) for i, bus in enumerate(buses)
        ]
        selected = arrivals[self.selected_bus_index] if arrivals else None

        route_map = None
        if buses:
            bus = buses[self.selected_bus_index]
            route_map = build_route_map(
                bus.route_polyline,
                bus_location=bus.current_location,
                passenger=fix.coordinate if fix else None,
                passenger_accuracy_m=fix.accuracy_m if fix else None,
            )

        return TrackingView(
            stop_id=self.stop_id,
            status=status,
            fatal_error=state.last_error if state.is_fatal else None,
            stop=data.stop if data is not None else None,
            arrivals=arrivals,
            selected_bus_index=self.selected_bus_index,
            selected=selected,
            route_map=route_map,
            passenger=walk,
            location=LocationView(
                state=self.location.state.value,
                coordinate=fix.coordinate if fix else None,
                accuracy_m=fix.accuracy_m if fix else None,
                error=self.location.error,
            ),
            refresh=RefreshView(
                period_seconds=self.refresh.period,
                countdown_seconds=state.countdown_seconds,
                last_refresh_at=state.last_refresh_at.isoformat() if state.last_refresh_at else None,
                is_manual_refresh_in_flight=state.is_manual_refresh_in_flight,
                last_error=state.last_error,
            ),
        )
