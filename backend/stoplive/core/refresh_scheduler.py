"""Fixed-cadence arrival polling with a visible countdown.

Both timers are APScheduler interval jobs on the shared AsyncIOScheduler.
Fetch results are applied unconditionally: whichever fetch completes last
wins, which is safe because every fetch is a read of the same resource.
"""

import asyncio
import datetime
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from stoplive.core.errors import ArrivalsSourceError, ErrorKind
from stoplive.schemas.arrivals import GeoPoint, StopArrivals

logger = logging.getLogger(__name__)

REFRESH_PERIOD = 10  # seconds
COUNTDOWN_TICK = 1  # seconds

Fetcher = Callable[[str, GeoPoint | None], Awaitable[StopArrivals]]


@dataclass
class RefreshState:
    data: StopArrivals | None = None
    last_refresh_at: datetime.datetime | None = None
    countdown_seconds: int = REFRESH_PERIOD
    is_manual_refresh_in_flight: bool = False
    last_error: ErrorKind | None = None

    @property
    def is_fatal(self) -> bool:
        """An error with nothing to fall back on blocks the whole view."""
        return self.data is None and self.last_error is not None


class RefreshScheduler:
    """Polls one stop every ``period`` seconds until stopped."""

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        fetcher: Fetcher,
        job_prefix: str,
        period: float = REFRESH_PERIOD,
    ) -> None:
        self.scheduler = scheduler
        self.fetcher = fetcher
        self.period = period
        self.countdown_period = max(1, round(period))
        self.state = RefreshState(countdown_seconds=self.countdown_period)
        self.stop_id: str | None = None
        self.coordinate: GeoPoint | None = None
        self._fetch_job_id = f"{job_prefix}:fetch"
        self._countdown_job_id = f"{job_prefix}:countdown"
        self._out_of_band: set[asyncio.Task] = set()
        self._listeners: list[Callable[[StopArrivals], None]] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def on_data(self, listener: Callable[[StopArrivals], None]) -> None:
        self._listeners.append(listener)

    async def start(self, stop_id: str) -> None:
        """Fetch immediately, then keep polling on the fixed period."""
        if self._running:
            return
        self.stop_id = stop_id
        self._running = True
        await self._fetch()
        if not self._running:
            # stopped while the first fetch was in flight
            return
        self.scheduler.add_job(
            self._scheduled_fetch,
            "interval",
            seconds=self.period,
            id=self._fetch_job_id,
            name=f"Poll arrivals for stop {stop_id}",
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            self._tick_countdown,
            "interval",
            seconds=COUNTDOWN_TICK,
            id=self._countdown_job_id,
            name=f"Countdown for stop {stop_id}",
            max_instances=1,
            coalesce=True,
        )
        logger.info("Polling stop %s every %ss", stop_id, self.period)

    def stop(self) -> None:
        """Cancel both timers and any out-of-band fetch; safe to repeat."""
        was_running, self._running = self._running, False
        for job_id in (self._fetch_job_id, self._countdown_job_id):
            try:
                self.scheduler.remove_job(job_id)
            except JobLookupError:
                pass
        for task in list(self._out_of_band):
            task.cancel()
        self._out_of_band.clear()
        if was_running:
            logger.info("Stopped polling stop %s", self.stop_id)

    def on_coordinate_change(self, coordinate: GeoPoint | None) -> None:
        """Fetch once, out of band, when a new passenger coordinate shows up.

        Losing the coordinate (None) is recorded so later polls stop sending
        it, but does not fetch.
        """
        if coordinate == self.coordinate:
            return
        self.coordinate = coordinate
        if coordinate is None or not self._running:
            return
        logger.debug("Passenger moved to %.5f,%.5f - refreshing now", coordinate.lat, coordinate.lng)
        task = asyncio.get_running_loop().create_task(self._fetch())
        self._out_of_band.add(task)
        task.add_done_callback(self._out_of_band.discard)

    async def manual_refresh(self) -> None:
        """Fetch now. A second request while one is in flight is ignored."""
        if self.state.is_manual_refresh_in_flight:
            return
        self.state.is_manual_refresh_in_flight = True
        try:
            await self._fetch()
        finally:
            self.state.is_manual_refresh_in_flight = False
            self.state.countdown_seconds = self.countdown_period

    async def drain(self) -> None:
        """Wait for out-of-band fetches currently in flight."""
        if self._out_of_band:
            await asyncio.gather(*list(self._out_of_band), return_exceptions=True)

    # ------------------------------------------------------------------

    async def _scheduled_fetch(self) -> None:
        if await self._fetch():
            self.state.countdown_seconds = self.countdown_period

    async def _tick_countdown(self) -> None:
        if self.state.countdown_seconds <= 1:
            self.state.countdown_seconds = self.countdown_period
        else:
            self.state.countdown_seconds -= 1

    async def _fetch(self) -> bool:
        stop_id = self.stop_id
        if stop_id is None:
            return False
        try:
            data = await self.fetcher(stop_id, self.coordinate)
        except ArrivalsSourceError as e:
            if not self._running:
                return False
            self.state.last_error = ErrorKind.NETWORK_ERROR
            if self.state.data is None:
                logger.warning("Stop %s: first fetch failed, nothing to show (%s)", stop_id, e)
            else:
                logger.warning("Stop %s: refresh failed, keeping previous data (%s)", stop_id, e)
            return False
        except Exception:
            if not self._running:
                return False
            logger.exception("Stop %s: unexpected error while fetching arrivals", stop_id)
            self.state.last_error = ErrorKind.NETWORK_ERROR
            return False

        if not self._running:
            logger.debug("Stop %s: discarding fetch that finished after stop", stop_id)
            return False
        self.state.data = data
        self.state.last_refresh_at = datetime.datetime.now(datetime.timezone.utc)
        self.state.last_error = None
        for listener in self._listeners:
            try:
                listener(data)
            except Exception:
                logger.exception("Stop %s: arrivals listener failed", stop_id)
        return True
