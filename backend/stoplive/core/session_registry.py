"""Open tracking sessions, one per passenger page."""

import datetime
import logging
import uuid
from dataclasses import dataclass, field

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from stoplive.config import settings
from stoplive.core.arrivals_client import ArrivalsClient
from stoplive.core.geolocation import RelayGeolocationProvider
from stoplive.core.tracking_controller import TrackingController

logger = logging.getLogger(__name__)


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass
class TrackingSession:
    id: str
    controller: TrackingController
    provider: RelayGeolocationProvider
    last_seen: datetime.datetime = field(default_factory=_now)


class SessionRegistry:
    """Creates, looks up and tears down tracking sessions.

    Pages that vanish without saying goodbye are reaped after
    ``settings.session_idle_seconds`` so their timers and watches go too.
    """

    def __init__(self, client: ArrivalsClient, scheduler: AsyncIOScheduler) -> None:
        self.client = client
        self.scheduler = scheduler
        self._sessions: dict[str, TrackingSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def open(self, stop_id: str) -> TrackingSession:
        session_id = uuid.uuid4().hex
        provider = RelayGeolocationProvider()
        controller = TrackingController(
            stop_id,
            self.client.fetch_stop_arrivals,
            self.scheduler,
            provider,
            job_prefix=session_id,
        )
        session = TrackingSession(id=session_id, controller=controller, provider=provider)
        self._sessions[session_id] = session
        try:
            await controller.start()
        except BaseException:
            self.close(session_id)
            raise
        logger.info("Session %s opened for stop %s (%d open)", session_id, stop_id, len(self._sessions))
        return session

    def get(self, session_id: str) -> TrackingSession | None:
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_seen = _now()
        return session

    def close(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        session.controller.close()
        logger.info("Session %s closed (%d open)", session_id, len(self._sessions))
        return True

    async def reap_idle(self) -> int:
        cutoff = _now() - datetime.timedelta(seconds=settings.session_idle_seconds)
        stale = [sid for sid, s in self._sessions.items() if s.last_seen < cutoff]
        for sid in stale:
            self.close(sid)
        if stale:
            logger.info("Reaped %d idle sessions", len(stale))
        return len(stale)

    def close_all(self) -> None:
        for sid in list(self._sessions):
            self.close(sid)
