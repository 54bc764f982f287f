"""Opt-in passenger location: permission state machine over a geolocation watch."""

import asyncio
import enum
import logging
from typing import Callable

from stoplive.config import settings
from stoplive.core.errors import ErrorKind
from stoplive.core.geolocation import (
    GeolocationErrorCode,
    GeolocationProvider,
    LocationFix,
    WatchOptions,
)

logger = logging.getLogger(__name__)


class LocationState(str, enum.Enum):
    IDLE = "idle"
    ASKING = "asking"
    GRANTED = "granted"
    DENIED = "denied"
    UNSUPPORTED = "unsupported"


class _WatchToken:
    """Ties provider callbacks to one subscription; dead once cancelled."""

    __slots__ = ("handle", "cancelled")

    def __init__(self) -> None:
        self.handle: int | None = None
        self.cancelled = False


def default_watch_options() -> WatchOptions:
    return WatchOptions(
        maximum_age_ms=settings.geolocation_maximum_age_ms,
        timeout_ms=settings.geolocation_timeout_ms,
        enable_high_accuracy=settings.geolocation_high_accuracy,
    )


class LocationTracker:
    """Owns the continuous geolocation subscription for one page.

    Only GRANTED carries a fix. Every watch gets its own token; stopping
    invalidates the token before unsubscribing, so a late provider event
    can never touch state.
    """

    def __init__(
        self,
        provider: GeolocationProvider,
        options: WatchOptions | None = None,
    ) -> None:
        self.provider = provider
        self.options = options or default_watch_options()
        self.state = LocationState.IDLE
        self.fix: LocationFix | None = None
        self.error: ErrorKind | None = None
        self._token: _WatchToken | None = None
        self._timeout: asyncio.TimerHandle | None = None
        self._listeners: list[Callable[[LocationFix | None], None]] = []

    def on_change(self, listener: Callable[[LocationFix | None], None]) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self.fix)

    def _set_state(self, state: LocationState, error: ErrorKind | None = None) -> None:
        self.state = state
        if state is not LocationState.GRANTED:
            self.fix = None
        if error is not None:
            self.error = error
        self._notify()

    # ------------------------------------------------------------------

    def request_location(self) -> None:
        if self.state is not LocationState.IDLE:
            return
        self.error = None
        self._set_state(LocationState.ASKING)

        if not self.provider.is_supported():
            logger.info("Geolocation not available on this device")
            self._set_state(LocationState.UNSUPPORTED, ErrorKind.LOCATION_UNSUPPORTED)
            return

        token = _WatchToken()
        self._token = token
        self._timeout = asyncio.get_running_loop().call_later(
            self.options.timeout_ms / 1000, self._on_timeout, token,
        )
        token.handle = self.provider.watch_position(
            lambda fix: self._on_fix(token, fix),
            lambda code: self._on_error(token, code),
            self.options,
        )
        # A provider may report an error synchronously, cancelling the token
        # before the handle was known; drop the handle in that case
        if token.cancelled and token.handle is not None:
            self.provider.clear_watch(token.handle)

    def stop_tracking(self) -> None:
        if self.state is LocationState.IDLE:
            return
        self._cancel_watch()
        self.error = None
        self._set_state(LocationState.IDLE)

    def dismiss_error(self) -> None:
        self.error = None

    def mark_unsupported(self) -> None:
        """The page found no geolocation API; a pending request cannot succeed."""
        if self.state is not LocationState.ASKING:
            return
        logger.info("Geolocation reported unavailable while asking")
        self._cancel_watch()
        self._set_state(LocationState.UNSUPPORTED, ErrorKind.LOCATION_UNSUPPORTED)

    def close(self) -> None:
        """Teardown: release the watch without notifying anyone."""
        self._cancel_watch()
        self._listeners.clear()
        self.state = LocationState.IDLE
        self.fix = None

    # ------------------------------------------------------------------

    def _cancel_watch(self) -> None:
        self._clear_timeout()
        token, self._token = self._token, None
        if token is None:
            return
        token.cancelled = True
        if token.handle is not None:
            self.provider.clear_watch(token.handle)

    def _clear_timeout(self) -> None:
        if self._timeout is not None:
            self._timeout.cancel()
            self._timeout = None

    def _on_fix(self, token: _WatchToken, fix: LocationFix) -> None:
        if token.cancelled:
            return
        if self.state not in (LocationState.ASKING, LocationState.GRANTED):
            return
        if self.state is LocationState.ASKING:
            self._clear_timeout()
            logger.info("Location granted (accuracy %.0fm)", fix.accuracy_m)
        self.fix = fix
        self.error = None
        self._set_state(LocationState.GRANTED)

    def _on_error(self, token: _WatchToken, code: GeolocationErrorCode) -> None:
        if token.cancelled:
            return
        if code is GeolocationErrorCode.PERMISSION_DENIED:
            logger.warning("Location permission denied")
            self._cancel_watch()
            self._set_state(LocationState.DENIED, ErrorKind.LOCATION_PERMISSION_DENIED)
            return
        if self.state is LocationState.ASKING:
            kind = (
                ErrorKind.LOCATION_TIMEOUT
                if code is GeolocationErrorCode.TIMEOUT
                else ErrorKind.LOCATION_UNSUPPORTED
            )
            logger.warning("Location request failed: %s", code.value)
            self._cancel_watch()
            self._set_state(LocationState.UNSUPPORTED, kind)
            return
        # Transient errors while granted keep the last good fix
        logger.debug("Ignoring %s while tracking", code.value)

    def _on_timeout(self, token: _WatchToken) -> None:
        self._timeout = None
        if token.cancelled or self.state is not LocationState.ASKING:
            return
        logger.warning("Location request timed out after %dms", self.options.timeout_ms)
        self._cancel_watch()
        self._set_state(LocationState.UNSUPPORTED, ErrorKind.LOCATION_TIMEOUT)
