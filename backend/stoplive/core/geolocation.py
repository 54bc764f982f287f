"""Geolocation provider contract and the browser-relay implementation.

The passenger's device owns the real GPS; the page relays each fix (or
error) to its tracking session, and ``RelayGeolocationProvider`` turns those
relayed events into a watch subscription the Location Tracker can consume.
"""

import datetime
import enum
import itertools
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from stoplive.schemas.arrivals import GeoPoint

logger = logging.getLogger(__name__)


class GeolocationErrorCode(str, enum.Enum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class LocationFix:
    coordinate: GeoPoint
    accuracy_m: float
    timestamp: datetime.datetime


@dataclass(frozen=True)
class WatchOptions:
    maximum_age_ms: int
    timeout_ms: int
    enable_high_accuracy: bool = True


FixCallback = Callable[[LocationFix], None]
ErrorCallback = Callable[[GeolocationErrorCode], None]


class GeolocationProvider(Protocol):
    def is_supported(self) -> bool: ...

    def watch_position(
        self, on_fix: FixCallback, on_error: ErrorCallback, options: WatchOptions,
    ) -> int: ...

    def clear_watch(self, handle: int) -> None: ...


def _now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class RelayGeolocationProvider:
    """Geolocation fed by fixes the passenger's browser posts to us."""

    def __init__(self, supported: bool = True) -> None:
        self._supported = supported
        self._handles = itertools.count(1)
        # handle -> (on_fix, on_error)
        self._watches: dict[int, tuple[FixCallback, ErrorCallback]] = {}
        self._last_fix: LocationFix | None = None

    def is_supported(self) -> bool:
        return self._supported

    def set_supported(self, supported: bool) -> None:
        self._supported = supported

    @property
    def active_watches(self) -> int:
        return len(self._watches)

    def watch_position(
        self, on_fix: FixCallback, on_error: ErrorCallback, options: WatchOptions,
    ) -> int:
        handle = next(self._handles)
        self._watches[handle] = (on_fix, on_error)
        logger.debug("Watch %d opened (max_age=%dms)", handle, options.maximum_age_ms)

        # A cached fix young enough satisfies the watch without a new read
        if self._last_fix is not None:
            age_ms = (_now() - self._last_fix.timestamp).total_seconds() * 1000
            if age_ms <= options.maximum_age_ms:
                on_fix(self._last_fix)
        return handle

    def clear_watch(self, handle: int) -> None:
        if self._watches.pop(handle, None) is not None:
            logger.debug("Watch %d cleared", handle)

    def push_fix(
        self, lat: float, lng: float, accuracy_m: float,
        timestamp: datetime.datetime | None = None,
    ) -> LocationFix:
        fix = LocationFix(
            coordinate=GeoPoint(lat=lat, lng=lng),
            accuracy_m=accuracy_m,
            timestamp=timestamp or _now(),
        )
        self._last_fix = fix
        for on_fix, _ in list(self._watches.values()):
            on_fix(fix)
        return fix

    def push_error(self, code: GeolocationErrorCode) -> None:
        if code is GeolocationErrorCode.PERMISSION_DENIED:
            self._last_fix = None
        for _, on_error in list(self._watches.values()):
            on_error(code)
