"""Error kinds surfaced to the view and exceptions raised by collaborators."""

import enum


class ErrorKind(str, enum.Enum):
    NETWORK_ERROR = "network_error"
    LOCATION_PERMISSION_DENIED = "location_permission_denied"
    LOCATION_UNSUPPORTED = "location_unsupported"
    LOCATION_TIMEOUT = "location_timeout"


class ArrivalsSourceError(Exception):
    """The arrival data source could not be reached or returned garbage."""

    kind = ErrorKind.NETWORK_ERROR
