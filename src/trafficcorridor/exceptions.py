"""Exception types raised by trafficcorridor."""

from typing import Optional


class TrafficCorridorError(Exception):
    """Base class for trafficcorridor errors."""


class DecodeError(TrafficCorridorError):
    """Malformed encoded polyline.

    Fatal to the route attempt that hit it, never to the refresh loop.
    """


class FetchError(TrafficCorridorError):
    """Upstream provider unavailable, rate limited or returned bad data."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
