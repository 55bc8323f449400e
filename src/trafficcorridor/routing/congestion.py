"""Congestion bands derived from maneuver speed.

Each route maneuver reports a distance and a traffic-aware travel time.
Their ratio is an average speed which maps onto a discrete band:

    >= 45 mph  Clear
    >= 30 mph  Light
    >= 18 mph  Moderate
    >= 10 mph  Heavy
    <  10 mph  Severe
    unknown    Unknown

An unknown speed stays NaN and maps to Unknown, never to Severe.
"""

from dataclasses import dataclass
from enum import Enum
from math import isfinite, isnan, nan
from typing import Iterable


class CongestionBand(Enum):
    """Discrete congestion level for a route segment."""

    CLEAR = "clear"
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"
    SEVERE = "severe"
    UNKNOWN = "unknown"


# (min_speed_mph, band), evaluated high to low
SPEED_BANDS = [
    (45.0, CongestionBand.CLEAR),
    (30.0, CongestionBand.LIGHT),
    (18.0, CongestionBand.MODERATE),
    (10.0, CongestionBand.HEAVY),
]


@dataclass(frozen=True)
class ManeuverTiming:
    """Distance and travel time of one route maneuver."""

    distance_miles: float
    time_seconds: float


def speed_mph(distance_miles: float, time_seconds: float) -> float:
    """Average speed over a maneuver, NaN when it cannot be derived.

    Examples:
        >>> speed_mph(1.0, 60)
        60.0
        >>> speed_mph(1.0, 0)
        nan
    """
    if not (isfinite(distance_miles) and isfinite(time_seconds)):
        return nan
    if time_seconds <= 0:
        return nan
    return distance_miles / (time_seconds / 3600)


def band_for_speed(mph: float) -> CongestionBand:
    """Map a speed in mph to its congestion band."""
    if isnan(mph):
        return CongestionBand.UNKNOWN

    for threshold, band in SPEED_BANDS:
        if mph >= threshold:
            return band

    return CongestionBand.SEVERE


def colorize(segments: Iterable[ManeuverTiming]) -> list[CongestionBand]:
    """Assign a congestion band to every maneuver, one-to-one.

    Adjacent segments with the same band are kept separate so band
    boundaries line up with the route's maneuver structure.
    """
    return [
        band_for_speed(speed_mph(s.distance_miles, s.time_seconds))
        for s in segments
    ]
