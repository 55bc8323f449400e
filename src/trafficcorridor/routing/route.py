"""Route sessions: decoded route shape split into colored maneuver segments."""

import logging
from dataclasses import dataclass, field
from math import isfinite, nan
from typing import Optional, Sequence

from trafficcorridor.exceptions import DecodeError
from trafficcorridor.routing.congestion import (
    CongestionBand,
    ManeuverTiming,
    band_for_speed,
    speed_mph,
)
from trafficcorridor.routing.polyline import decode
from trafficcorridor.utils.geo import BoundingBox, GeoPoint, bbox_from_points

logger = logging.getLogger(__name__)


@dataclass
class RouteResponse:
    """What a route provider hands back for one from/to request.

    Exactly one of ``encoded_shape`` (flexible polyline) or
    ``shape_points`` (flat [lat, lng, lat, lng, ...] list) is expected.
    ``maneuver_indexes[i]`` is the shape point index where maneuver i
    starts.
    """

    encoded_shape: Optional[str] = None
    shape_points: Optional[list[float]] = None
    maneuvers: list[ManeuverTiming] = field(default_factory=list)
    maneuver_indexes: list[int] = field(default_factory=list)
    time_seconds: Optional[float] = None
    real_time_seconds: Optional[float] = None


@dataclass(frozen=True)
class RouteSegment:
    """A run of route coordinates sharing one maneuver's speed."""

    coords: tuple[GeoPoint, ...]
    speed_mph: float
    band: CongestionBand


@dataclass(frozen=True)
class RouteSession:
    """Everything derived from one route request."""

    polyline: tuple[GeoPoint, ...]
    segments: tuple[RouteSegment, ...]
    bbox: BoundingBox
    time_minutes: Optional[int] = None
    real_time_minutes: Optional[int] = None

    @property
    def delay_minutes(self) -> Optional[int]:
        """Traffic delay over the baseline, never negative."""
        if self.time_minutes is None or self.real_time_minutes is None:
            return None
        return max(0, self.real_time_minutes - self.time_minutes)

    @property
    def origin(self) -> GeoPoint:
        return self.polyline[0]


def points_from_flat(shape_points: Sequence[float]) -> list[GeoPoint]:
    """Pair a flat [lat, lng, ...] list into points, skipping bad pairs."""
    points = []
    for i in range(0, len(shape_points) - 1, 2):
        try:
            points.append(GeoPoint(float(shape_points[i]), float(shape_points[i + 1])))
        except (TypeError, ValueError):
            continue
    return points


def _minutes(seconds: Optional[float]) -> Optional[int]:
    if seconds is None or not isfinite(seconds):
        return None
    return round(seconds / 60)


def split_segments(
    points: Sequence[GeoPoint],
    maneuvers: Sequence[ManeuverTiming],
    maneuver_indexes: Sequence[int],
) -> list[RouteSegment]:
    """Split a route shape at maneuver start indexes and band each piece.

    Indexes are clamped into the shape; the last maneuver runs to the final
    point and every segment spans at least two points. If the indexes do
    not line up one-to-one with the maneuvers, the whole shape becomes a
    single segment of unknown speed.
    """
    n = len(points)
    if n < 2:
        return []

    if not maneuvers or len(maneuver_indexes) != len(maneuvers):
        return [RouteSegment(tuple(points), nan, CongestionBand.UNKNOWN)]

    segments = []
    for i, maneuver in enumerate(maneuvers):
        start = max(0, min(n - 1, int(maneuver_indexes[i])))
        if i == len(maneuvers) - 1:
            end = n - 1
        else:
            end = max(start + 1, min(n - 1, int(maneuver_indexes[i + 1])))

        coords = tuple(points[start:end + 1])
        if len(coords) < 2:
            continue

        mph = speed_mph(maneuver.distance_miles, maneuver.time_seconds)
        segments.append(RouteSegment(coords, mph, band_for_speed(mph)))

    return segments


def build_route_session(response: RouteResponse) -> RouteSession:
    """Decode a provider response into a route session.

    Raises:
        DecodeError: If the encoded shape is malformed or the route has
            fewer than two points.
    """
    if response.encoded_shape is not None:
        points = decode(response.encoded_shape)
    else:
        points = points_from_flat(response.shape_points or [])

    if len(points) < 2:
        raise DecodeError(f"Route shape has {len(points)} point(s), need at least 2")

    segments = split_segments(points, response.maneuvers, response.maneuver_indexes)
    session = RouteSession(
        polyline=tuple(points),
        segments=tuple(segments),
        bbox=bbox_from_points(points),
        time_minutes=_minutes(response.time_seconds),
        real_time_minutes=_minutes(response.real_time_seconds),
    )

    logger.info(
        f"Built route: {len(points)} points, {len(segments)} segments, "
        f"delay={session.delay_minutes} min"
    )
    return session
