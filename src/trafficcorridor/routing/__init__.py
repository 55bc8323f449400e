"""Route shape decoding and congestion coloring.

The route provider hands back a flexible polyline and per-maneuver
distance/time pairs; this package turns them into colored segments.
"""

from trafficcorridor.routing.congestion import (
    CongestionBand,
    ManeuverTiming,
    band_for_speed,
    colorize,
    speed_mph,
)
from trafficcorridor.routing.polyline import PolylineHeader, decode, decode_header, encode
from trafficcorridor.routing.route import (
    RouteResponse,
    RouteSegment,
    RouteSession,
    build_route_session,
    split_segments,
)

__all__ = [
    "CongestionBand",
    "ManeuverTiming",
    "PolylineHeader",
    "RouteResponse",
    "RouteSegment",
    "RouteSession",
    "band_for_speed",
    "build_route_session",
    "colorize",
    "decode",
    "decode_header",
    "encode",
    "speed_mph",
    "split_segments",
]
