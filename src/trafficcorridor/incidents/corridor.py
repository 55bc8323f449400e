"""Route corridor filtering.

The route is projected into a local equirectangular plane (miles), buffered
with shapely, and incidents covered by the buffer are kept. Kept incidents
are annotated with their signed perpendicular offset from the route and
re-ranked by (severity desc, |offset| asc): inside a corridor, distance to
the route matters more than distance to the query center.
"""

import logging
from dataclasses import dataclass, replace
from typing import Sequence

from shapely.geometry import LineString, Point, Polygon
from shapely.prepared import prep

from trafficcorridor.incidents.models import Incident
from trafficcorridor.utils.geo import (
    GeoPoint,
    signed_offset_to_polyline_miles,
    to_local_xy_miles,
)

logger = logging.getLogger(__name__)

# Floor on corridor width so the buffer never degenerates to a line
MIN_CORRIDOR_MILES = 0.2

# Segments per quarter circle on buffer end caps and joins
BUFFER_RESOLUTION = 16


@dataclass(frozen=True)
class CorridorQuery:
    """A route polyline and the corridor half-width around it."""

    polyline: tuple[GeoPoint, ...]
    width_miles: float

    @property
    def effective_width_miles(self) -> float:
        return max(MIN_CORRIDOR_MILES, self.width_miles)

    @property
    def origin_lat(self) -> float:
        lats = [p.lat for p in self.polyline]
        return (min(lats) + max(lats)) / 2


@dataclass(frozen=True)
class Corridor:
    """Buffered route polygon in local plane coordinates."""

    query: CorridorQuery
    polygon: Polygon

    def contains(self, point: GeoPoint) -> bool:
        """True if point lies inside or on the corridor boundary."""
        x, y = to_local_xy_miles([point], self.query.origin_lat)[0]
        return self.polygon.covers(Point(x, y))

    @property
    def area_sq_miles(self) -> float:
        return self.polygon.area


def build_corridor(query: CorridorQuery) -> Corridor:
    """Buffer the route into a corridor polygon.

    Raises:
        ValueError: If the polyline has fewer than two points.
    """
    if len(query.polyline) < 2:
        raise ValueError("A corridor needs at least two route points")

    xy = to_local_xy_miles(query.polyline, query.origin_lat)
    polygon = LineString(xy).buffer(
        query.effective_width_miles, quad_segs=BUFFER_RESOLUTION
    )
    return Corridor(query=query, polygon=polygon)


def filter_to_corridor(
    route: Sequence[GeoPoint],
    width_miles: float,
    incidents: Sequence[Incident],
) -> list[Incident]:
    """Keep incidents inside the route corridor, nearest to the route first.

    Args:
        route: Decoded route points
        width_miles: Corridor half-width in miles (floored at 0.2)
        incidents: Normalized incidents

    Returns:
        Annotated copies of the incidents inside the corridor, sorted by
        (severity desc, perpendicular distance asc). With fewer than two
        route points there is no corridor and the input is returned
        unfiltered.
    """
    if len(route) < 2:
        return list(incidents)
    if not incidents:
        return []

    query = CorridorQuery(polyline=tuple(route), width_miles=width_miles)
    corridor = build_corridor(query)
    prepared = prep(corridor.polygon)

    xy = to_local_xy_miles([i.location for i in incidents], query.origin_lat)
    kept = []
    for incident, (x, y) in zip(incidents, xy):
        if not prepared.covers(Point(x, y)):
            continue
        offset = signed_offset_to_polyline_miles(incident.location, query.polyline)
        kept.append(replace(incident, route_offset_miles=offset))

    kept.sort(key=lambda i: (-int(i.severity), i.route_distance_miles))

    logger.debug(
        f"Corridor {query.effective_width_miles:.2f} mi kept "
        f"{len(kept)}/{len(incidents)} incidents"
    )
    return kept
