"""Geographic utilities: points, bounding boxes and distances in miles.

Distances along a route corridor are only ever tens of miles, so the
point-to-segment math uses an equirectangular projection centered on the
query point instead of true geodesics. Great-circle distance is used for
distance-from-center.
"""

from dataclasses import dataclass
from math import asin, cos, inf, isfinite, radians, sin, sqrt
from typing import Sequence

import numpy as np

EARTH_RADIUS_MILES = 3958.7613

# Miles per degree of latitude (and of longitude at the equator)
MILES_PER_DEGREE = 69.0

# Floor on cos(lat) so longitude offsets stay finite near the poles
MIN_COS_LAT = 0.2


@dataclass(frozen=True)
class GeoPoint:
    """Geographic point in decimal degrees."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (isfinite(self.lat) and isfinite(self.lng)):
            raise ValueError(f"Non-finite coordinate: ({self.lat}, {self.lng})")
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lng}")

    def distance_to(self, other: "GeoPoint") -> float:
        """Great-circle distance in miles to another point."""
        return haversine_miles(self, other)

    def to_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box (non-wrapping)."""

    south: float
    west: float
    north: float
    east: float

    def __post_init__(self) -> None:
        if self.south > self.north:
            raise ValueError(f"south ({self.south}) must be <= north ({self.north})")

    def contains(self, point: GeoPoint) -> bool:
        """Check if a point is within this bounding box."""
        return (
            self.south <= point.lat <= self.north
            and self.west <= point.lng <= self.east
        )

    @property
    def center(self) -> GeoPoint:
        return GeoPoint((self.south + self.north) / 2, (self.west + self.east) / 2)

    def expand_miles(self, miles: float) -> "BoundingBox":
        """Grow the box by ``miles`` on every side."""
        lat_offset = miles / MILES_PER_DEGREE
        cos_lat = max(MIN_COS_LAT, cos(radians(self.center.lat)))
        lng_offset = miles / (MILES_PER_DEGREE * cos_lat)
        return BoundingBox(
            south=max(-90.0, self.south - lat_offset),
            west=max(-180.0, self.west - lng_offset),
            north=min(90.0, self.north + lat_offset),
            east=min(180.0, self.east + lng_offset),
        )

    def to_mapquest(self) -> str:
        """Return as "north,west,south,east" for the MapQuest traffic API."""
        return f"{self.north},{self.west},{self.south},{self.east}"

    def to_dict(self) -> dict:
        """Return as dictionary."""
        return {
            "south": self.south,
            "west": self.west,
            "north": self.north,
            "east": self.east,
        }


def haversine_miles(a: GeoPoint, b: GeoPoint) -> float:
    """Calculate the great circle distance in miles between two points.

    Args:
        a: First point
        b: Second point

    Returns:
        Distance in miles (0.0 when the points are equal)
    """
    if a == b:
        return 0.0

    lat1, lng1, lat2, lng2 = map(radians, [a.lat, a.lng, b.lat, b.lng])
    dlat = lat2 - lat1
    dlng = lng2 - lng1

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * asin(min(1.0, sqrt(h)))


def _project(p: GeoPoint, origin_lat: float) -> tuple[float, float]:
    """Equirectangular (x, y) in miles, x scaled by cos(origin_lat)."""
    k = radians(1.0) * EARTH_RADIUS_MILES
    return (p.lng * k * cos(radians(origin_lat)), p.lat * k)


def _segment_offset(p: GeoPoint, a: GeoPoint, b: GeoPoint) -> tuple[float, float]:
    """Return (distance, cross) from p to segment a-b in the plane at p.lat.

    ``cross`` is the 2D cross product of (b - a) and (p - a); positive
    means p lies to the left of the direction a -> b.
    """
    px, py = _project(p, p.lat)
    ax, ay = _project(a, p.lat)
    bx, by = _project(b, p.lat)

    dx, dy = bx - ax, by - ay
    seg_len_sq = dx * dx + dy * dy
    if seg_len_sq == 0.0:
        t = 0.0
    else:
        t = ((px - ax) * dx + (py - ay) * dy) / seg_len_sq
        t = max(0.0, min(1.0, t))

    cx, cy = ax + t * dx, ay + t * dy
    distance = sqrt((px - cx) ** 2 + (py - cy) ** 2)
    cross = dx * (py - ay) - dy * (px - ax)
    return distance, cross


def point_to_segment_miles(p: GeoPoint, a: GeoPoint, b: GeoPoint) -> float:
    """Distance in miles from p to the segment a-b (not the infinite line)."""
    distance, _ = _segment_offset(p, a, b)
    return distance


def point_to_polyline_miles(
    p: GeoPoint, poly: Sequence[GeoPoint]
) -> tuple[float, bool]:
    """Minimum distance in miles from p to any segment of poly.

    Returns:
        (distance, ok); ok is False (and distance infinite) when poly has
        fewer than two points.
    """
    if len(poly) < 2:
        return inf, False

    best = inf
    for a, b in zip(poly, poly[1:]):
        best = min(best, point_to_segment_miles(p, a, b))
    return best, True


def signed_offset_to_polyline_miles(
    p: GeoPoint, poly: Sequence[GeoPoint]
) -> float | None:
    """Perpendicular offset from poly, positive left of travel direction.

    The magnitude equals ``point_to_polyline_miles``; the sign comes from
    the nearest segment. None when poly has fewer than two points.
    """
    if len(poly) < 2:
        return None

    best_distance = inf
    best_cross = 0.0
    for a, b in zip(poly, poly[1:]):
        distance, cross = _segment_offset(p, a, b)
        if distance < best_distance:
            best_distance, best_cross = distance, cross

    return -best_distance if best_cross < 0 else best_distance


def bbox_from_zoom(center: GeoPoint, zoom: int) -> BoundingBox:
    """Approximate viewport box for a map zoom level.

    Uses offset = 0.5 / 2**(zoom - 11) degrees in both axes. This is not a
    tile projection; it only needs to be big enough to cover the view.
    """
    offset = 0.5 / 2 ** (zoom - 11)
    return BoundingBox(
        south=max(-90.0, center.lat - offset),
        west=center.lng - offset,
        north=min(90.0, center.lat + offset),
        east=center.lng + offset,
    )


def bbox_from_radius_miles(center: GeoPoint, radius_miles: float) -> BoundingBox:
    """Bounding box covering a circle of ``radius_miles`` around center."""
    lat_offset = radius_miles / MILES_PER_DEGREE
    cos_lat = max(MIN_COS_LAT, cos(radians(center.lat)))
    lng_offset = radius_miles / (MILES_PER_DEGREE * cos_lat)
    return BoundingBox(
        south=max(-90.0, center.lat - lat_offset),
        west=center.lng - lng_offset,
        north=min(90.0, center.lat + lat_offset),
        east=center.lng + lng_offset,
    )


def bbox_from_points(points: Sequence[GeoPoint]) -> BoundingBox | None:
    """Tight bounding box around points, or None if there are none."""
    if not points:
        return None
    lats = [p.lat for p in points]
    lngs = [p.lng for p in points]
    return BoundingBox(south=min(lats), west=min(lngs), north=max(lats), east=max(lngs))


def to_local_xy_miles(points: Sequence[GeoPoint], origin_lat: float) -> np.ndarray:
    """Project points to an (N, 2) array of equirectangular miles.

    x is scaled by cos(origin_lat) so distances in the plane are
    approximately miles near origin_lat.
    """
    k = radians(1.0) * EARTH_RADIUS_MILES
    coords = np.array([[p.lng, p.lat] for p in points], dtype=float).reshape(-1, 2)
    coords[:, 0] *= k * cos(radians(origin_lat))
    coords[:, 1] *= k
    return coords
