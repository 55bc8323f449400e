"""Shared geographic utilities for trafficcorridor."""

from .geo import (
    EARTH_RADIUS_MILES,
    BoundingBox,
    GeoPoint,
    bbox_from_points,
    bbox_from_radius_miles,
    bbox_from_zoom,
    haversine_miles,
    point_to_polyline_miles,
    point_to_segment_miles,
    signed_offset_to_polyline_miles,
    to_local_xy_miles,
)

__all__ = [
    "EARTH_RADIUS_MILES",
    "BoundingBox",
    "GeoPoint",
    "bbox_from_points",
    "bbox_from_radius_miles",
    "bbox_from_zoom",
    "haversine_miles",
    "point_to_polyline_miles",
    "point_to_segment_miles",
    "signed_offset_to_polyline_miles",
    "to_local_xy_miles",
]
