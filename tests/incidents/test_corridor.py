"""Tests for route corridor filtering."""

import math

import pytest

from trafficcorridor.incidents.corridor import (
    MIN_CORRIDOR_MILES,
    CorridorQuery,
    build_corridor,
    filter_to_corridor,
)
from trafficcorridor.incidents.models import Severity
from trafficcorridor.utils.geo import GeoPoint


class TestBuildCorridor:
    """Tests for the buffered corridor polygon."""

    def test_area_matches_buffer(self, straight_route):
        """Area is roughly 2 * width * length plus a round cap circle."""
        corridor = build_corridor(CorridorQuery(tuple(straight_route), 1.0))
        length = 0.125 * math.radians(1) * 3958.7613 * math.cos(math.radians(34.0))
        assert corridor.area_sq_miles == pytest.approx(2 * length + math.pi, rel=0.01)

    def test_contains(self, straight_route):
        """Points beside the route are inside, distant ones are not."""
        corridor = build_corridor(CorridorQuery(tuple(straight_route), 1.0))
        assert corridor.contains(GeoPoint(34.005, -118.25))
        assert not corridor.contains(GeoPoint(34.05, -118.25))

    def test_width_floor(self, straight_route):
        """Widths below the floor use the floor."""
        query = CorridorQuery(tuple(straight_route), 0.01)
        assert query.effective_width_miles == MIN_CORRIDOR_MILES

    def test_needs_two_points(self):
        """A single point cannot be buffered into a corridor."""
        with pytest.raises(ValueError):
            build_corridor(CorridorQuery((GeoPoint(0, 0),), 1.0))


class TestFilterToCorridor:
    """Tests for filter_to_corridor."""

    def test_keeps_only_nearby(self, straight_route, incident_factory):
        """Incidents outside the buffer are dropped."""
        incidents = [
            incident_factory(id="beside", lat=34.005, lng=-118.25),
            incident_factory(id="far", lat=34.05, lng=-118.25),
            incident_factory(id="past-end", lat=34.0, lng=-118.1),
            incident_factory(id="end-cap", lat=34.0, lng=-118.17),
        ]
        kept = filter_to_corridor(straight_route, 1.0, incidents)
        assert {i.id for i in kept} == {"beside", "end-cap"}

    def test_annotates_signed_offset(self, straight_route, incident_factory):
        """Kept incidents carry their signed offset from the route."""
        incidents = [
            incident_factory(id="left", lat=34.005, lng=-118.25),
            incident_factory(id="right", lat=33.99, lng=-118.22),
        ]
        kept = {i.id: i for i in filter_to_corridor(straight_route, 1.0, incidents)}
        assert kept["left"].route_offset_miles == pytest.approx(0.345, abs=0.01)
        assert kept["right"].route_offset_miles == pytest.approx(-0.691, abs=0.01)
        assert kept["right"].route_distance_miles == pytest.approx(0.691, abs=0.01)

    def test_sorted_by_severity_then_route_distance(self, straight_route, incident_factory):
        """Equal severity sorts by perpendicular distance, not center distance."""
        incidents = [
            incident_factory(id="minor-far", severity=Severity.MINOR, lat=33.99, lng=-118.22, distance=0.1),
            incident_factory(id="minor-near", severity=Severity.MINOR, lat=34.001, lng=-118.22, distance=5.0),
            incident_factory(id="critical", severity=Severity.CRITICAL, lat=34.012, lng=-118.28, distance=9.0),
        ]
        kept = filter_to_corridor(straight_route, 1.0, incidents)
        assert [i.id for i in kept] == ["critical", "minor-near", "minor-far"]

    def test_sort_property_for_equal_severity(self, straight_route, incident_factory):
        """No retained incident sorts after an equal-severity one that is farther."""
        incidents = [
            incident_factory(id=f"i{n}", lat=34.0 + sign * 0.001 * n, lng=-118.3 + 0.01 * n)
            for n, sign in zip(range(1, 11), [1, -1] * 5)
        ]
        kept = filter_to_corridor(straight_route, 1.0, incidents)
        for a, b in zip(kept, kept[1:]):
            if a.severity == b.severity:
                assert a.route_distance_miles <= b.route_distance_miles

    def test_narrow_width_uses_floor(self, straight_route, incident_factory):
        """An incident 0.1 mi away survives a 0.05 mi request."""
        incidents = [incident_factory(lat=34.00145, lng=-118.25)]
        assert len(filter_to_corridor(straight_route, 0.05, incidents)) == 1

    def test_short_route_returns_input(self, incident_factory):
        """With fewer than two route points nothing is filtered."""
        incidents = [incident_factory(id="a"), incident_factory(id="b", lat=10, lng=10)]
        assert filter_to_corridor([GeoPoint(34.0, -118.3)], 1.0, incidents) == incidents
        assert filter_to_corridor([], 1.0, incidents) == incidents

    def test_empty_incidents(self, straight_route):
        """No incidents in means none out."""
        assert filter_to_corridor(straight_route, 1.0, []) == []

    def test_input_not_mutated(self, straight_route, incident_factory):
        """Filtering returns annotated copies."""
        original = incident_factory(lat=34.005, lng=-118.25)
        filter_to_corridor(straight_route, 1.0, [original])
        assert original.route_offset_miles is None
