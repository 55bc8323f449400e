"""Tests for the MapQuest client (HTTP mocked)."""

import math
from unittest.mock import MagicMock

import pytest
import requests

from trafficcorridor.exceptions import FetchError
from trafficcorridor.providers.mapquest import (
    DIRECTIONS_PATH,
    INCIDENTS_PATH,
    MapQuestClient,
    parse_route,
)
from trafficcorridor.routing.route import build_route_session
from trafficcorridor.utils.geo import BoundingBox, GeoPoint

BOX = BoundingBox(south=34.0, west=-118.3, north=34.1, east=-118.2)


def mock_response(json_data=None, status_code=200, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    s = MagicMock(spec=requests.Session)
    s.headers = {}
    return s


@pytest.fixture
def client(session):
    return MapQuestClient("test-key", session=session)


@pytest.fixture
def directions_body():
    return {
        "route": {
            "time": 600,
            "realTime": 900,
            "shape": {
                "shapePoints": [34.0, -118.3, 34.0, -118.25, 34.0, -118.2],
                "maneuverIndexes": [0, 1],
            },
            "legs": [
                {
                    "maneuvers": [
                        {"distance": 2.8, "time": 120},
                        {"distance": 2.8, "time": 1200},
                    ]
                }
            ],
            "routeError": {"errorCode": -400, "message": ""},
        }
    }


class TestClientSetup:
    """Tests for client construction."""

    def test_requires_key(self):
        """An empty key is rejected."""
        with pytest.raises(ValueError, match="API key"):
            MapQuestClient("")

    def test_sets_user_agent(self, client, session):
        """Requests identify the client."""
        assert session.headers["User-Agent"].startswith("trafficcorridor/")


class TestFetchIncidents:
    """Tests for fetch_incidents."""

    def test_request_parameters(self, client, session):
        """The bbox is sent north,west,south,east with joined filters."""
        session.get.return_value = mock_response({"incidents": []})
        client.fetch_incidents(BOX, ["incidents", "construction"])

        url = session.get.call_args.args[0]
        params = session.get.call_args.kwargs["params"]
        assert url.endswith(INCIDENTS_PATH)
        assert params["key"] == "test-key"
        assert params["boundingBox"] == "34.1,-118.3,34.0,-118.2"
        assert params["filters"] == "incidents,construction"

    def test_incidents_body(self, client, session):
        """Records are read from the incidents array."""
        session.get.return_value = mock_response({"incidents": [{"id": 1}, {"id": 2}]})
        assert client.fetch_incidents(BOX, []) == [{"id": 1}, {"id": 2}]

    def test_results_body(self, client, session):
        """Records fall back to a results array."""
        session.get.return_value = mock_response({"results": [{"id": 1}]})
        assert client.fetch_incidents(BOX, []) == [{"id": 1}]

    def test_unexpected_body(self, client, session):
        """A body without a record list yields no records."""
        session.get.return_value = mock_response({"info": {}})
        assert client.fetch_incidents(BOX, []) == []

    def test_http_error(self, client, session):
        """A non-2xx status raises FetchError with the status code."""
        session.get.return_value = mock_response(status_code=429)
        with pytest.raises(FetchError) as exc_info:
            client.fetch_incidents(BOX, [])
        assert exc_info.value.status_code == 429

    def test_network_error(self, client, session):
        """Connection failures become FetchError."""
        session.get.side_effect = requests.ConnectionError("unreachable")
        with pytest.raises(FetchError):
            client.fetch_incidents(BOX, [])

    def test_invalid_json(self, client, session):
        """An unparseable body becomes FetchError."""
        session.get.return_value = mock_response(json_error=ValueError("bad json"))
        with pytest.raises(FetchError, match="Invalid JSON"):
            client.fetch_incidents(BOX, [])


class TestFetchRoute:
    """Tests for fetch_route and parse_route."""

    def test_request_parameters(self, client, session, directions_body):
        """Routes are traffic-aware with the full shape."""
        session.get.return_value = mock_response(directions_body)
        client.fetch_route(GeoPoint(34.0, -118.3), GeoPoint(34.0, -118.2))

        url = session.get.call_args.args[0]
        params = session.get.call_args.kwargs["params"]
        assert url.endswith(DIRECTIONS_PATH)
        assert params["from"] == "34.0,-118.3"
        assert params["useTraffic"] == "true"
        assert params["fullShape"] == "true"

    def test_parse_route(self, directions_body):
        """Shape, maneuvers and times are carried over."""
        response = parse_route(directions_body)
        assert response.shape_points == [34.0, -118.3, 34.0, -118.25, 34.0, -118.2]
        assert response.maneuver_indexes == [0, 1]
        assert [m.time_seconds for m in response.maneuvers] == [120, 1200]
        assert response.time_seconds == 600
        assert response.real_time_seconds == 900

    def test_parsed_route_builds_session(self, directions_body):
        """A parsed route builds a session with two colored segments."""
        session = build_route_session(parse_route(directions_body))
        assert len(session.segments) == 2
        assert session.delay_minutes == 5

    def test_missing_maneuver_values_are_nan(self, directions_body):
        """Missing distance or time becomes NaN, not zero."""
        directions_body["route"]["legs"][0]["maneuvers"] = [{"distance": None}]
        response = parse_route(directions_body)
        assert math.isnan(response.maneuvers[0].distance_miles)
        assert math.isnan(response.maneuvers[0].time_seconds)

    def test_non_mapping_maneuvers_skipped(self, directions_body):
        """Maneuver entries that are not objects are ignored."""
        legs = directions_body["route"]["legs"]
        legs[0]["maneuvers"] = ["turn left", None, {"distance": 2.8, "time": 120}]
        response = parse_route(directions_body)
        assert [m.time_seconds for m in response.maneuvers] == [120]

    def test_multi_leg_maneuvers_concatenated(self, directions_body):
        """Maneuvers from every leg line up with the route-wide indexes."""
        first, second = directions_body["route"]["legs"][0]["maneuvers"]
        directions_body["route"]["legs"] = [{"maneuvers": [first]}, {"maneuvers": [second]}]

        response = parse_route(directions_body)

        assert [m.time_seconds for m in response.maneuvers] == [120, 1200]
        assert len(build_route_session(response).segments) == 2

    def test_route_error(self, directions_body):
        """A routeError with a real code raises FetchError."""
        directions_body["route"]["routeError"] = {"errorCode": 2, "message": "No route"}
        with pytest.raises(FetchError, match="No route"):
            parse_route(directions_body)

    def test_missing_route(self):
        """A body without a route raises FetchError."""
        with pytest.raises(FetchError):
            parse_route({"info": {"statuscode": 402}})


class TestReverseGeocode:
    """Tests for reverse_geocode."""

    def test_label(self, client, session):
        """The label joins street, city and state."""
        session.get.return_value = mock_response(
            {
                "results": [
                    {
                        "locations": [
                            {"street": "100 Main St", "adminArea5": "Los Angeles", "adminArea3": "CA"}
                        ]
                    }
                ]
            }
        )
        assert client.reverse_geocode(GeoPoint(34.05, -118.24)) == "100 Main St, Los Angeles, CA"

    def test_partial_label(self, client, session):
        """Blank parts are skipped."""
        session.get.return_value = mock_response(
            {"results": [{"locations": [{"street": "", "adminArea5": "Pasadena"}]}]}
        )
        assert client.reverse_geocode(GeoPoint(34.14, -118.14)) == "Pasadena"

    def test_failure_returns_none(self, client, session):
        """Errors are advisory and return None."""
        session.get.return_value = mock_response(status_code=500)
        assert client.reverse_geocode(GeoPoint(34.05, -118.24)) is None

    def test_no_results(self, client, session):
        """An empty result list returns None."""
        session.get.return_value = mock_response({"results": []})
        assert client.reverse_geocode(GeoPoint(34.05, -118.24)) is None
