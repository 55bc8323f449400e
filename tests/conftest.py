"""Shared pytest fixtures for trafficcorridor tests.

Test Tiers:
- unit: Fast tests with fixtures, no network (default)
- integration: Tests wiring several components with a mocked upstream
- live: Real MapQuest API tests, slow, requires network and MAPQUEST_API_KEY

Run live tests with: pytest -m live --run-live
"""

import pytest

from trafficcorridor.incidents.models import Incident, IncidentKind, Severity
from trafficcorridor.utils.geo import GeoPoint


def pytest_addoption(parser):
    """Add command line options for test configuration."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run live API tests (slow, requires network)",
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: fast unit tests using fixtures")
    config.addinivalue_line("markers", "integration: components wired with a mocked upstream")
    config.addinivalue_line("markers", "live: real API tests (slow, requires network)")


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is specified."""
    if config.getoption("--run-live"):
        return

    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


class FakeClock:
    """Manually advanced clock for TTL and interval tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def downtown_la() -> GeoPoint:
    """Area-mode center used across tests."""
    return GeoPoint(34.05, -118.24)


@pytest.fixture
def straight_route() -> list[GeoPoint]:
    """A due-east route roughly 7 miles long at 34N."""
    return [
        GeoPoint(34.0, -118.3),
        GeoPoint(34.0, -118.25),
        GeoPoint(34.0, -118.2),
        GeoPoint(34.0, -118.175),
    ]


@pytest.fixture
def sample_raw_incidents() -> list[dict]:
    """Raw MapQuest-shaped incident records, including malformed ones."""
    return [
        {
            "id": "mq-1",
            "severity": 4,
            "lat": 34.05,
            "lng": -118.24,
            "shortDesc": "I-405 N at Wilshire Blvd - lanes closed",
            "fullDesc": "All lanes closed on I-405 N at Wilshire Blvd due to a crash.",
            "delayFromTypical": 12.4,
        },
        {
            "id": "mq-2",
            "severity": "2",
            "lat": "34.06",
            "lng": "-118.25",
            "shortDesc": "Road work on Main St between 1st St and 3rd St",
            "startTime": "2024-01-01T08:00:00",
        },
        {
            "incidentId": 3,
            "severityLevel": 3,
            "latitude": 34.07,
            "longitude": -118.2,
            "description": "Stalled vehicle near Sunset Blvd",
        },
        {"id": "bad-1", "severity": 4, "shortDesc": "No coordinates"},
        {"id": "bad-2", "lat": "not-a-number", "lng": -118.24},
    ]


def make_incident(
    id: str = "inc-1",
    severity: Severity = Severity.MINOR,
    lat: float = 34.0,
    lng: float = -118.25,
    kind: IncidentKind = IncidentKind.TRAFFIC,
    distance: float = 1.0,
    **kwargs,
) -> Incident:
    """Build a normalized incident with sensible defaults."""
    return Incident(
        id=id,
        severity=severity,
        location=GeoPoint(lat, lng),
        kind=kind,
        short_description=kwargs.pop("short_description", "Traffic incident"),
        distance_from_center_miles=distance,
        **kwargs,
    )


@pytest.fixture
def incident_factory():
    """Factory fixture returning make_incident."""
    return make_incident
