"""Canonical incident types."""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional

from trafficcorridor.utils.geo import GeoPoint


class Severity(IntEnum):
    """Incident severity; higher sorts first."""

    LOW = 1
    MINOR = 2
    MAJOR = 3
    CRITICAL = 4

    @property
    def label(self) -> str:
        return self.name.capitalize()


class IncidentKind(Enum):
    """Icon category, derived only from free text."""

    CLOSURE = "closure"
    CONSTRUCTION = "construction"
    TRAFFIC = "traffic"


@dataclass(frozen=True)
class Incident:
    """A normalized traffic incident.

    Built fresh on every normalization pass and replaced wholesale on each
    refresh. ``route_offset_miles`` is only set on copies returned by the
    corridor filter (positive = left of the direction of travel).
    """

    id: str
    severity: Severity
    location: GeoPoint
    kind: IncidentKind
    short_description: str
    distance_from_center_miles: float
    full_description: Optional[str] = None
    type: Optional[str] = None
    road: Optional[str] = None
    cross_street: Optional[str] = None
    between: Optional[str] = None
    direction: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    delay_minutes: Optional[int] = None
    route_offset_miles: Optional[float] = None

    @property
    def lat(self) -> float:
        return self.location.lat

    @property
    def lng(self) -> float:
        return self.location.lng

    @property
    def route_distance_miles(self) -> Optional[float]:
        """Unsigned perpendicular distance to the route, if annotated."""
        if self.route_offset_miles is None:
            return None
        return abs(self.route_offset_miles)
