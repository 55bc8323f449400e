"""Incident normalization, classification and corridor filtering."""

from trafficcorridor.incidents.corridor import (
    MIN_CORRIDOR_MILES,
    Corridor,
    CorridorQuery,
    build_corridor,
    filter_to_corridor,
)
from trafficcorridor.incidents.models import Incident, IncidentKind, Severity
from trafficcorridor.incidents.normalizer import (
    FIELD_ACCESSORS,
    RawIncidentRecord,
    coerce_severity,
    normalize_incidents,
    normalize_record,
    sort_incidents,
)
from trafficcorridor.incidents.parsing import (
    RoadLocation,
    classify_incident_kind,
    parse_road_location,
)
from trafficcorridor.incidents.summary import (
    filter_by_severity,
    incidents_to_dataframe,
    severity_counts,
)

__all__ = [
    "Corridor",
    "CorridorQuery",
    "FIELD_ACCESSORS",
    "Incident",
    "IncidentKind",
    "MIN_CORRIDOR_MILES",
    "RawIncidentRecord",
    "RoadLocation",
    "Severity",
    "build_corridor",
    "classify_incident_kind",
    "coerce_severity",
    "filter_by_severity",
    "filter_to_corridor",
    "incidents_to_dataframe",
    "normalize_incidents",
    "normalize_record",
    "parse_road_location",
    "severity_counts",
    "sort_incidents",
]
