"""Snapshot summaries: severity counts, severity filtering, tabular view."""

from typing import Iterable, Sequence

import pandas as pd

from trafficcorridor.incidents.models import Incident, Severity

DATAFRAME_COLUMNS = [
    "id",
    "severity",
    "severity_label",
    "kind",
    "lat",
    "lng",
    "short_description",
    "road",
    "cross_street",
    "between",
    "direction",
    "delay_minutes",
    "distance_from_center_miles",
    "route_distance_miles",
]


def severity_counts(incidents: Iterable[Incident]) -> dict[Severity, int]:
    """Count incidents per severity; every level is present."""
    counts = {severity: 0 for severity in Severity}
    for incident in incidents:
        counts[incident.severity] += 1
    return counts


def filter_by_severity(
    incidents: Iterable[Incident],
    severities: Iterable[Severity],
) -> list[Incident]:
    """Keep incidents whose severity is in ``severities``, order preserved."""
    wanted = set(severities)
    return [i for i in incidents if i.severity in wanted]


def incidents_to_dataframe(incidents: Sequence[Incident]) -> pd.DataFrame:
    """One row per incident, in the given order.

    Returns:
        DataFrame with DATAFRAME_COLUMNS (empty but typed-by-name when
        there are no incidents)
    """
    rows = [
        {
            "id": i.id,
            "severity": int(i.severity),
            "severity_label": i.severity.label,
            "kind": i.kind.value,
            "lat": i.lat,
            "lng": i.lng,
            "short_description": i.short_description,
            "road": i.road,
            "cross_street": i.cross_street,
            "between": i.between,
            "direction": i.direction,
            "delay_minutes": i.delay_minutes,
            "distance_from_center_miles": i.distance_from_center_miles,
            "route_distance_miles": i.route_distance_miles,
        }
        for i in incidents
    ]
    return pd.DataFrame(rows, columns=DATAFRAME_COLUMNS)
