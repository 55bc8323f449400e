"""Normalize heterogeneous upstream incident records.

Upstream feeds (MapQuest traffic, Open511 and similar) name the same
logical field differently. Each logical field has an ordered tuple of
candidate accessors, either a key or a callable on the raw mapping, and
the first one that yields a usable value wins.

Records without a usable location are dropped and counted; a bad record
never fails the whole batch.
"""

import logging
from dataclasses import dataclass
from math import isfinite
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from trafficcorridor.incidents.models import Incident, Severity
from trafficcorridor.incidents.parsing import classify_incident_kind, parse_road_location
from trafficcorridor.utils.geo import GeoPoint, haversine_miles

logger = logging.getLogger(__name__)

Accessor = Union[str, Callable[[Mapping[str, Any]], Any]]

DEFAULT_SHORT_DESCRIPTION = "Traffic incident"

# Characters of description used in synthesized ids
ID_DESCRIPTION_CHARS = 36

SEVERITY_NAMES = {
    "low": Severity.LOW,
    "minor": Severity.MINOR,
    "moderate": Severity.MAJOR,
    "major": Severity.MAJOR,
    "critical": Severity.CRITICAL,
}


def _geography_coord(i: int) -> Callable[[Mapping[str, Any]], Any]:
    """Accessor for Open511 style {"geography": {"coordinates": [lng, lat]}}."""

    def access(record: Mapping[str, Any]) -> Any:
        geography = record.get("geography")
        if not isinstance(geography, Mapping) or geography.get("type") != "Point":
            return None
        coords = geography.get("coordinates")
        if isinstance(coords, (list, tuple)) and len(coords) >= 2:
            return coords[i]
        return None

    return access


def _first_road(key: str) -> Callable[[Mapping[str, Any]], Any]:
    """Accessor for Open511 style {"roads": [{"name": ..., "direction": ...}]}."""

    def access(record: Mapping[str, Any]) -> Any:
        roads = record.get("roads")
        if isinstance(roads, list) and roads and isinstance(roads[0], Mapping):
            return roads[0].get(key)
        return None

    return access


def _open511_between(record: Mapping[str, Any]) -> Any:
    frm = _first_road("from")(record)
    to = _first_road("to")(record)
    if frm and to:
        return f"{frm} and {to}"
    return None


FIELD_ACCESSORS: dict[str, tuple[Accessor, ...]] = {
    "lat": ("lat", "latitude", "y", _geography_coord(1)),
    "lng": ("lng", "lon", "longitude", "x", _geography_coord(0)),
    "severity": ("severity", "severityLevel", "severityId"),
    "short_description": (
        "shortDesc",
        "shortDescription",
        "typeDesc",
        "description",
        "headline",
        "fullDesc",
    ),
    "full_description": ("fullDesc", "fullDescription"),
    "type": ("typeDesc", "type", "eventCode", "event_type", "iconURL"),
    "delay": ("delayFromTypicalMinutes", "delayFromTypical", "delayMinutes", "delay"),
    "road": ("roadName", "road", "street", "location", _first_road("name")),
    "cross_street": ("crossStreet", "crossStreetName", "nearestCrossStreet"),
    "between": ("between", _open511_between),
    "direction": ("direction", "dir", _first_road("direction")),
    "start_time": ("startTime", "startDate", "start", "created"),
    "end_time": ("endTime", "endDate", "end"),
    "id": ("id", "incidentId", "eventId"),
}


def clean_text(value: Any) -> Optional[str]:
    """Stripped string, or None for non-strings and blanks."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def to_finite_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if isfinite(number) else None


def coerce_severity(value: Any) -> Severity:
    """Coerce a raw severity into 1..4, defaulting to LOW.

    Examples:
        >>> coerce_severity("4")
        <Severity.CRITICAL: 4>
        >>> coerce_severity(7)
        <Severity.LOW: 1>
    """
    if isinstance(value, str) and value.strip().lower() in SEVERITY_NAMES:
        return SEVERITY_NAMES[value.strip().lower()]

    number = to_finite_float(value)
    if number is not None and number.is_integer() and 1 <= number <= 4:
        return Severity(int(number))
    return Severity.LOW


class RawIncidentRecord:
    """An upstream record with best-effort field extraction."""

    def __init__(self, data: Mapping[str, Any]):
        self.data = data

    def candidates(self, field: str) -> Iterable[Any]:
        """Yield non-null candidate values for a logical field, in order."""
        for accessor in FIELD_ACCESSORS[field]:
            if callable(accessor):
                value = accessor(self.data)
            else:
                value = self.data.get(accessor)
            if value is not None:
                yield value

    def first(self, field: str, coerce: Callable[[Any], Any] = lambda v: v) -> Any:
        """First candidate that survives ``coerce`` (returns non-None)."""
        for value in self.candidates(field):
            result = coerce(value)
            if result is not None:
                return result
        return None

    def text(self, field: str) -> Optional[str]:
        return self.first(field, clean_text)

    def location(self) -> Optional[GeoPoint]:
        lat = self.first("lat", to_finite_float)
        lng = self.first("lng", to_finite_float)
        if lat is None or lng is None:
            return None
        try:
            return GeoPoint(lat, lng)
        except ValueError:
            return None

    def severity(self) -> Severity:
        value = next(iter(self.candidates("severity")), None)
        return coerce_severity(value)

    def delay_minutes(self) -> Optional[int]:
        # Feeds often send 0 for "unknown"; only positive delays are kept
        delay = self.first("delay", to_finite_float)
        if delay is None:
            return None
        minutes = max(0, round(delay))
        return minutes if minutes > 0 else None

    def upstream_id(self) -> Optional[str]:
        for value in self.candidates("id"):
            if isinstance(value, bool):
                continue
            text = str(value).strip()
            if text:
                return text
        return None


def synthesize_id(severity: Severity, location: GeoPoint, description: str) -> str:
    """Stable id for records without one, so re-fetches de-duplicate."""
    return (
        f"{int(severity)}:{location.lat:.5f},{location.lng:.5f}:"
        f"{description[:ID_DESCRIPTION_CHARS]}"
    )


def normalize_record(data: Mapping[str, Any], center: GeoPoint) -> Optional[Incident]:
    """Normalize one raw record, or None if it has no usable location."""
    if not isinstance(data, Mapping):
        return None

    record = RawIncidentRecord(data)
    location = record.location()
    if location is None:
        return None

    severity = record.severity()
    short_description = record.first("short_description", clean_text) or DEFAULT_SHORT_DESCRIPTION
    full_description = record.text("full_description")
    type_text = record.text("type")
    parsed = parse_road_location(short_description)

    return Incident(
        id=record.upstream_id() or synthesize_id(severity, location, short_description),
        severity=severity,
        location=location,
        kind=classify_incident_kind(short_description, full_description, type_text),
        short_description=short_description,
        full_description=full_description,
        type=type_text,
        road=record.text("road") or parsed.road,
        cross_street=record.text("cross_street") or parsed.cross_street,
        between=record.text("between") or parsed.between,
        direction=record.text("direction") or parsed.direction,
        start_time=record.text("start_time"),
        end_time=record.text("end_time"),
        distance_from_center_miles=haversine_miles(center, location),
        delay_minutes=record.delay_minutes(),
    )


def sort_incidents(incidents: Iterable[Incident]) -> list[Incident]:
    """Most severe first, then nearest to the query center."""
    return sorted(
        incidents,
        key=lambda i: (-int(i.severity), i.distance_from_center_miles),
    )


def normalize_incidents(
    raw: Optional[Iterable[Mapping[str, Any]]],
    center: GeoPoint,
) -> list[Incident]:
    """Normalize a batch of upstream records.

    Args:
        raw: Upstream records (None is treated as empty)
        center: Query center used for distance_from_center_miles

    Returns:
        Incidents sorted by (severity desc, distance asc). Records with a
        duplicate id keep only their first occurrence.
    """
    incidents: list[Incident] = []
    seen: set[str] = set()
    skipped = 0
    duplicates = 0

    for data in raw or []:
        incident = normalize_record(data, center)
        if incident is None:
            skipped += 1
            continue
        if incident.id in seen:
            duplicates += 1
            continue
        seen.add(incident.id)
        incidents.append(incident)

    if skipped or duplicates:
        logger.debug(
            f"Normalized {len(incidents)} incidents "
            f"(skipped {skipped} malformed, {duplicates} duplicate)"
        )

    return sort_incidents(incidents)
