"""Free-text parsing of incident descriptions.

Kept separate from normalization so the heuristics can be measured and
tuned on their own. Both functions are pure.
"""

import re
from dataclasses import dataclass
from typing import Optional

from trafficcorridor.incidents.models import IncidentKind

CLOSURE_PATTERN = re.compile(r"road closed|closure|closed|lanes closed", re.IGNORECASE)
CONSTRUCTION_PATTERN = re.compile(
    r"construction|road work|work zone|maintenance|repairs?", re.IGNORECASE
)

# Shapes tried in order; the first match wins
BETWEEN_PATTERN = re.compile(r"^(.*?)\s+between\s+(.*?)\s+and\s+(.*)$", re.IGNORECASE)
AT_PATTERN = re.compile(r"^(.*?)\s+at\s+(.*)$", re.IGNORECASE)
NEAR_PATTERN = re.compile(r"^(.*?)\s+near\s+(.*)$", re.IGNORECASE)
DIRECTION_PATTERN = re.compile(r"\b(NB|SB|EB|WB|[NSEW])\b", re.IGNORECASE)

# Location phrase ends at a spaced dash or a semicolon:
# "I-405 N at Wilshire Blvd - lanes closed" -> "I-405 N at Wilshire Blvd"
LOCATION_BREAK = re.compile(r"\s+[-–—]+\s+|\s*;\s*")


@dataclass(frozen=True)
class RoadLocation:
    """Road position parsed out of a description."""

    road: Optional[str] = None
    cross_street: Optional[str] = None
    between: Optional[str] = None
    direction: Optional[str] = None


def classify_incident_kind(
    short_description: str,
    full_description: Optional[str] = None,
    type_text: Optional[str] = None,
) -> IncidentKind:
    """Classify an incident from its text fields.

    Closure wording is checked before construction wording, so a closed
    lane inside a work zone is a closure.

    Examples:
        >>> classify_incident_kind("Road closed due to construction")
        <IncidentKind.CLOSURE: 'closure'>
        >>> classify_incident_kind("Road work on Main St")
        <IncidentKind.CONSTRUCTION: 'construction'>
    """
    text = f"{type_text or ''} {short_description or ''} {full_description or ''}"
    if CLOSURE_PATTERN.search(text):
        return IncidentKind.CLOSURE
    if CONSTRUCTION_PATTERN.search(text):
        return IncidentKind.CONSTRUCTION
    return IncidentKind.TRAFFIC


def parse_road_location(description: str) -> RoadLocation:
    """Pull road, cross street, between and direction out of a description.

    Tries "<road> between <X> and <Y>", then "<road> at <X>", then
    "<road> near <X>". If none match, only a standalone direction token
    (N, S, E, W, NB, SB, EB, WB) is extracted.

    Examples:
        >>> parse_road_location("I-405 N at Wilshire Blvd")
        RoadLocation(road='I-405 N', cross_street='Wilshire Blvd', between=None, direction=None)
    """
    text = (description or "").strip()
    if not text:
        return RoadLocation()

    phrase = LOCATION_BREAK.split(text, maxsplit=1)[0].strip() or text

    m = BETWEEN_PATTERN.match(phrase)
    if m:
        return RoadLocation(
            road=m.group(1).strip(),
            between=f"{m.group(2).strip()} and {m.group(3).strip()}",
        )

    m = AT_PATTERN.match(phrase)
    if m:
        return RoadLocation(road=m.group(1).strip(), cross_street=m.group(2).strip())

    m = NEAR_PATTERN.match(phrase)
    if m:
        return RoadLocation(road=m.group(1).strip(), cross_street=m.group(2).strip())

    m = DIRECTION_PATTERN.search(text)
    if m:
        return RoadLocation(direction=m.group(1).upper())

    return RoadLocation()
