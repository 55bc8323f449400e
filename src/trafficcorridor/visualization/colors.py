"""Color tables for incident and route rendering.

Every lookup has a hex form for CSS/HTML and an RGBA list form for map
layers:
- Severity: green (low) through red (critical)
- Incident kind: marker color per icon category
- Congestion: blue (clear) through dark red (severe), gray when unknown
"""

from trafficcorridor.incidents.models import IncidentKind, Severity
from trafficcorridor.routing.congestion import CongestionBand


def hex_to_rgb(hex_color: str) -> list[int]:
    """Convert "#RRGGBB" to [R, G, B].

    Examples:
        >>> hex_to_rgb("#3b82f6")
        [59, 130, 246]
    """
    value = hex_color.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Expected #RRGGBB, got {hex_color!r}")
    return [int(value[i:i + 2], 16) for i in (0, 2, 4)]


def rgb_to_hex(rgb: list[int]) -> str:
    """Convert [R, G, B] (extra channels ignored) to "#rrggbb"."""
    r, g, b = (max(0, min(255, int(c))) for c in rgb[:3])
    return f"#{r:02x}{g:02x}{b:02x}"


# =============================================================================
# SEVERITY
# =============================================================================

SEVERITY_COLORS = {
    Severity.CRITICAL: "#ef4444",
    Severity.MAJOR: "#f97316",
    Severity.MINOR: "#facc15",
    Severity.LOW: "#22c55e",
}


def severity_to_hex(severity: Severity) -> str:
    """Dot color for a severity level.

    Examples:
        >>> severity_to_hex(Severity.CRITICAL)
        '#ef4444'
    """
    return SEVERITY_COLORS[Severity(severity)]


def severity_to_rgb(severity: Severity, alpha: int = 220) -> list[int]:
    return hex_to_rgb(severity_to_hex(severity)) + [alpha]


# =============================================================================
# INCIDENT KIND
# =============================================================================

KIND_MARKER_COLORS = {
    IncidentKind.CLOSURE: "#eab308",
    IncidentKind.CONSTRUCTION: "#f97316",
    IncidentKind.TRAFFIC: "#3b82f6",
}


def kind_to_hex(kind: IncidentKind) -> str:
    return KIND_MARKER_COLORS[kind]


def kind_to_rgb(kind: IncidentKind, alpha: int = 255) -> list[int]:
    return hex_to_rgb(kind_to_hex(kind)) + [alpha]


# =============================================================================
# CONGESTION
# =============================================================================

CONGESTION_COLORS = {
    CongestionBand.CLEAR: "#3b82f6",
    CongestionBand.LIGHT: "#facc15",
    CongestionBand.MODERATE: "#f97316",
    CongestionBand.HEAVY: "#ef4444",
    CongestionBand.SEVERE: "#b91c1c",
    CongestionBand.UNKNOWN: "#9CA3AF",
}


def congestion_to_hex(band: CongestionBand) -> str:
    """Line color for a route segment's congestion band.

    Examples:
        >>> congestion_to_hex(CongestionBand.HEAVY)
        '#ef4444'
        >>> congestion_to_hex(CongestionBand.UNKNOWN)
        '#9CA3AF'
    """
    return CONGESTION_COLORS.get(band, CONGESTION_COLORS[CongestionBand.UNKNOWN])


def congestion_to_rgb(band: CongestionBand, alpha: int = 230) -> list[int]:
    """Convert a congestion band to an RGBA list.

    Examples:
        >>> congestion_to_rgb(CongestionBand.CLEAR)
        [59, 130, 246, 230]
    """
    return hex_to_rgb(congestion_to_hex(band)) + [alpha]
