"""Display colors for incidents and route segments."""

from .colors import (
    # Congestion colors
    CONGESTION_COLORS,
    # Kind colors
    KIND_MARKER_COLORS,
    # Severity colors
    SEVERITY_COLORS,
    congestion_to_hex,
    congestion_to_rgb,
    hex_to_rgb,
    kind_to_hex,
    kind_to_rgb,
    rgb_to_hex,
    severity_to_hex,
    severity_to_rgb,
)

__all__ = [
    "SEVERITY_COLORS",
    "severity_to_hex",
    "severity_to_rgb",
    "KIND_MARKER_COLORS",
    "kind_to_hex",
    "kind_to_rgb",
    "CONGESTION_COLORS",
    "congestion_to_hex",
    "congestion_to_rgb",
    "hex_to_rgb",
    "rgb_to_hex",
]
