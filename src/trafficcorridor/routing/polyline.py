"""Flexible polyline codec.

The format is a stream of URL-safe base64 symbols. Each symbol carries 5
payload bits plus a continuation bit (0x20); symbols chain into unsigned
varints, signed values are zig-zag encoded. The stream starts with a
header:

    version (varint, always 1)
    content (varint): bits 0-3 precision, bits 4-6 third dimension type,
                      bits 7-10 third dimension precision

This is the published flexible-polyline layout; encoders that put the
third dimension type in bits 4-7 are not compatible with this reader.

followed by (lat, lng[, z]) deltas scaled by 10**precision. The third
dimension (altitude, elevation, ...) is read to keep the stream aligned and
then discarded; only 2D points are returned.
"""

import logging
from dataclasses import dataclass
from math import floor
from typing import Iterable

from trafficcorridor.exceptions import DecodeError
from trafficcorridor.utils.geo import GeoPoint

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

ENCODING_TABLE = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"

# 64-entry symbol -> 6-bit value lookup
DECODING_TABLE = {char: value for value, char in enumerate(ENCODING_TABLE)}


@dataclass(frozen=True)
class PolylineHeader:
    """Decoded flexible polyline header."""

    version: int
    precision: int
    third_dim: int
    third_dim_precision: int

    @property
    def has_third_dim(self) -> bool:
        return self.third_dim != 0


def _read_unsigned(encoded: str, index: int) -> tuple[int, int]:
    """Read one unsigned varint starting at index.

    Returns:
        (value, next_index)

    Raises:
        DecodeError: On an unknown symbol or if the string ends mid-varint.
    """
    result = 0
    shift = 0
    while index < len(encoded):
        char = encoded[index]
        value = DECODING_TABLE.get(char)
        if value is None:
            raise DecodeError(f"Invalid character {char!r} at position {index}")

        result |= (value & 0x1F) << shift
        index += 1
        if not value & 0x20:
            return result, index
        shift += 5

    raise DecodeError("Polyline ends in the middle of a value")


def _read_signed(encoded: str, index: int) -> tuple[int, int]:
    value, index = _read_unsigned(encoded, index)
    if value & 1:
        return ~(value >> 1), index
    return value >> 1, index


def _read_header(encoded: str) -> tuple[PolylineHeader, int]:
    version, index = _read_unsigned(encoded, 0)
    if version != FORMAT_VERSION:
        raise DecodeError(f"Unsupported polyline version: {version}")

    content, index = _read_unsigned(encoded, index)
    header = PolylineHeader(
        version=version,
        precision=content & 0x0F,
        third_dim=(content >> 4) & 0x07,
        third_dim_precision=(content >> 7) & 0x0F,
    )
    return header, index


def decode_header(encoded: str) -> PolylineHeader:
    """Decode only the header of a flexible polyline."""
    header, _ = _read_header(encoded)
    return header


def decode(encoded: str) -> list[GeoPoint]:
    """Decode a flexible polyline into 2D points.

    Args:
        encoded: Encoded polyline string

    Returns:
        Points in stream order (empty if the body is empty)

    Raises:
        DecodeError: If the stream is truncated, contains unknown symbols,
            declares an unsupported version, or yields an out-of-range
            coordinate.

    Examples:
        >>> decode("BFoz5xJ67i1B1B7PzIhaxL7Y")[0]
        GeoPoint(lat=50.10228, lng=8.69821)
    """
    header, index = _read_header(encoded)
    scale = 10 ** header.precision

    lat = 0
    lng = 0
    points: list[GeoPoint] = []

    while index < len(encoded):
        dlat, index = _read_signed(encoded, index)
        if index >= len(encoded):
            raise DecodeError("Polyline ends after a latitude without longitude")
        dlng, index = _read_signed(encoded, index)

        if header.has_third_dim:
            if index >= len(encoded):
                raise DecodeError("Polyline ends before the third dimension value")
            _, index = _read_signed(encoded, index)

        lat += dlat
        lng += dlng
        try:
            points.append(GeoPoint(lat / scale, lng / scale))
        except ValueError as e:
            raise DecodeError(f"Invalid coordinate at point {len(points)}: {e}") from e

    logger.debug(f"Decoded {len(points)} points (precision={header.precision})")
    return points


def _write_unsigned(value: int, out: list[str]) -> None:
    while value > 0x1F:
        out.append(ENCODING_TABLE[(value & 0x1F) | 0x20])
        value >>= 5
    out.append(ENCODING_TABLE[value])


def _write_signed(value: int, out: list[str]) -> None:
    value = ~(value << 1) if value < 0 else value << 1
    _write_unsigned(value, out)


def _scale(value: float, scale: int) -> int:
    # Round half away from zero so negative coordinates encode symmetrically
    scaled = floor(abs(value) * scale + 0.5)
    return scaled if value >= 0 else -scaled


def encode(points: Iterable[GeoPoint], precision: int = 5) -> str:
    """Encode 2D points as a flexible polyline (version 1, no third dim).

    Args:
        points: Points to encode
        precision: Decimal digits kept per coordinate (0-15)

    Returns:
        Encoded polyline string
    """
    if not 0 <= precision <= 15:
        raise ValueError(f"Precision must be in 0..15, got {precision}")

    scale = 10**precision
    out: list[str] = []
    _write_unsigned(FORMAT_VERSION, out)
    _write_unsigned(precision, out)

    last_lat = 0
    last_lng = 0
    for point in points:
        lat = _scale(point.lat, scale)
        lng = _scale(point.lng, scale)
        _write_signed(lat - last_lat, out)
        _write_signed(lng - last_lng, out)
        last_lat, last_lng = lat, lng

    return "".join(out)
