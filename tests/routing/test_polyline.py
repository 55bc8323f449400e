"""Tests for the flexible polyline codec."""

import pytest

from trafficcorridor.exceptions import DecodeError
from trafficcorridor.routing.polyline import (
    _write_signed,
    _write_unsigned,
    decode,
    decode_header,
    encode,
)
from trafficcorridor.utils.geo import GeoPoint

SAMPLE = "BFoz5xJ67i1B1B7PzIhaxL7Y"

SAMPLE_POINTS = [
    GeoPoint(50.10228, 8.69821),
    GeoPoint(50.10201, 8.69567),
    GeoPoint(50.10063, 8.69150),
    GeoPoint(50.09878, 8.68752),
]


def build_polyline(content: int, values: list[int]) -> str:
    """Encode a raw header plus signed deltas."""
    out: list[str] = []
    _write_unsigned(1, out)
    _write_unsigned(content, out)
    for v in values:
        _write_signed(v, out)
    return "".join(out)


class TestDecode:
    """Tests for decode()."""

    def test_sample_first_point(self):
        """The sample decodes to a non-empty list starting in Frankfurt."""
        points = decode(SAMPLE)
        assert points
        assert points[0].lat == pytest.approx(50.10228)
        assert points[0].lng == pytest.approx(8.69821)
        assert -90 <= points[0].lat <= 90

    def test_sample_all_points(self):
        """Every sample point is recovered."""
        points = decode(SAMPLE)
        assert len(points) == len(SAMPLE_POINTS)
        for got, want in zip(points, SAMPLE_POINTS):
            assert got.lat == pytest.approx(want.lat, abs=1e-5)
            assert got.lng == pytest.approx(want.lng, abs=1e-5)

    def test_truncated_sample_raises(self):
        """Dropping the last two characters leaves a latitude without longitude."""
        with pytest.raises(DecodeError):
            decode(SAMPLE[:-2])

    def test_truncated_mid_varint_raises(self):
        """Ending on a continuation symbol is an error."""
        with pytest.raises(DecodeError):
            decode(SAMPLE[:4])

    def test_invalid_character_raises(self):
        """Symbols outside the URL-safe alphabet are rejected."""
        with pytest.raises(DecodeError, match="Invalid character"):
            decode("BFoz5x*J67i1B")

    def test_unsupported_version_raises(self):
        """Only format version 1 is understood."""
        with pytest.raises(DecodeError, match="version"):
            decode("CFoz5xJ67i1B")

    def test_empty_string_raises(self):
        """An empty string has no header."""
        with pytest.raises(DecodeError):
            decode("")

    def test_header_only_is_empty(self):
        """A header with no body decodes to no points."""
        assert decode("BF") == []

    def test_out_of_range_coordinate_raises(self):
        """A latitude beyond 90 degrees becomes a DecodeError."""
        encoded = build_polyline(5, [9_500_000, 0])
        with pytest.raises(DecodeError, match="Invalid coordinate"):
            decode(encoded)


class TestHeader:
    """Tests for header parsing and the third dimension."""

    def test_sample_header(self):
        """The sample declares version 1, precision 5 and no third dim."""
        header = decode_header(SAMPLE)
        assert header.version == 1
        assert header.precision == 5
        assert not header.has_third_dim

    def test_third_dimension_header(self):
        """Precision, third-dim type and third-dim precision come from their bit fields."""
        content = 6 | (2 << 4) | (3 << 7)
        header = decode_header(build_polyline(content, []))
        assert header.precision == 6
        assert header.third_dim == 2
        assert header.third_dim_precision == 3

    def test_third_dimension_skipped(self):
        """3D streams decode to 2D points with the z value dropped."""
        content = 5 | (2 << 4)
        encoded = build_polyline(content, [3_400_000, -11_800_000, 150, 100, 100, -20])
        points = decode(encoded)
        assert points == [GeoPoint(34.0, -118.0), GeoPoint(34.001, -117.999)]

    def test_third_dimension_missing_raises(self):
        """A 3D stream ending before its z value is truncated."""
        content = 5 | (2 << 4)
        encoded = build_polyline(content, [3_400_000, -11_800_000])
        with pytest.raises(DecodeError, match="third dimension"):
            decode(encoded)


class TestEncode:
    """Tests for encode()."""

    def test_encodes_sample(self):
        """Encoding the sample points reproduces the sample string."""
        assert encode(SAMPLE_POINTS) == SAMPLE

    def test_round_trip_within_precision(self):
        """Decoded points are within 10^-precision of the originals."""
        original = [
            GeoPoint(34.052235, -118.243683),
            GeoPoint(-33.868820, 151.209296),
            GeoPoint(0.0, 0.0),
            GeoPoint(89.999999, -179.999999),
        ]
        for precision in (5, 6):
            decoded = decode(encode(original, precision=precision))
            assert decode_header(encode(original, precision=precision)).precision == precision
            for got, want in zip(decoded, original):
                assert abs(got.lat - want.lat) <= 10**-precision
                assert abs(got.lng - want.lng) <= 10**-precision

    def test_empty_points(self):
        """No points encodes to a header only."""
        assert decode(encode([])) == []

    def test_invalid_precision(self):
        """Precision must fit in four bits."""
        with pytest.raises(ValueError):
            encode(SAMPLE_POINTS, precision=16)
