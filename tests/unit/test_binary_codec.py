"""Unit tests for the binary STL codec."""

import math
import struct
from unittest.mock import patch

import pytest

from stlmetrics.core import CancellationToken
from stlmetrics.core.config import CodecConfig
from stlmetrics.core.exceptions import CancelledError, FormatError
from stlmetrics.geometry import Triangle, Vector3
from stlmetrics.model import MeshModel
from stlmetrics.processing import binary_codec
from stlmetrics.processing.binary_codec import (
    MAX_TRIANGLES,
    decode,
    encode,
    extract_header,
    is_valid_binary_stl,
    peek_triangle_count,
)


class TestDecode:
    """Test decoding binary STL payloads."""

    def test_decode_single_triangle(self, make_record, make_stl):
        """Test decoding one well-formed record."""
        mesh = decode(make_stl([make_record()]), filename="tri.stl")

        assert mesh.triangle_count == 1
        triangle = mesh.triangles[0]
        assert triangle.vertex1 == Vector3(0.0, 0.0, 0.0)
        assert triangle.vertex2 == Vector3(1.0, 0.0, 0.0)
        assert triangle.vertex3 == Vector3(0.0, 1.0, 0.0)
        assert triangle.normal == Vector3(0.0, 0.0, 1.0)
        assert mesh.metadata.filename == "tri.stl"
        assert mesh.metadata.header == "test"

    def test_decode_keeps_file_order(self, make_record, make_stl):
        """Test that triangles come back in record order."""
        records = [
            make_record(v1=(float(i), 0.0, 0.0), v2=(i + 1.0, 0.0, 0.0), v3=(float(i), 1.0, 0.0))
            for i in range(5)
        ]
        mesh = decode(make_stl(records))

        assert [t.vertex1.x for t in mesh.triangles] == [0.0, 1.0, 2.0, 3.0, 4.0]

    def test_decode_zero_triangles(self, make_stl):
        """Test that a header-only payload decodes to an empty mesh."""
        mesh = decode(make_stl([]))

        assert mesh.triangle_count == 0
        assert mesh.is_empty

    def test_decode_metadata(self, unit_cube_bytes: bytes):
        """Test derived metadata on a decoded cube."""
        mesh = decode(unit_cube_bytes, filename="cube.stl")

        assert mesh.raw_data == unit_cube_bytes
        assert mesh.metadata.file_size_bytes == len(unit_cube_bytes)
        assert mesh.metadata.content_hash is not None
        assert mesh.surface_area == pytest.approx(6.0)
        assert mesh.dimensions.to_tuple() == pytest.approx((1.0, 1.0, 1.0))

    def test_too_short(self):
        """Test that payloads under 84 bytes are rejected."""
        with pytest.raises(FormatError) as exc_info:
            decode(b"\x00" * 83)

        assert "too short" in str(exc_info.value)
        assert exc_info.value.triangle_index is None

    def test_count_over_maximum(self, make_stl):
        """Test that a declared count above the limit is rejected."""
        data = make_stl([], count=MAX_TRIANGLES + 1)

        with pytest.raises(FormatError) as exc_info:
            decode(data)

        assert "exceeds maximum" in str(exc_info.value)

    def test_count_over_configured_maximum(self, make_record, make_stl):
        """Test that the codec honours a lower configured limit."""
        data = make_stl([make_record(), make_record()])

        with pytest.raises(FormatError):
            decode(data, config=CodecConfig(max_triangles=1))

    def test_truncated(self, make_record, make_stl):
        """Test that a payload one byte short of its declared count is rejected."""
        data = make_stl([make_record() for _ in range(5)])[:-1]
        assert len(data) == 84 + 250 - 1

        with pytest.raises(FormatError) as exc_info:
            decode(data)

        assert "Truncated" in str(exc_info.value)

    def test_trailing_bytes_ignored(self, make_record, make_stl):
        """Test that bytes after the last record are ignored."""
        data = make_stl([make_record()]) + b"extra"

        assert decode(data).triangle_count == 1

    @pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
    def test_non_finite_vertex(self, make_record, make_stl, bad):
        """Test that non-finite coordinates fail with the 1-based record index."""
        records = [make_record(), make_record(), make_record(v2=(bad, 0.0, 0.0))]

        with pytest.raises(FormatError) as exc_info:
            decode(make_stl(records))

        assert exc_info.value.triangle_index == 3

    def test_non_finite_normal(self, make_record, make_stl):
        """Test that a non-finite normal is rejected too."""
        records = [make_record(normal=(math.nan, 0.0, 0.0))]

        with pytest.raises(FormatError) as exc_info:
            decode(make_stl(records))

        assert exc_info.value.triangle_index == 1

    def test_zero_normal_repaired(self, make_record, make_stl):
        """Test that a zero normal is recomputed from the vertices."""
        mesh = decode(make_stl([make_record(normal=(0.0, 0.0, 0.0))]))

        normal = mesh.triangles[0].normal
        assert normal.length == pytest.approx(1.0)
        assert normal.to_tuple() == pytest.approx((0.0, 0.0, 1.0))

    def test_stored_normal_kept(self, make_record, make_stl):
        """Test that a non-zero stored normal is not recomputed."""
        mesh = decode(make_stl([make_record(normal=(0.0, 0.0, -1.0))]))

        assert mesh.triangles[0].normal == Vector3(0.0, 0.0, -1.0)

    def test_degenerate_accepted(self, make_record, make_stl):
        """Test that degenerate triangles decode and are counted."""
        records = [
            make_record(),
            make_record(normal=(0.0, 0.0, 0.0), v1=(1.0, 1.0, 1.0), v2=(1.0, 1.0, 1.0), v3=(1.0, 1.0, 1.0)),
        ]
        mesh = decode(make_stl(records))

        assert mesh.triangle_count == 2
        assert mesh.metadata.degenerate_triangle_count == 1
        assert mesh.triangles[1].normal == Vector3(0.0, 0.0, 0.0)

    def test_attribute_preserved(self, make_record, make_stl):
        """Test that attribute bytes are carried through."""
        mesh = decode(make_stl([make_record(attribute=b"\xab\xcd")]))

        assert mesh.triangles[0].attribute == b"\xab\xcd"

    def test_header_trimmed(self, make_record, make_stl):
        """Test header NUL stripping and whitespace trimming."""
        mesh = decode(make_stl([make_record()], header=b"  my part  "))

        assert mesh.metadata.header == "my part"

    def test_cancellation(self, make_record, make_stl):
        """Test that a cancelled token stops decoding."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancelledError):
            decode(make_stl([make_record()]), cancel_token=token)

    def test_decode_logs_event(self, make_record, make_stl):
        """Test that decoding logs a summary event."""
        with patch.object(binary_codec.logger, "info") as mock_info:
            decode(make_stl([make_record(normal=(0.0, 0.0, 0.0))]), filename="a.stl")

        mock_info.assert_called_once()
        assert mock_info.call_args[0][0] == "binary_stl_decoded"
        assert mock_info.call_args[1]["triangles"] == 1
        assert mock_info.call_args[1]["repaired_normals"] == 1


class TestEncode:
    """Test encoding meshes as binary STL."""

    def test_encode_layout(self, unit_cube_mesh: MeshModel):
        """Test encoded size, header and count."""
        data = encode(unit_cube_mesh)

        assert len(data) == 84 + 50 * 12
        assert data[:9] == b"unit_cube"
        assert data[9:80] == b"\x00" * 71
        assert struct.unpack_from("<I", data, 80)[0] == 12

    def test_encode_default_header(self, empty_mesh: MeshModel):
        """Test that an unnamed mesh gets the default header."""
        unnamed = MeshModel.from_triangles("", [])

        data = encode(unnamed)

        assert len(data) == 84
        assert extract_header(data) == "Binary STL"
        assert encode(empty_mesh)[:5] == b"empty"

    def test_encode_long_header_truncated(self):
        """Test that long filenames are cut to 79 bytes plus NUL."""
        mesh = MeshModel.from_triangles("x" * 200, [])

        data = encode(mesh)

        assert data[:79] == b"x" * 79
        assert data[79:80] == b"\x00"

    def test_encode_writes_zero_attributes(self):
        """Test that attribute bytes are written as zero."""
        triangle = Triangle.create(
            Vector3(0.0, 0.0, 0.0), Vector3(1.0, 0.0, 0.0), Vector3(0.0, 1.0, 0.0)
        )
        tagged = Triangle(triangle.vertex1, triangle.vertex2, triangle.vertex3, triangle.normal, b"\xff\xff")
        data = encode(MeshModel.from_triangles("tagged", [tagged]))

        assert data[-2:] == b"\x00\x00"

    def test_encode_record_values(self):
        """Test little-endian float32 record encoding."""
        triangle = Triangle(
            Vector3(1.0, 2.0, 3.0),
            Vector3(4.0, 5.0, 6.0),
            Vector3(7.0, 8.0, 10.0),
            Vector3(0.0, 0.0, 1.0),
        )
        data = encode(MeshModel.from_triangles("values", [triangle]))

        assert struct.unpack_from("<12f", data, 84) == (
            0.0, 0.0, 1.0, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0, 10.0,
        )

    def test_encode_too_many(self, unit_cube_mesh: MeshModel):
        """Test that oversized meshes are refused."""
        with pytest.raises(FormatError):
            encode(unit_cube_mesh, config=CodecConfig(max_triangles=5))

    def test_encode_cancellation(self, unit_cube_mesh: MeshModel):
        """Test that a cancelled token stops encoding."""
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancelledError):
            encode(unit_cube_mesh, cancel_token=token)

    def test_round_trip(self, unit_cube_mesh: MeshModel):
        """Test that float32 triangles survive encode then decode exactly."""
        decoded = decode(encode(unit_cube_mesh), filename="unit_cube")

        assert decoded.triangles == unit_cube_mesh.triangles
        assert encode(decoded) == encode(unit_cube_mesh)

    def test_round_trip_repaired_normal(self, make_record, make_stl):
        """Test that a repaired normal is stable across a second round trip."""
        first = decode(make_stl([make_record(normal=(0.0, 0.0, 0.0), v3=(0.3, 0.7, 0.1))]))
        second = decode(encode(first))

        assert second.triangles == first.triangles


class TestHeaderInspection:
    """Test the header checks that skip decoding."""

    def test_peek_triangle_count(self, unit_cube_bytes: bytes):
        """Test reading the declared count."""
        assert peek_triangle_count(unit_cube_bytes) == 12
        assert peek_triangle_count(unit_cube_bytes[:84]) == 12

    def test_peek_short(self):
        """Test that short payloads give None."""
        assert peek_triangle_count(b"\x00" * 83) is None
        assert peek_triangle_count(None) is None

    def test_extract_header(self, make_stl):
        """Test header extraction."""
        assert extract_header(make_stl([], header=b"hello\x00world")) == "helloworld"
        assert extract_header(b"\x00" * 80) == ""

    def test_extract_header_short(self):
        """Test that payloads under 80 bytes give None."""
        assert extract_header(b"\x00" * 79) is None

    def test_is_valid(self, unit_cube_bytes: bytes):
        """Test the structural validity check."""
        assert is_valid_binary_stl(unit_cube_bytes) is True

    @pytest.mark.parametrize(
        "count,extra",
        [
            (0, 0),
            (MAX_TRIANGLES + 1, 0),
            (2, 50),
        ],
    )
    def test_is_valid_rejects(self, make_record, make_stl, count, extra):
        """Test zero counts, oversized counts and short payloads."""
        records = [make_record()] * (extra // 50)
        assert is_valid_binary_stl(make_stl(records, count=count)) is False

    def test_is_valid_short(self):
        """Test that tiny payloads are not valid."""
        assert is_valid_binary_stl(b"") is False
