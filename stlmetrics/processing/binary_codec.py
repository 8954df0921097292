"""Binary STL encoder/decoder.

Layout (little-endian)::

    0        80 bytes   header text, NUL padded
    80       uint32     triangle count
    84+50*i  12 x f32   normal xyz, vertex1 xyz, vertex2 xyz, vertex3 xyz
             2 bytes    attribute (opaque)

The codec works on in-memory bytes only; file access lives in
:mod:`stlmetrics.processing.mesh_loader`.
"""

import struct
import time
from typing import List, Optional

import numpy as np
import structlog

from stlmetrics.core.cancellation import CancellationToken, check_cancelled
from stlmetrics.core.config import CodecConfig
from stlmetrics.core.exceptions import FormatError
from stlmetrics.geometry.triangle import Triangle
from stlmetrics.geometry.vector import Vector3
from stlmetrics.model.mesh import MeshModel

logger = structlog.get_logger(__name__)

HEADER_SIZE = 80
COUNT_SIZE = 4
RECORD_SIZE = 50
MIN_SIZE = HEADER_SIZE + COUNT_SIZE
MAX_TRIANGLES = 10_000_000
DEFAULT_HEADER = "Binary STL"

RECORD_DTYPE = np.dtype(
    [
        ("normal", "<f4", (3,)),
        ("vertices", "<f4", (3, 3)),
        ("attribute", "V2"),
    ]
)


def _read_count(data: bytes) -> int:
    return struct.unpack_from("<I", data, HEADER_SIZE)[0]


def _decode_header(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace").replace("\x00", "").strip()


def decode(
    data: bytes,
    filename: str = "",
    cancel_token: Optional[CancellationToken] = None,
    config: Optional[CodecConfig] = None,
) -> MeshModel:
    """Decode a binary STL payload into a mesh.

    Decoding is all-or-nothing: any structural problem or non-finite value
    raises before a model is built.

    Args:
        data: Complete file contents
        filename: Name recorded in the model metadata
        cancel_token: Checked once per triangle record
        config: Codec limits (defaults to :class:`CodecConfig`)

    Returns:
        MeshModel holding the triangles in file order and ``data`` as raw bytes

    Raises:
        FormatError: If the payload is too short, declares too many
            triangles, is truncated, or holds a non-finite value
        CancelledError: If ``cancel_token`` is cancelled mid-decode
    """
    config = config or CodecConfig()
    start = time.perf_counter()
    data = bytes(data)

    if len(data) < MIN_SIZE:
        raise FormatError(
            f"Data too short for binary STL: {len(data)} bytes (need at least {MIN_SIZE})",
            details={"length": len(data)},
        )

    count = _read_count(data)
    if count > config.max_triangles:
        raise FormatError(
            f"Triangle count {count:,} exceeds maximum of {config.max_triangles:,}",
            details={"triangle_count": count, "max_triangles": config.max_triangles},
        )

    expected = MIN_SIZE + RECORD_SIZE * count
    if len(data) < expected:
        raise FormatError(
            f"Truncated binary STL: {count:,} triangles need {expected:,} bytes, got {len(data):,}",
            details={"triangle_count": count, "expected": expected, "length": len(data)},
        )

    records = np.frombuffer(data, dtype=RECORD_DTYPE, count=count, offset=MIN_SIZE)
    normals = records["normal"].astype(np.float64)
    vertices = records["vertices"].astype(np.float64)

    finite = np.isfinite(normals).all(axis=1) & np.isfinite(vertices).all(axis=(1, 2))
    if not finite.all():
        index = int(np.argmin(finite)) + 1
        raise FormatError(
            f"Triangle {index} contains a non-finite coordinate",
            triangle_index=index,
        )

    triangles: List[Triangle] = []
    repaired = 0
    attributes = records["attribute"]
    for i, (normal_xyz, corners) in enumerate(zip(normals.tolist(), vertices.tolist())):
        check_cancelled(cancel_token, "Binary STL decode")

        v1 = Vector3(*corners[0])
        v2 = Vector3(*corners[1])
        v3 = Vector3(*corners[2])
        normal = Vector3(*normal_xyz)
        if normal.length < config.normal_epsilon:
            normal = Triangle.calculate_normal(v1, v2, v3).to_float32()
            repaired += 1

        triangles.append(Triangle(v1, v2, v3, normal, attributes[i].tobytes()))

    header = _decode_header(data[:HEADER_SIZE])
    mesh = MeshModel.from_triangles(filename, triangles, raw_data=data, header=header)

    logger.info(
        "binary_stl_decoded",
        filename=filename,
        triangles=count,
        repaired_normals=repaired,
        degenerate=mesh.metadata.degenerate_triangle_count,
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return mesh


def encode(
    mesh: MeshModel,
    cancel_token: Optional[CancellationToken] = None,
    config: Optional[CodecConfig] = None,
) -> bytes:
    """Encode a mesh as binary STL.

    The header is the model's filename (or the default header), truncated
    to 79 bytes and NUL padded. Attribute bytes are written as zero.

    Args:
        mesh: Mesh to serialize
        cancel_token: Checked once per triangle
        config: Codec settings (defaults to :class:`CodecConfig`)

    Returns:
        Encoded bytes, exactly ``84 + 50 * triangle_count`` long

    Raises:
        FormatError: If the mesh has more triangles than the format allows
        CancelledError: If ``cancel_token`` is cancelled mid-encode
    """
    config = config or CodecConfig()
    count = mesh.triangle_count
    if count > config.max_triangles:
        raise FormatError(
            f"Cannot encode {count:,} triangles (maximum {config.max_triangles:,})",
            details={"triangle_count": count},
        )

    header_text = mesh.metadata.filename or config.default_header
    header = header_text.encode("utf-8")[: HEADER_SIZE - 1].ljust(HEADER_SIZE, b"\x00")

    records = np.zeros(count, dtype=RECORD_DTYPE)
    for i, triangle in enumerate(mesh.triangles):
        check_cancelled(cancel_token, "Binary STL encode")
        records["normal"][i] = triangle.normal.to_tuple()
        records["vertices"][i] = (
            triangle.vertex1.to_tuple(),
            triangle.vertex2.to_tuple(),
            triangle.vertex3.to_tuple(),
        )

    return header + struct.pack("<I", count) + records.tobytes()


def peek_triangle_count(data: bytes) -> Optional[int]:
    """Declared triangle count, or None if the payload is too short."""
    if data is None or len(data) < MIN_SIZE:
        return None
    return _read_count(data)


def extract_header(data: bytes) -> Optional[str]:
    """Trimmed header text, or None if the payload is too short."""
    if data is None or len(data) < HEADER_SIZE:
        return None
    return _decode_header(bytes(data[:HEADER_SIZE]))


def is_valid_binary_stl(data: bytes) -> bool:
    """Cheap structural check: count in 1..MAX_TRIANGLES and enough bytes."""
    count = peek_triangle_count(data)
    if count is None or count < 1 or count > MAX_TRIANGLES:
        return False
    return len(data) >= MIN_SIZE + RECORD_SIZE * count
