"""Descriptive metadata attached to every mesh model."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Dict, Optional

from stlmetrics.geometry.bounding_box import BoundingBox
from stlmetrics.geometry.vector import Vector3


class StlFormat(str, Enum):
    """STL file format type."""

    BINARY = "binary"


class ModelQuality(IntEnum):
    """Coarse quality bucket derived from mesh metadata."""

    VERY_POOR = 0
    POOR = 1
    FAIR = 2
    GOOD = 3
    EXCELLENT = 4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ModelMetadata:
    """Metadata about a loaded or generated mesh.

    Attributes:
        filename: Original file name (also written as the binary header)
        format: Source format tag
        file_size_bytes: Size of the raw source bytes
        triangle_count: Number of triangles in the model
        surface_area: Sum of triangle areas
        bounding_box: Axis-aligned bounds of all vertices
        volume: Enclosed volume, when it has been measured
        header: Trimmed 80-byte header text from the source file
        content_hash: SHA-256 hex digest of the raw bytes
    """

    filename: str = ""
    format: StlFormat = StlFormat.BINARY
    file_size_bytes: int = 0
    triangle_count: int = 0
    surface_area: float = 0.0
    bounding_box: BoundingBox = field(default_factory=BoundingBox.empty)
    volume: Optional[float] = None
    loaded_at: datetime = field(default_factory=_utcnow)
    last_modified: Optional[datetime] = None
    header: str = ""
    content_hash: Optional[str] = None
    is_closed_mesh: Optional[bool] = None
    min_edge_length: Optional[float] = None
    max_edge_length: Optional[float] = None
    average_edge_length: Optional[float] = None
    degenerate_triangle_count: int = 0
    additional_properties: Dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def dimensions(self) -> Vector3:
        return self.bounding_box.size

    @property
    def file_size_formatted(self) -> str:
        """File size with a human-readable unit (bytes, KB, MB, ...)."""
        if self.file_size_bytes == 0:
            return "0 bytes"

        units = ["bytes", "KB", "MB", "GB", "TB"]
        size = float(self.file_size_bytes)
        unit_index = 0
        while size >= 1024 and unit_index < len(units) - 1:
            size /= 1024
            unit_index += 1

        return f"{size:.1f} {units[unit_index]}"

    @property
    def summary(self) -> str:
        dims = self.dimensions
        parts = [
            f"{self.triangle_count:,} triangles",
            f"{self.format.value} format",
            f"Size: {dims.x:.1f} x {dims.y:.1f} x {dims.z:.1f}",
        ]
        if self.volume is not None:
            parts.append(f"Volume: {self.volume:.2f}")
        return ", ".join(parts)

    @property
    def quality(self) -> ModelQuality:
        """Score the mesh out of 100 and bucket the result.

        Deductions: up to 50 for degenerate triangles (5 each), 20 for a
        known-open mesh, 10 for a minimum edge below 0.001 and 15 when the
        longest edge exceeds 100x the average edge.
        """
        score = 100

        if self.degenerate_triangle_count > 0:
            score -= min(50, self.degenerate_triangle_count * 5)

        if self.is_closed_mesh is False:
            score -= 20

        if self.min_edge_length is not None and self.min_edge_length < 0.001:
            score -= 10

        if (
            self.max_edge_length is not None
            and self.average_edge_length
            and self.max_edge_length / self.average_edge_length > 100
        ):
            score -= 15

        if score >= 90:
            return ModelQuality.EXCELLENT
        if score >= 70:
            return ModelQuality.GOOD
        if score >= 50:
            return ModelQuality.FAIR
        if score >= 30:
            return ModelQuality.POOR
        return ModelQuality.VERY_POOR

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "filename": self.filename,
            "format": self.format.value,
            "file_size_bytes": self.file_size_bytes,
            "triangle_count": self.triangle_count,
            "surface_area": self.surface_area,
            "volume": self.volume,
            "bounding_box": self.bounding_box.to_dict(),
            "loaded_at": self.loaded_at.isoformat(),
            "last_modified": self.last_modified.isoformat() if self.last_modified else None,
            "header": self.header,
            "content_hash": self.content_hash,
            "is_closed_mesh": self.is_closed_mesh,
            "min_edge_length": self.min_edge_length,
            "max_edge_length": self.max_edge_length,
            "average_edge_length": self.average_edge_length,
            "degenerate_triangle_count": self.degenerate_triangle_count,
            "quality": self.quality.name,
        }
