"""Immutable triangle-mesh aggregate produced by the codec and generators."""

import hashlib
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Iterator, Optional, Tuple

import numpy as np

from stlmetrics.geometry.bounding_box import BoundingBox
from stlmetrics.geometry.triangle import Triangle
from stlmetrics.geometry.vector import Vector3
from stlmetrics.model.metadata import ModelMetadata, StlFormat


@dataclass(frozen=True, eq=False)
class MeshModel:
    """An ordered triangle soup plus its metadata and source bytes.

    Triangle order is the file order and is preserved through encode/decode.
    Instances are never mutated after construction; derived copies are made
    with :meth:`with_metadata`.
    """

    metadata: ModelMetadata
    triangles: Tuple[Triangle, ...] = ()
    raw_data: bytes = b""
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __post_init__(self) -> None:
        if not isinstance(self.triangles, tuple):
            object.__setattr__(self, "triangles", tuple(self.triangles))
        if self.metadata.triangle_count != len(self.triangles):
            raise ValueError(
                f"Metadata declares {self.metadata.triangle_count} triangles "
                f"but the model holds {len(self.triangles)}"
            )

    @classmethod
    def from_triangles(
        cls,
        filename: str,
        triangles: Iterable[Triangle],
        raw_data: bytes = b"",
        header: str = "",
        format: StlFormat = StlFormat.BINARY,
        **metadata_fields: Any,
    ) -> "MeshModel":
        """Build a model and derive its metadata from the triangles.

        Computes bounding box, surface area, degenerate count, edge-length
        statistics and a SHA-256 content hash of ``raw_data``.

        Args:
            filename: Name recorded in the metadata
            triangles: Triangles in file order
            raw_data: Source bytes the triangles were decoded from
            header: Trimmed header text
            format: Source format tag
            **metadata_fields: Extra ModelMetadata fields (e.g. last_modified)

        Returns:
            MeshModel instance
        """
        triangle_list = tuple(triangles)

        surface_area = 0.0
        degenerate_count = 0
        edge_min: Optional[float] = None
        edge_max: Optional[float] = None
        edge_total = 0.0
        edge_count = 0

        for triangle in triangle_list:
            if not triangle.is_valid:
                continue
            if triangle.is_degenerate:
                degenerate_count += 1
            else:
                surface_area += triangle.area
            for length in triangle.edge_lengths:
                if length <= 0.0:
                    continue
                edge_min = length if edge_min is None else min(edge_min, length)
                edge_max = length if edge_max is None else max(edge_max, length)
                edge_total += length
                edge_count += 1

        finite_vertices = [
            v for t in triangle_list for v in t.vertices if v.is_finite
        ]
        bounding_box = (
            BoundingBox.from_points(finite_vertices) if finite_vertices else BoundingBox.empty()
        )

        metadata = ModelMetadata(
            filename=filename,
            format=format,
            file_size_bytes=len(raw_data),
            triangle_count=len(triangle_list),
            surface_area=surface_area,
            bounding_box=bounding_box,
            header=header,
            content_hash=hashlib.sha256(raw_data).hexdigest() if raw_data else None,
            min_edge_length=edge_min,
            max_edge_length=edge_max,
            average_edge_length=edge_total / edge_count if edge_count else None,
            degenerate_triangle_count=degenerate_count,
            **metadata_fields,
        )
        return cls(metadata=metadata, triangles=triangle_list, raw_data=raw_data)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    @property
    def bounding_box(self) -> BoundingBox:
        return self.metadata.bounding_box

    @property
    def center(self) -> Vector3:
        return self.bounding_box.center

    @property
    def dimensions(self) -> Vector3:
        return self.bounding_box.size

    @property
    def surface_area(self) -> float:
        return self.metadata.surface_area

    @property
    def is_empty(self) -> bool:
        return not self.triangles

    @property
    def is_valid(self) -> bool:
        """Non-empty and every triangle has finite coordinates."""
        return bool(self.triangles) and all(t.is_valid for t in self.triangles)

    def __len__(self) -> int:
        return len(self.triangles)

    def __iter__(self) -> Iterator[Triangle]:
        return iter(self.triangles)

    def vertices(self) -> Iterator[Vector3]:
        """All triangle corners in file order (duplicates included)."""
        for triangle in self.triangles:
            yield triangle.vertex1
            yield triangle.vertex2
            yield triangle.vertex3

    def with_metadata(self, **changes: Any) -> "MeshModel":
        """Copy of the model with updated metadata; triangles are shared."""
        return replace(self, metadata=replace(self.metadata, **changes))

    def to_numpy(self) -> np.ndarray:
        """Vertex coordinates as a float64 array of shape (n, 3, 3)."""
        if not self.triangles:
            return np.zeros((0, 3, 3), dtype=np.float64)
        return np.array(
            [[t.vertex1.to_tuple(), t.vertex2.to_tuple(), t.vertex3.to_tuple()] for t in self.triangles],
            dtype=np.float64,
        )

    def to_trimesh(self, process: bool = False):
        """Convert to a ``trimesh.Trimesh`` (one vertex per triangle corner).

        Args:
            process: Let trimesh merge duplicate vertices

        Returns:
            trimesh.Trimesh instance
        """
        import trimesh

        vertices = self.to_numpy().reshape((-1, 3))
        faces = np.arange(len(vertices), dtype=np.int64).reshape((-1, 3))
        return trimesh.Trimesh(vertices=vertices, faces=faces, process=process)

    def __repr__(self) -> str:
        return (
            f"MeshModel[{self.metadata.filename or '<unnamed>'}, "
            f"{self.triangle_count} triangles, {self.metadata.format.value}]"
        )
