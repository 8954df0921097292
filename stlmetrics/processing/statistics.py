"""Mesh-quality statistics."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class MeshStatistics:
    """Counts, area and edge statistics for one mesh.

    Area and edge figures only cover valid, non-degenerate triangles. Minimum
    and maximum values are 0.0 when no such triangle exists.

    Attributes:
        total_triangles: Triangles in the mesh
        valid_triangles: Triangles with finite vertices and normal
        invalid_triangles: total - valid
        degenerate_triangles: Valid triangles with |e1 x e2| below threshold
        total_surface_area: Sum of non-degenerate triangle areas
        bounding_box_volume: Volume of the axis-aligned bounding box
        quality_score: valid_ratio - 0.5 * degenerate_ratio (0.0 when empty)
    """

    total_triangles: int = 0
    valid_triangles: int = 0
    invalid_triangles: int = 0
    degenerate_triangles: int = 0
    total_surface_area: float = 0.0
    min_triangle_area: float = 0.0
    max_triangle_area: float = 0.0
    average_triangle_area: float = 0.0
    min_edge_length: float = 0.0
    max_edge_length: float = 0.0
    average_edge_length: float = 0.0
    edge_count: int = 0
    bounding_box_volume: float = 0.0
    quality_score: float = 0.0

    @property
    def valid_ratio(self) -> float:
        return self.valid_triangles / self.total_triangles if self.total_triangles else 0.0

    @property
    def degenerate_ratio(self) -> float:
        return self.degenerate_triangles / self.total_triangles if self.total_triangles else 0.0

    @property
    def summary(self) -> str:
        return (
            f"{self.total_triangles:,} triangles "
            f"({self.valid_triangles:,} valid, {self.invalid_triangles:,} invalid, "
            f"{self.degenerate_triangles:,} degenerate), "
            f"area {self.total_surface_area:.3f}, quality {self.quality_score:.2f}"
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["valid_ratio"] = self.valid_ratio
        data["degenerate_ratio"] = self.degenerate_ratio
        return data
