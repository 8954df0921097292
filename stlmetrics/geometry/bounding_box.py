"""Axis-aligned bounding box."""

from dataclasses import dataclass, field
from typing import Iterable

from stlmetrics.geometry.vector import Vector3


@dataclass(frozen=True)
class BoundingBox:
    """Axis-Aligned Bounding Box (AABB).

    Attributes:
        min: Minimum corner (x_min, y_min, z_min)
        max: Maximum corner (x_max, y_max, z_max)
    """

    min: Vector3 = field(default_factory=Vector3.zero)
    max: Vector3 = field(default_factory=Vector3.zero)

    @classmethod
    def empty(cls) -> "BoundingBox":
        """Degenerate box collapsed onto the origin."""
        return cls(Vector3.zero(), Vector3.zero())

    @classmethod
    def from_points(cls, points: Iterable[Vector3]) -> "BoundingBox":
        """Smallest box enclosing all points.

        Args:
            points: Points to enclose

        Returns:
            BoundingBox instance

        Raises:
            ValueError: If no points are given
        """
        iterator = iter(points)
        try:
            first = next(iterator)
        except StopIteration:
            raise ValueError("At least one point is required to build a bounding box")

        min_x, min_y, min_z = first.x, first.y, first.z
        max_x, max_y, max_z = first.x, first.y, first.z
        for p in iterator:
            if p.x < min_x:
                min_x = p.x
            elif p.x > max_x:
                max_x = p.x
            if p.y < min_y:
                min_y = p.y
            elif p.y > max_y:
                max_y = p.y
            if p.z < min_z:
                min_z = p.z
            elif p.z > max_z:
                max_z = p.z

        return cls(Vector3(min_x, min_y, min_z), Vector3(max_x, max_y, max_z))

    @classmethod
    def from_center_and_size(cls, center: Vector3, size: Vector3) -> "BoundingBox":
        half = size * 0.5
        return cls(center - half, center + half)

    @property
    def size(self) -> Vector3:
        """Box dimensions (width, height, depth)."""
        return self.max - self.min

    @property
    def center(self) -> Vector3:
        return (self.min + self.max) * 0.5

    @property
    def extents(self) -> Vector3:
        """Half-size in each dimension."""
        return self.size * 0.5

    @property
    def volume(self) -> float:
        size = self.size
        return size.x * size.y * size.z

    @property
    def surface_area(self) -> float:
        s = self.size
        return 2.0 * (s.x * s.y + s.y * s.z + s.z * s.x)

    @property
    def diagonal(self) -> float:
        return self.size.length

    @property
    def is_empty(self) -> bool:
        return self.min == self.max

    def contains(self, point: Vector3) -> bool:
        return (
            self.min.x <= point.x <= self.max.x
            and self.min.y <= point.y <= self.max.y
            and self.min.z <= point.z <= self.max.z
        )

    def contains_box(self, other: "BoundingBox") -> bool:
        return self.contains(other.min) and self.contains(other.max)

    def intersects(self, other: "BoundingBox") -> bool:
        return (
            self.min.x <= other.max.x and self.max.x >= other.min.x
            and self.min.y <= other.max.y and self.max.y >= other.min.y
            and self.min.z <= other.max.z and self.max.z >= other.min.z
        )

    def expand(self, margin: float) -> "BoundingBox":
        """Return a box grown by ``margin`` on every side."""
        delta = Vector3(margin, margin, margin)
        return BoundingBox(self.min - delta, self.max + delta)

    def expand_to(self, point: Vector3) -> "BoundingBox":
        return BoundingBox(self.min.min(point), self.max.max(point))

    def union(self, other: "BoundingBox") -> "BoundingBox":
        if self.is_empty:
            return other
        if other.is_empty:
            return self
        return BoundingBox(self.min.min(other.min), self.max.max(other.max))

    def closest_point(self, point: Vector3) -> Vector3:
        return Vector3(
            min(max(point.x, self.min.x), self.max.x),
            min(max(point.y, self.min.y), self.max.y),
            min(max(point.z, self.min.z), self.max.z),
        )

    def distance_to(self, point: Vector3) -> float:
        """Distance from point to the box surface (0 if inside)."""
        return point.distance_to(self.closest_point(point))

    def scaled(self, factor: float) -> "BoundingBox":
        """Both corners multiplied by ``factor`` (unit conversion helper)."""
        return BoundingBox(self.min * factor, self.max * factor)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "min": self.min.to_list(),
            "max": self.max.to_list(),
            "size": self.size.to_list(),
            "center": self.center.to_list(),
            "volume": self.volume,
            "diagonal": self.diagonal,
        }

    def __str__(self) -> str:
        return f"[min: {self.min}, max: {self.max}, size: {self.size}]"
