"""Triangle value type: the unit record of an STL mesh."""

from dataclasses import dataclass, field
from typing import Tuple

from stlmetrics.geometry.bounding_box import BoundingBox
from stlmetrics.geometry.tolerance import DEGENERATE_THRESHOLD
from stlmetrics.geometry.vector import Vector3

NO_ATTRIBUTE = b"\x00\x00"


@dataclass(frozen=True)
class Triangle:
    """One mesh facet: three vertices plus the stored facet normal.

    ``attribute`` holds the two opaque attribute bytes read from a binary STL
    record. They are carried along untouched and never interpreted.
    """

    vertex1: Vector3
    vertex2: Vector3
    vertex3: Vector3
    normal: Vector3 = field(default_factory=Vector3.zero)
    attribute: bytes = field(default=NO_ATTRIBUTE, compare=False, repr=False)

    @classmethod
    def create(cls, vertex1: Vector3, vertex2: Vector3, vertex3: Vector3) -> "Triangle":
        """Build a triangle whose normal follows the right-hand rule."""
        return cls(vertex1, vertex2, vertex3, cls.calculate_normal(vertex1, vertex2, vertex3))

    @staticmethod
    def calculate_normal(vertex1: Vector3, vertex2: Vector3, vertex3: Vector3) -> Vector3:
        """Unit normal of (v2 - v1) x (v3 - v1); zero vector for degenerate input."""
        return (vertex2 - vertex1).cross(vertex3 - vertex1).normalized()

    @property
    def vertices(self) -> Tuple[Vector3, Vector3, Vector3]:
        return (self.vertex1, self.vertex2, self.vertex3)

    @property
    def edges(self) -> Tuple[Vector3, Vector3, Vector3]:
        """Edge vectors v1->v2, v2->v3, v3->v1."""
        return (
            self.vertex2 - self.vertex1,
            self.vertex3 - self.vertex2,
            self.vertex1 - self.vertex3,
        )

    @property
    def edge_lengths(self) -> Tuple[float, float, float]:
        return (
            self.vertex1.distance_to(self.vertex2),
            self.vertex2.distance_to(self.vertex3),
            self.vertex3.distance_to(self.vertex1),
        )

    @property
    def cross_magnitude(self) -> float:
        """|(v2 - v1) x (v3 - v1)|, i.e. twice the area."""
        return (self.vertex2 - self.vertex1).cross(self.vertex3 - self.vertex1).length

    @property
    def area(self) -> float:
        return 0.5 * self.cross_magnitude

    @property
    def perimeter(self) -> float:
        return sum(self.edge_lengths)

    @property
    def centroid(self) -> Vector3:
        return (self.vertex1 + self.vertex2 + self.vertex3) / 3.0

    @property
    def bounding_box(self) -> BoundingBox:
        return BoundingBox(
            self.vertex1.min(self.vertex2).min(self.vertex3),
            self.vertex1.max(self.vertex2).max(self.vertex3),
        )

    @property
    def is_degenerate(self) -> bool:
        """Collinear or coincident vertices (cross magnitude below threshold)."""
        return self.cross_magnitude < DEGENERATE_THRESHOLD

    @property
    def is_valid(self) -> bool:
        """All vertices and the normal are finite.

        Degenerate triangles are still valid; callers that need a usable area
        check :attr:`is_degenerate` separately.
        """
        return (
            self.vertex1.is_finite
            and self.vertex2.is_finite
            and self.vertex3.is_finite
            and self.normal.is_finite
        )

    def signed_volume(self) -> float:
        """Signed volume of the tetrahedron (origin, v1, v2, v3)."""
        return self.vertex1.dot(self.vertex2.cross(self.vertex3)) / 6.0

    def contains(self, point: Vector3) -> bool:
        """Barycentric inside test for a point lying in the triangle's plane."""
        v0 = self.vertex3 - self.vertex1
        v1 = self.vertex2 - self.vertex1
        v2 = point - self.vertex1

        dot00 = v0.dot(v0)
        dot01 = v0.dot(v1)
        dot02 = v0.dot(v2)
        dot11 = v1.dot(v1)
        dot12 = v1.dot(v2)

        denom = dot00 * dot11 - dot01 * dot01
        if abs(denom) < 1e-12:
            return False

        u = (dot11 * dot02 - dot01 * dot12) / denom
        v = (dot00 * dot12 - dot01 * dot02) / denom
        return u >= 0.0 and v >= 0.0 and u + v <= 1.0

    def closest_point(self, point: Vector3) -> Vector3:
        """Nearest point on the triangle (interior, edge or vertex) to ``point``.

        Classifies ``point`` against the Voronoi regions of the vertices and
        edges; falls through to the orthogonal projection onto the face.
        Degenerate triangles collapse to the closest point on their edges.
        """
        a, b, c = self.vertex1, self.vertex2, self.vertex3
        ab = b - a
        ac = c - a
        ap = point - a

        d1 = ab.dot(ap)
        d2 = ac.dot(ap)
        if d1 <= 0.0 and d2 <= 0.0:
            return a

        bp = point - b
        d3 = ab.dot(bp)
        d4 = ac.dot(bp)
        if d3 >= 0.0 and d4 <= d3:
            return b

        vc = d1 * d4 - d3 * d2
        if vc <= 0.0 and d1 >= 0.0 and d3 <= 0.0:
            return a + ab * (d1 / (d1 - d3))

        cp = point - c
        d5 = ab.dot(cp)
        d6 = ac.dot(cp)
        if d6 >= 0.0 and d5 <= d6:
            return c

        vb = d5 * d2 - d1 * d6
        if vb <= 0.0 and d2 >= 0.0 and d6 <= 0.0:
            return a + ac * (d2 / (d2 - d6))

        va = d3 * d6 - d5 * d4
        if va <= 0.0 and (d4 - d3) >= 0.0 and (d5 - d6) >= 0.0:
            return b + (c - b) * ((d4 - d3) / ((d4 - d3) + (d5 - d6)))

        denom = va + vb + vc
        if denom == 0.0:
            return self._closest_point_on_edges(point)
        v = vb / denom
        w = vc / denom
        return a + ab * v + ac * w

    def _closest_point_on_edges(self, point: Vector3) -> Vector3:
        candidates = (
            _closest_point_on_segment(point, self.vertex1, self.vertex2),
            _closest_point_on_segment(point, self.vertex2, self.vertex3),
            _closest_point_on_segment(point, self.vertex3, self.vertex1),
        )
        return min(candidates, key=point.distance_squared_to)

    def to_float32(self) -> "Triangle":
        return Triangle(
            self.vertex1.to_float32(),
            self.vertex2.to_float32(),
            self.vertex3.to_float32(),
            self.normal.to_float32(),
            self.attribute,
        )

    def __str__(self) -> str:
        return (
            f"Triangle[v1: {self.vertex1}, v2: {self.vertex2}, v3: {self.vertex3}, "
            f"normal: {self.normal}, area: {self.area:.3f}]"
        )


def _closest_point_on_segment(point: Vector3, start: Vector3, end: Vector3) -> Vector3:
    segment = end - start
    length_sq = segment.length_squared
    if length_sq == 0.0:
        return start
    t = (point - start).dot(segment) / length_sq
    t = max(0.0, min(1.0, t))
    return start + segment * t
