"""Immutable 3D vector used throughout the mesh model and measurement engine."""

import math
from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

from stlmetrics.geometry.tolerance import EPSILON, is_finite, to_float32


@dataclass(frozen=True)
class Vector3:
    """A point or direction in 3D space.

    Components are stored as Python floats and arithmetic runs in double
    precision. The binary STL writer narrows them to float32; use
    :meth:`to_float32` to see exactly what would be stored.
    """

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    # Construction

    @classmethod
    def zero(cls) -> "Vector3":
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def one(cls) -> "Vector3":
        return cls(1.0, 1.0, 1.0)

    @classmethod
    def from_iterable(cls, values: Iterable[float]) -> "Vector3":
        """Build a vector from any 3-element iterable (tuple, list, numpy row).

        Raises:
            ValueError: If the iterable does not hold exactly three values
        """
        items = [float(v) for v in values]
        if len(items) != 3:
            raise ValueError(f"Vector3 needs exactly 3 components, got {len(items)}")
        return cls(items[0], items[1], items[2])

    # Arithmetic

    def __add__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __neg__(self) -> "Vector3":
        return Vector3(-self.x, -self.y, -self.z)

    def __mul__(self, scalar: float) -> "Vector3":
        return Vector3(self.x * scalar, self.y * scalar, self.z * scalar)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> "Vector3":
        return Vector3(self.x / scalar, self.y / scalar, self.z / scalar)

    def __iter__(self) -> Iterator[float]:
        yield self.x
        yield self.y
        yield self.z

    def __getitem__(self, index: int) -> float:
        return (self.x, self.y, self.z)[index]

    def __len__(self) -> int:
        return 3

    def dot(self, other: "Vector3") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: "Vector3") -> "Vector3":
        return Vector3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def scale(self, factor: float) -> "Vector3":
        return self * factor

    @property
    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y + self.z * self.z

    @property
    def length(self) -> float:
        return math.sqrt(self.length_squared)

    def normalized(self) -> "Vector3":
        """Unit vector in the same direction, or the zero vector if length is 0."""
        length = self.length
        if length > 0:
            return self / length
        return Vector3.zero()

    def distance_to(self, other: "Vector3") -> float:
        return (self - other).length

    def distance_squared_to(self, other: "Vector3") -> float:
        return (self - other).length_squared

    def lerp(self, other: "Vector3", t: float) -> "Vector3":
        return self + (other - self) * t

    def min(self, other: "Vector3") -> "Vector3":
        return Vector3(min(self.x, other.x), min(self.y, other.y), min(self.z, other.z))

    def max(self, other: "Vector3") -> "Vector3":
        return Vector3(max(self.x, other.x), max(self.y, other.y), max(self.z, other.z))

    # Validation and ordering

    @property
    def is_finite(self) -> bool:
        return is_finite(self.x, self.y, self.z)

    def is_close(self, other: "Vector3", eps: float = EPSILON) -> bool:
        return (
            abs(self.x - other.x) <= eps
            and abs(self.y - other.y) <= eps
            and abs(self.z - other.z) <= eps
        )

    def compare(self, other: "Vector3", eps: float = EPSILON) -> int:
        """Lexicographic three-way comparison with epsilon-aware equality.

        Components are compared x, then y, then z; two components within
        ``eps`` of each other count as equal and the next component decides.

        Returns:
            -1, 0 or 1
        """
        for a, b in ((self.x, other.x), (self.y, other.y), (self.z, other.z)):
            if abs(a - b) <= eps:
                continue
            return -1 if a < b else 1
        return 0

    # Conversion

    def to_float32(self) -> "Vector3":
        return Vector3(to_float32(self.x), to_float32(self.y), to_float32(self.z))

    def to_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def to_list(self) -> list[float]:
        return [self.x, self.y, self.z]

    def __str__(self) -> str:
        return f"({self.x:g}, {self.y:g}, {self.z:g})"
