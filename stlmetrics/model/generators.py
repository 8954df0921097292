"""Procedural mesh generators (boxes, cubes, tetrahedra)."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence, Tuple, Type

from stlmetrics.geometry.triangle import Triangle
from stlmetrics.geometry.vector import Vector3
from stlmetrics.model.mesh import MeshModel

# Outward-facing (counter-clockwise) corner indices for the 12 triangles of a
# box. Corner i has x = i & 1, y = (i >> 1) & 1, z = (i >> 2) & 1.
_BOX_FACES: Dict[str, Tuple[Tuple[int, int, int], Tuple[int, int, int]]] = {
    "bottom": ((0, 3, 1), (0, 2, 3)),
    "top": ((4, 5, 7), (4, 7, 6)),
    "front": ((0, 1, 5), (0, 5, 4)),
    "back": ((2, 7, 3), (2, 6, 7)),
    "left": ((0, 6, 2), (0, 4, 6)),
    "right": ((1, 3, 7), (1, 7, 5)),
}

_TETRA_FACES = ((0, 2, 1), (0, 1, 3), (0, 3, 2), (1, 2, 3))


def _build_triangles(corners: Sequence[Vector3], faces: Sequence[Tuple[int, int, int]]) -> List[Triangle]:
    triangles = []
    for i, j, k in faces:
        triangles.append(Triangle.create(corners[i], corners[j], corners[k]).to_float32())
    return triangles


class MeshGenerator(ABC):
    """Base class for procedural mesh generators."""

    name: str = ""
    description: str = ""

    def generate(self, filename: str = "") -> MeshModel:
        """Generate the mesh.

        Args:
            filename: Filename recorded in the metadata (defaults to the generator name)

        Returns:
            MeshModel instance
        """
        return MeshModel.from_triangles(filename or self.name, self._triangles())

    @abstractmethod
    def _triangles(self) -> List[Triangle]:
        """Return the triangles in output order."""
        pass


class BoxGenerator(MeshGenerator):
    """Axis-aligned box, optionally with some faces left out."""

    name = "box"
    description = "Axis-aligned box made of 12 triangles"

    def __init__(
        self,
        size: Tuple[float, float, float] = (1.0, 1.0, 1.0),
        origin: Tuple[float, float, float] = (0.0, 0.0, 0.0),
        omit_faces: Sequence[str] = (),
    ):
        unknown = set(omit_faces) - set(_BOX_FACES)
        if unknown:
            raise ValueError(f"Unknown box faces: {', '.join(sorted(unknown))}")
        if any(s <= 0 for s in size):
            raise ValueError("Box size must be positive in every dimension")
        self.size = size
        self.origin = origin
        self.omit_faces = tuple(omit_faces)

    def _corners(self) -> List[Vector3]:
        ox, oy, oz = self.origin
        sx, sy, sz = self.size
        return [
            Vector3(ox + sx * (i & 1), oy + sy * ((i >> 1) & 1), oz + sz * ((i >> 2) & 1))
            for i in range(8)
        ]

    def _triangles(self) -> List[Triangle]:
        faces = [
            tri
            for face_name, pair in _BOX_FACES.items()
            if face_name not in self.omit_faces
            for tri in pair
        ]
        return _build_triangles(self._corners(), faces)


class CubeGenerator(BoxGenerator):
    """Cube of edge length ``size`` with one corner at ``origin``."""

    name = "cube"
    description = "Unit cube (or scaled cube) made of 12 triangles"

    def __init__(
        self,
        size: float = 1.0,
        origin: Tuple[float, float, float] = (0.0, 0.0, 0.0),
        omit_faces: Sequence[str] = (),
    ):
        super().__init__(size=(size, size, size), origin=origin, omit_faces=omit_faces)


class OpenCubeGenerator(CubeGenerator):
    """Cube with the top face removed (10 triangles, not watertight)."""

    name = "open_cube"
    description = "Cube missing its top face"

    def __init__(self, size: float = 1.0, origin: Tuple[float, float, float] = (0.0, 0.0, 0.0)):
        super().__init__(size=size, origin=origin, omit_faces=("top",))


class TetrahedronGenerator(MeshGenerator):
    """Right-corner tetrahedron spanning the three positive axes."""

    name = "tetrahedron"
    description = "Tetrahedron with legs of length ``size`` along x, y and z"

    def __init__(self, size: float = 1.0):
        if size <= 0:
            raise ValueError("Tetrahedron size must be positive")
        self.size = size

    def _triangles(self) -> List[Triangle]:
        s = self.size
        corners = [
            Vector3(0.0, 0.0, 0.0),
            Vector3(s, 0.0, 0.0),
            Vector3(0.0, s, 0.0),
            Vector3(0.0, 0.0, s),
        ]
        return _build_triangles(corners, _TETRA_FACES)


class GeneratorFactory:
    """Factory for creating mesh generators by name."""

    _generators: Dict[str, Type[MeshGenerator]] = {
        "box": BoxGenerator,
        "cube": CubeGenerator,
        "open_cube": OpenCubeGenerator,
        "tetrahedron": TetrahedronGenerator,
    }

    @classmethod
    def create(cls, name: str, **kwargs: Any) -> MeshGenerator:
        """Create a generator.

        Args:
            name: Generator name
            **kwargs: Arguments for the generator

        Returns:
            Generator instance

        Raises:
            ValueError: If name is unknown
        """
        if name not in cls._generators:
            available = ", ".join(cls._generators.keys())
            raise ValueError(f"Unknown generator: {name}. Available: {available}")
        return cls._generators[name](**kwargs)

    @classmethod
    def register(cls, name: str, generator_class: Type[MeshGenerator]) -> None:
        cls._generators[name] = generator_class

    @classmethod
    def available_generators(cls) -> list[str]:
        return list(cls._generators.keys())


def unit_cube(filename: str = "unit_cube") -> MeshModel:
    """Closed unit cube on [0, 1]^3."""
    return CubeGenerator().generate(filename)


def open_unit_cube(filename: str = "open_unit_cube") -> MeshModel:
    """Unit cube without its top face."""
    return OpenCubeGenerator().generate(filename)
