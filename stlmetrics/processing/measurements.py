"""Measurement value types and measurement sessions."""

import math
import uuid
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Tuple

from stlmetrics.core.exceptions import ValidationError
from stlmetrics.geometry.bounding_box import BoundingBox
from stlmetrics.geometry.vector import Vector3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MeasurementKind(str, Enum):
    """Kind of measurement, with the power its value scales by on unit change.

    A length conversion factor ``f`` scales a distance by ``f``, an area by
    ``f**2``, a volume by ``f**3`` and leaves angles unchanged.
    """

    def __new__(cls, value: str, exponent: int) -> "MeasurementKind":
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.exponent = exponent
        return obj

    DISTANCE = ("distance", 1)
    ANGLE = ("angle", 0)
    VOLUME = ("volume", 3)
    SURFACE_AREA = ("surface_area", 2)
    BOUNDING_BOX = ("bounding_box", 1)
    CENTROID = ("centroid", 1)


class CentroidMethod(str, Enum):
    """How a centroid is weighted."""

    GEOMETRIC = "geometric"
    VOLUMETRIC = "volumetric"

    @classmethod
    def parse(cls, value: "CentroidMethod | str") -> "CentroidMethod":
        """Accept an enum member or its case-insensitive name.

        Raises:
            ValidationError: If the name is unknown
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as e:
            available = ", ".join(m.value for m in cls)
            raise ValidationError(
                f"Unknown centroid method: {value}. Available: {available}"
            ) from e


class Measurement(ABC):
    """Common behaviour of all measurement values."""

    kind: ClassVar[MeasurementKind]
    unit: str
    timestamp: datetime

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description."""

    @property
    @abstractmethod
    def formatted_value(self) -> str:
        """Value with unit, ready for display."""

    @abstractmethod
    def _values(self) -> Dict[str, Any]:
        """Type-specific fields for :meth:`to_dict`."""

    @abstractmethod
    def scaled(self, scale: float, unit: str) -> "Measurement":
        """Copy with every value multiplied by ``scale`` and a new unit."""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "unit": self.unit,
            "timestamp": self.timestamp.isoformat(),
            "description": self.description,
            "formatted_value": self.formatted_value,
            **self._values(),
        }


@dataclass(frozen=True)
class DistanceMeasurement(Measurement):
    """Straight-line distance between two points."""

    start: Vector3
    end: Vector3
    distance: float
    unit: str = "units"
    timestamp: datetime = field(default_factory=_utcnow)

    kind: ClassVar[MeasurementKind] = MeasurementKind.DISTANCE

    @classmethod
    def between(cls, start: Vector3, end: Vector3, unit: str = "units") -> "DistanceMeasurement":
        return cls(start, end, start.distance_to(end), unit)

    @property
    def description(self) -> str:
        return f"Distance from {self.start} to {self.end}"

    @property
    def formatted_value(self) -> str:
        return f"{self.distance:.3f} {self.unit}"

    def _values(self) -> Dict[str, Any]:
        return {
            "start": self.start.to_list(),
            "end": self.end.to_list(),
            "distance": self.distance,
        }

    def scaled(self, scale: float, unit: str) -> "DistanceMeasurement":
        return replace(
            self,
            start=self.start * scale,
            end=self.end * scale,
            distance=self.distance * scale,
            unit=unit,
        )


@dataclass(frozen=True)
class AngleMeasurement(Measurement):
    """Angle at ``vertex`` between the rays towards ``point1`` and ``point2``."""

    vertex: Vector3
    point1: Vector3
    point2: Vector3
    radians: float
    unit: str = "degrees"
    timestamp: datetime = field(default_factory=_utcnow)

    kind: ClassVar[MeasurementKind] = MeasurementKind.ANGLE

    @property
    def degrees(self) -> float:
        return math.degrees(self.radians)

    @property
    def description(self) -> str:
        return f"Angle at {self.vertex} between {self.point1} and {self.point2}"

    @property
    def formatted_value(self) -> str:
        return f"{self.degrees:.1f}°"

    def _values(self) -> Dict[str, Any]:
        return {
            "vertex": self.vertex.to_list(),
            "point1": self.point1.to_list(),
            "point2": self.point2.to_list(),
            "radians": self.radians,
            "degrees": self.degrees,
        }

    def scaled(self, scale: float, unit: str) -> "AngleMeasurement":
        return replace(self, unit=unit)


@dataclass(frozen=True)
class VolumeMeasurement(Measurement):
    """Enclosed volume of a mesh.

    ``confidence`` is 1.0 for closed meshes and lower when the mesh has
    boundary or non-manifold edges.
    """

    volume: float
    is_closed_mesh: bool
    confidence: float = 1.0
    unit: str = "cubic units"
    timestamp: datetime = field(default_factory=_utcnow)

    kind: ClassVar[MeasurementKind] = MeasurementKind.VOLUME

    @property
    def description(self) -> str:
        if self.is_closed_mesh:
            return "Volume of closed mesh"
        return "Estimated volume (mesh may not be closed)"

    @property
    def formatted_value(self) -> str:
        text = f"{self.volume:.3f} {self.unit}"
        if self.confidence < 1.0:
            text += f" (±{(1.0 - self.confidence) * 100:.1f}%)"
        return text

    def _values(self) -> Dict[str, Any]:
        return {
            "volume": self.volume,
            "is_closed_mesh": self.is_closed_mesh,
            "confidence": self.confidence,
        }

    def scaled(self, scale: float, unit: str) -> "VolumeMeasurement":
        return replace(self, volume=self.volume * scale, unit=unit)


@dataclass(frozen=True)
class SurfaceAreaMeasurement(Measurement):
    """Total area of the non-degenerate triangles of a mesh."""

    surface_area: float
    triangle_count: int
    unit: str = "square units"
    timestamp: datetime = field(default_factory=_utcnow)

    kind: ClassVar[MeasurementKind] = MeasurementKind.SURFACE_AREA

    @property
    def description(self) -> str:
        return f"Surface area calculated from {self.triangle_count} triangles"

    @property
    def formatted_value(self) -> str:
        return f"{self.surface_area:.3f} {self.unit}"

    def _values(self) -> Dict[str, Any]:
        return {"surface_area": self.surface_area, "triangle_count": self.triangle_count}

    def scaled(self, scale: float, unit: str) -> "SurfaceAreaMeasurement":
        return replace(self, surface_area=self.surface_area * scale, unit=unit)


@dataclass(frozen=True)
class BoundingBoxMeasurement(Measurement):
    """Axis-aligned extent of a mesh."""

    bounding_box: BoundingBox
    unit: str = "units"
    timestamp: datetime = field(default_factory=_utcnow)

    kind: ClassVar[MeasurementKind] = MeasurementKind.BOUNDING_BOX

    @property
    def width(self) -> float:
        return self.bounding_box.size.x

    @property
    def height(self) -> float:
        return self.bounding_box.size.y

    @property
    def depth(self) -> float:
        return self.bounding_box.size.z

    @property
    def bounding_volume(self) -> float:
        return self.width * self.height * self.depth

    @property
    def center(self) -> Vector3:
        return self.bounding_box.center

    @property
    def description(self) -> str:
        return "Model bounding box dimensions"

    @property
    def formatted_value(self) -> str:
        return f"{self.width:.3f} × {self.height:.3f} × {self.depth:.3f} {self.unit}"

    @property
    def detailed_info(self) -> str:
        c = self.center
        return "\n".join(
            [
                f"Width: {self.width:.3f} {self.unit}",
                f"Height: {self.height:.3f} {self.unit}",
                f"Depth: {self.depth:.3f} {self.unit}",
                f"Volume: {self.bounding_volume:.3f} cubic {self.unit}",
                f"Center: ({c.x:.3f}, {c.y:.3f}, {c.z:.3f})",
            ]
        )

    def _values(self) -> Dict[str, Any]:
        return {"bounding_box": self.bounding_box.to_dict()}

    def scaled(self, scale: float, unit: str) -> "BoundingBoxMeasurement":
        return replace(self, bounding_box=self.bounding_box.scaled(scale), unit=unit)


@dataclass(frozen=True)
class CentroidMeasurement(Measurement):
    """Centroid of a mesh surface or enclosed volume."""

    centroid: Vector3
    method: CentroidMethod = CentroidMethod.GEOMETRIC
    unit: str = "units"
    timestamp: datetime = field(default_factory=_utcnow)

    kind: ClassVar[MeasurementKind] = MeasurementKind.CENTROID

    @property
    def description(self) -> str:
        return f"{self.method.value.capitalize()} centroid"

    @property
    def formatted_value(self) -> str:
        c = self.centroid
        return f"({c.x:.3f}, {c.y:.3f}, {c.z:.3f}) {self.unit}"

    def _values(self) -> Dict[str, Any]:
        return {"centroid": self.centroid.to_list(), "method": self.method.value}

    def scaled(self, scale: float, unit: str) -> "CentroidMeasurement":
        return replace(self, centroid=self.centroid * scale, unit=unit)


@dataclass(frozen=True)
class MeasurementSession:
    """Named, immutable collection of measurements.

    Every modifier returns a new session and bumps ``last_modified``.
    """

    name: str
    measurements: Tuple[Measurement, ...] = ()
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=_utcnow)
    last_modified: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if not isinstance(self.measurements, tuple):
            object.__setattr__(self, "measurements", tuple(self.measurements))

    @classmethod
    def create(cls, name: str, measurements: Iterable[Measurement] = ()) -> "MeasurementSession":
        return cls(name=name, measurements=tuple(measurements))

    @classmethod
    def create_default(cls) -> "MeasurementSession":
        return cls.create(f"Measurement Session {datetime.now():%Y-%m-%d %H:%M:%S}")

    @property
    def count(self) -> int:
        return len(self.measurements)

    @property
    def has_measurements(self) -> bool:
        return bool(self.measurements)

    @property
    def by_kind(self) -> Dict[MeasurementKind, List[Measurement]]:
        grouped: Dict[MeasurementKind, List[Measurement]] = {}
        for measurement in self.measurements:
            grouped.setdefault(measurement.kind, []).append(measurement)
        return grouped

    @property
    def counts_by_kind(self) -> Dict[MeasurementKind, int]:
        return dict(Counter(m.kind for m in self.measurements))

    def get(self, kind: MeasurementKind) -> List[Measurement]:
        """All measurements of ``kind`` in insertion order."""
        return [m for m in self.measurements if m.kind == kind]

    def first(self, kind: MeasurementKind) -> Measurement | None:
        for measurement in self.measurements:
            if measurement.kind == kind:
                return measurement
        return None

    def _with(self, **changes: Any) -> "MeasurementSession":
        return replace(self, last_modified=_utcnow(), **changes)

    def add_measurement(self, measurement: Measurement) -> "MeasurementSession":
        if measurement is None:
            raise ValueError("measurement must not be None")
        return self._with(measurements=self.measurements + (measurement,))

    def add_measurements(self, measurements: Iterable[Measurement]) -> "MeasurementSession":
        new = tuple(measurements)
        if not new:
            return self
        return self._with(measurements=self.measurements + new)

    def remove_measurement(self, index: int) -> "MeasurementSession":
        if index < 0 or index >= len(self.measurements):
            raise IndexError(f"Measurement index out of range: {index}")
        remaining = self.measurements[:index] + self.measurements[index + 1 :]
        return self._with(measurements=remaining)

    def remove_kind(self, kind: MeasurementKind) -> "MeasurementSession":
        remaining = tuple(m for m in self.measurements if m.kind != kind)
        if len(remaining) == len(self.measurements):
            return self
        return self._with(measurements=remaining)

    def clear(self) -> "MeasurementSession":
        if not self.measurements:
            return self
        return self._with(measurements=())

    def rename(self, name: str) -> "MeasurementSession":
        if not name or not name.strip():
            raise ValueError("Session name cannot be empty")
        if name == self.name:
            return self
        return self._with(name=name)

    @property
    def summary(self) -> str:
        if not self.measurements:
            return f"{self.name}: no measurements"
        parts = [f"{count} {kind.value}" for kind, count in self.counts_by_kind.items()]
        return f"{self.name}: {self.count} measurements ({', '.join(parts)})"

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "last_modified": self.last_modified.isoformat(),
            "measurements": [m.to_dict() for m in self.measurements],
        }
