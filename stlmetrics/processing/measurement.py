"""Measurement engine: distances, angles, volume, area, centroid, closure."""

import concurrent.futures
import math
from collections import Counter
from functools import cmp_to_key
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from stlmetrics.core.cancellation import CancellationToken, check_cancelled
from stlmetrics.core.config import MeasurementConfig
from stlmetrics.core.exceptions import (
    CancelledError,
    ComputationError,
    StlMetricsError,
    ValidationError,
)
from stlmetrics.geometry.tolerance import clamp, is_finite
from stlmetrics.geometry.triangle import Triangle
from stlmetrics.geometry.vector import Vector3
from stlmetrics.model.mesh import MeshModel
from stlmetrics.processing.measurements import (
    AngleMeasurement,
    BoundingBoxMeasurement,
    CentroidMeasurement,
    CentroidMethod,
    DistanceMeasurement,
    Measurement,
    MeasurementKind,
    MeasurementSession,
    SurfaceAreaMeasurement,
    VolumeMeasurement,
)
from stlmetrics.processing.statistics import MeshStatistics
from stlmetrics.utils.logging import StructuredLogger, get_logger

logger = get_logger(__name__)

EdgeKey = Tuple[int, int]

_REQUIRED_POINTS = {
    MeasurementKind.DISTANCE: 2,
    MeasurementKind.ANGLE: 3,
}


class MeasurementEngine:
    """Geometric measurements over immutable meshes.

    Every scan is a pure function of the mesh. Long scans accept an optional
    :class:`CancellationToken` that is checked once per triangle. Scans can
    be offloaded to the engine's thread pool with :meth:`submit` or the
    ``*_async`` helpers, which return ``concurrent.futures.Future`` objects.
    """

    def __init__(
        self,
        config: Optional[MeasurementConfig] = None,
        max_workers: Optional[int] = None,
    ):
        """Initialize measurement engine.

        Args:
            config: Measurement configuration
            max_workers: Worker threads for background scans (None = auto)
        """
        self.config = config or MeasurementConfig()
        self.max_workers = max_workers
        self._executor: Optional[concurrent.futures.ThreadPoolExecutor] = None

    def validate_measurement_points(
        self,
        points: Sequence[Vector3],
        kind: MeasurementKind,
    ) -> None:
        """Check the points of a distance or angle measurement.

        Args:
            points: Points in measurement order (angle: vertex first)
            kind: Measurement kind the points are for

        Raises:
            ValidationError: If a point is non-finite, the point count is
                wrong, or points coincide
        """
        if points is None:
            raise ValidationError("Points cannot be None")

        for point in points:
            if not point.is_finite:
                raise ValidationError(
                    f"Point {point} contains invalid values (NaN or infinity)",
                    details={"point": list(point)},
                )

        required = _REQUIRED_POINTS.get(kind)
        if required is not None and len(points) != required:
            raise ValidationError(
                f"{kind.value.capitalize()} measurement requires exactly {required} points, "
                f"got {len(points)}"
            )

        eps = self.config.epsilon
        if kind == MeasurementKind.DISTANCE:
            if points[0].distance_squared_to(points[1]) < eps:
                raise ValidationError(
                    "Points are too close together for meaningful distance measurement"
                )
        elif kind == MeasurementKind.ANGLE:
            vertex, point1, point2 = points
            if (point1 - vertex).length_squared < eps or (point2 - vertex).length_squared < eps:
                raise ValidationError("Points are too close together to form a valid angle")

    def measure_distance(
        self,
        point1: Vector3,
        point2: Vector3,
        unit: Optional[str] = None,
    ) -> DistanceMeasurement:
        """Measure the straight-line distance between two points.

        Raises:
            ValidationError: If a point is non-finite or the points coincide
        """
        self.validate_measurement_points([point1, point2], MeasurementKind.DISTANCE)
        return DistanceMeasurement.between(point1, point2, unit or self.config.default_unit)

    def measure_angle(self, vertex: Vector3, point1: Vector3, point2: Vector3) -> AngleMeasurement:
        """Measure the angle at ``vertex`` between the rays to ``point1`` and ``point2``.

        Raises:
            ValidationError: If a point is non-finite or an arm has zero length
        """
        self.validate_measurement_points([vertex, point1, point2], MeasurementKind.ANGLE)
        arm1 = (point1 - vertex).normalized()
        arm2 = (point2 - vertex).normalized()
        radians = math.acos(clamp(arm1.dot(arm2), -1.0, 1.0))
        return AngleMeasurement(vertex, point1, point2, radians)

    def _is_usable(self, triangle: Triangle) -> bool:
        """Valid and non-degenerate."""
        return triangle.is_valid and triangle.cross_magnitude >= self.config.degenerate_threshold

    @staticmethod
    def _require_triangles(mesh: MeshModel, operation: str) -> None:
        if mesh is None:
            raise ValidationError("Mesh cannot be None")
        if mesh.triangle_count == 0:
            raise ValidationError(
                f"Cannot compute {operation}: mesh has no triangles",
                details={"filename": mesh.metadata.filename},
            )

    def _vertex_index(self, vertices: Sequence[Vector3]) -> Dict[Vector3, int]:
        """Map each distinct vertex to the index of its merged representative.

        Vertices are sorted with ``Vector3.compare``; a run of neighbours that
        compare equal shares one index, so jitter below ``edge_key_precision``
        never splits an edge.
        """
        eps = self.config.edge_key_precision
        ordered = sorted(set(vertices), key=cmp_to_key(lambda a, b: a.compare(b, eps)))
        index: Dict[Vector3, int] = {}
        current = -1
        previous = None
        for vertex in ordered:
            if previous is None or previous.compare(vertex, eps) != 0:
                current += 1
            index[vertex] = current
            previous = vertex
        return index

    def edge_counts(
        self,
        mesh: MeshModel,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[EdgeKey, int]:
        """Number of valid triangles sharing each undirected edge.

        Edges are keyed on the pair of merged vertex indices, smaller first.
        """
        corners: List[Tuple[Vector3, Vector3, Vector3]] = []
        for triangle in mesh.triangles:
            check_cancelled(cancel_token, "Mesh closure check")
            if triangle.is_valid:
                corners.append(triangle.vertices)

        index = self._vertex_index([v for triple in corners for v in triple])
        counts: Counter = Counter()
        for v1, v2, v3 in corners:
            a, b, c = index[v1], index[v2], index[v3]
            counts[(min(a, b), max(a, b))] += 1
            counts[(min(b, c), max(b, c))] += 1
            counts[(min(c, a), max(c, a))] += 1
        return dict(counts)

    def is_closed_mesh(
        self,
        mesh: MeshModel,
        cancel_token: Optional[CancellationToken] = None,
    ) -> bool:
        """True when every undirected edge is shared by exactly two triangles.

        An empty mesh, or one without any valid triangle, is not closed.
        """
        if mesh is None:
            raise ValidationError("Mesh cannot be None")
        if mesh.triangle_count == 0:
            return False
        counts = self.edge_counts(mesh, cancel_token)
        return bool(counts) and all(count == 2 for count in counts.values())

    def calculate_volume(
        self,
        mesh: MeshModel,
        unit: str = "cubic units",
        cancel_token: Optional[CancellationToken] = None,
    ) -> VolumeMeasurement:
        """Enclosed volume by the divergence theorem.

        Sums the signed volumes of the tetrahedra spanned by the origin and
        each valid, non-degenerate triangle. Open meshes still get a number,
        reported with reduced confidence.

        Args:
            mesh: Mesh to measure
            unit: Unit label for the result
            cancel_token: Optional cancellation token

        Returns:
            VolumeMeasurement

        Raises:
            ValidationError: If the mesh has no triangles
            ComputationError: If the sum overflows
            CancelledError: If cancelled mid-scan
        """
        self._require_triangles(mesh, "volume")
        closed = self.is_closed_mesh(mesh, cancel_token)
        confidence = 1.0 if closed else self.config.open_mesh_confidence

        total = 0.0
        for triangle in mesh.triangles:
            check_cancelled(cancel_token, "Volume calculation")
            if not self._is_usable(triangle):
                continue
            v1, v2, v3 = triangle.vertices
            total += v1.dot(v2.cross(v3))

        volume = abs(total) / 6.0
        if not is_finite(volume):
            raise ComputationError(
                "Volume calculation produced a non-finite result",
                details={"filename": mesh.metadata.filename},
            )

        logger.debug("volume_calculated", volume=volume, closed=closed)
        return VolumeMeasurement(volume, closed, confidence, unit)

    def calculate_surface_area(
        self,
        mesh: MeshModel,
        unit: str = "square units",
        cancel_token: Optional[CancellationToken] = None,
    ) -> SurfaceAreaMeasurement:
        """Sum of the areas of valid, non-degenerate triangles.

        Raises:
            ValidationError: If the mesh has no triangles
            CancelledError: If cancelled mid-scan
        """
        self._require_triangles(mesh, "surface area")

        area = 0.0
        included = 0
        for triangle in mesh.triangles:
            check_cancelled(cancel_token, "Surface area calculation")
            if self._is_usable(triangle):
                area += triangle.area
                included += 1

        return SurfaceAreaMeasurement(area, included, unit)

    def get_bounding_box_measurement(
        self,
        mesh: MeshModel,
        unit: Optional[str] = None,
    ) -> BoundingBoxMeasurement:
        """Axis-aligned bounds of the mesh, as recorded in its metadata."""
        if mesh is None:
            raise ValidationError("Mesh cannot be None")
        return BoundingBoxMeasurement(mesh.bounding_box, unit or self.config.default_unit)

    def calculate_centroid(
        self,
        mesh: MeshModel,
        method: CentroidMethod | str = CentroidMethod.GEOMETRIC,
        unit: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> CentroidMeasurement:
        """Centroid of the surface (geometric) or of the enclosed solid (volumetric).

        Geometric: triangle centroids weighted by area. Volumetric: centroids
        of the origin tetrahedra weighted by signed volume. A zero total
        weight yields the origin, unless ``strict_volumetric_centroid`` is set
        for the volumetric method.

        Args:
            mesh: Mesh to measure
            method: CentroidMethod or its case-insensitive name
            unit: Unit label for the result
            cancel_token: Optional cancellation token

        Returns:
            CentroidMeasurement

        Raises:
            ValidationError: If the mesh has no triangles or the method is unknown
            ComputationError: If the volumetric weight is zero in strict mode
            CancelledError: If cancelled mid-scan
        """
        method = CentroidMethod.parse(method)
        self._require_triangles(mesh, "centroid")

        if method == CentroidMethod.VOLUMETRIC:
            centroid = self._volumetric_centroid(mesh, cancel_token)
        else:
            centroid = self._geometric_centroid(mesh, cancel_token)

        return CentroidMeasurement(centroid, method, unit or self.config.default_unit)

    def _geometric_centroid(
        self,
        mesh: MeshModel,
        cancel_token: Optional[CancellationToken],
    ) -> Vector3:
        weighted = Vector3.zero()
        total_area = 0.0
        for triangle in mesh.triangles:
            check_cancelled(cancel_token, "Centroid calculation")
            if not self._is_usable(triangle):
                continue
            area = triangle.area
            weighted = weighted + triangle.centroid * area
            total_area += area
        return weighted / total_area if total_area > 0 else Vector3.zero()

    def _volumetric_centroid(
        self,
        mesh: MeshModel,
        cancel_token: Optional[CancellationToken],
    ) -> Vector3:
        weighted = Vector3.zero()
        total_volume = 0.0
        for triangle in mesh.triangles:
            check_cancelled(cancel_token, "Centroid calculation")
            if not self._is_usable(triangle):
                continue
            v1, v2, v3 = triangle.vertices
            volume = triangle.signed_volume()
            # Tetrahedron (origin, v1, v2, v3) has its centroid at (v1 + v2 + v3) / 4
            weighted = weighted + (v1 + v2 + v3) * (volume / 4.0)
            total_volume += volume

        if total_volume == 0.0:
            if self.config.strict_volumetric_centroid:
                raise ComputationError(
                    "Volumetric centroid is undefined for a mesh with zero total volume",
                    details={"filename": mesh.metadata.filename},
                )
            logger.warning("volumetric_centroid_zero_volume", filename=mesh.metadata.filename)
            return Vector3.zero()
        return weighted / total_volume

    def find_closest_point(
        self,
        mesh: MeshModel,
        target: Vector3,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Vector3:
        """Nearest point on the mesh surface to ``target`` (linear scan).

        Raises:
            ValidationError: If the mesh has no (valid) triangles or the
                target is non-finite
            CancelledError: If cancelled mid-scan
        """
        self._require_triangles(mesh, "closest point")
        if not target.is_finite:
            raise ValidationError(f"Target point {target} contains invalid values (NaN or infinity)")

        closest: Optional[Vector3] = None
        best = math.inf
        for triangle in mesh.triangles:
            check_cancelled(cancel_token, "Closest point search")
            if not triangle.is_valid:
                continue
            candidate = triangle.closest_point(target)
            distance_sq = target.distance_squared_to(candidate)
            if distance_sq < best:
                best = distance_sq
                closest = candidate

        if closest is None:
            raise ValidationError("Mesh has no valid triangles")
        return closest

    def measure_distance_to_surface(
        self,
        mesh: MeshModel,
        point: Vector3,
        unit: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DistanceMeasurement:
        """Distance from ``point`` to the closest point on the mesh.

        A point on the surface measures 0.0.
        """
        closest = self.find_closest_point(mesh, point, cancel_token)
        return DistanceMeasurement.between(point, closest, unit or self.config.default_unit)

    def calculate_mesh_statistics(
        self,
        mesh: MeshModel,
        cancel_token: Optional[CancellationToken] = None,
    ) -> MeshStatistics:
        """Triangle counts, area/edge statistics and a quality score.

        Raises:
            CancelledError: If cancelled mid-scan
        """
        if mesh is None:
            raise ValidationError("Mesh cannot be None")

        total = mesh.triangle_count
        valid = 0
        degenerate = 0
        areas: List[float] = []
        edges: List[float] = []

        for triangle in mesh.triangles:
            check_cancelled(cancel_token, "Mesh statistics calculation")
            if not triangle.is_valid:
                continue
            valid += 1
            if triangle.cross_magnitude < self.config.degenerate_threshold:
                degenerate += 1
                continue
            areas.append(triangle.area)
            edges.extend(triangle.edge_lengths)

        quality = 0.0
        if total:
            quality = valid / total - 0.5 * (degenerate / total)

        total_area = math.fsum(areas)
        return MeshStatistics(
            total_triangles=total,
            valid_triangles=valid,
            invalid_triangles=total - valid,
            degenerate_triangles=degenerate,
            total_surface_area=total_area,
            min_triangle_area=min(areas) if areas else 0.0,
            max_triangle_area=max(areas) if areas else 0.0,
            average_triangle_area=total_area / len(areas) if areas else 0.0,
            min_edge_length=min(edges) if edges else 0.0,
            max_edge_length=max(edges) if edges else 0.0,
            average_edge_length=math.fsum(edges) / len(edges) if edges else 0.0,
            edge_count=len(edges),
            bounding_box_volume=mesh.bounding_box.volume,
            quality_score=quality,
        )

    def perform_comprehensive_analysis(
        self,
        mesh: MeshModel,
        unit: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> MeasurementSession:
        """Bounding box, surface area, volume and geometric centroid in one session.

        A sub-measurement that fails is logged and left out of the session;
        cancellation still propagates.

        Args:
            mesh: Mesh to analyze
            unit: Linear unit; area and volume use ``square``/``cubic`` prefixes
            cancel_token: Optional cancellation token

        Returns:
            MeasurementSession with the successful measurements

        Raises:
            CancelledError: If cancelled mid-analysis
        """
        if mesh is None:
            raise ValidationError("Mesh cannot be None")
        unit = unit or self.config.default_unit

        steps: List[Tuple[str, Callable[[], Measurement]]] = [
            ("bounding_box", lambda: self.get_bounding_box_measurement(mesh, unit)),
            ("surface_area", lambda: self.calculate_surface_area(mesh, f"square {unit}", cancel_token)),
            ("volume", lambda: self.calculate_volume(mesh, f"cubic {unit}", cancel_token)),
            (
                "centroid",
                lambda: self.calculate_centroid(mesh, CentroidMethod.GEOMETRIC, unit, cancel_token),
            ),
        ]

        filename = mesh.metadata.filename or "Unknown"
        measurements: List[Measurement] = []
        with StructuredLogger(logger, "comprehensive_analysis", filename=filename) as op:
            for name, step in steps:
                try:
                    measurements.append(step())
                except CancelledError:
                    raise
                except StlMetricsError as e:
                    logger.warning(
                        "measurement_skipped",
                        measurement=name,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
            op.update_context(measurements=len(measurements))

        return MeasurementSession.create(f"Comprehensive Analysis - {filename}", measurements)

    def convert_measurement_units(
        self,
        measurement: Measurement,
        target_unit: str,
        factor: float,
    ) -> Measurement:
        """Rescale a measurement by a linear conversion factor.

        The value is multiplied by ``factor ** kind.exponent``: distances,
        bounding boxes and centroids by ``factor``, areas by ``factor**2``,
        volumes by ``factor**3``. Angles only change their unit label.

        Args:
            measurement: Measurement to convert
            target_unit: New unit label
            factor: Target units per source unit

        Returns:
            Converted copy of the measurement

        Raises:
            ValidationError: If factor is not a positive finite number or the
                unit is blank
        """
        if measurement is None:
            raise ValidationError("Measurement cannot be None")
        if not is_finite(factor) or factor <= 0:
            raise ValidationError(
                f"Conversion factor must be positive, got {factor}",
                details={"factor": factor},
            )
        if not target_unit or not target_unit.strip():
            raise ValidationError("Target unit cannot be empty")

        return measurement.scaled(factor ** measurement.kind.exponent, target_unit)

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> concurrent.futures.Future:
        """Run ``fn(*args, **kwargs)`` on the engine's thread pool."""
        if self._executor is None:
            self._executor = concurrent.futures.ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="stlmetrics",
            )
        return self._executor.submit(fn, *args, **kwargs)

    def is_closed_mesh_async(
        self, mesh: MeshModel, cancel_token: Optional[CancellationToken] = None
    ) -> concurrent.futures.Future:
        return self.submit(self.is_closed_mesh, mesh, cancel_token)

    def calculate_volume_async(
        self,
        mesh: MeshModel,
        unit: str = "cubic units",
        cancel_token: Optional[CancellationToken] = None,
    ) -> concurrent.futures.Future:
        return self.submit(self.calculate_volume, mesh, unit, cancel_token)

    def calculate_surface_area_async(
        self,
        mesh: MeshModel,
        unit: str = "square units",
        cancel_token: Optional[CancellationToken] = None,
    ) -> concurrent.futures.Future:
        return self.submit(self.calculate_surface_area, mesh, unit, cancel_token)

    def calculate_centroid_async(
        self,
        mesh: MeshModel,
        method: CentroidMethod | str = CentroidMethod.GEOMETRIC,
        unit: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> concurrent.futures.Future:
        return self.submit(self.calculate_centroid, mesh, method, unit, cancel_token)

    def find_closest_point_async(
        self,
        mesh: MeshModel,
        target: Vector3,
        cancel_token: Optional[CancellationToken] = None,
    ) -> concurrent.futures.Future:
        return self.submit(self.find_closest_point, mesh, target, cancel_token)

    def measure_distance_to_surface_async(
        self,
        mesh: MeshModel,
        point: Vector3,
        unit: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> concurrent.futures.Future:
        return self.submit(self.measure_distance_to_surface, mesh, point, unit, cancel_token)

    def calculate_mesh_statistics_async(
        self,
        mesh: MeshModel,
        cancel_token: Optional[CancellationToken] = None,
    ) -> concurrent.futures.Future:
        return self.submit(self.calculate_mesh_statistics, mesh, cancel_token)

    def perform_comprehensive_analysis_async(
        self,
        mesh: MeshModel,
        unit: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> concurrent.futures.Future:
        return self.submit(self.perform_comprehensive_analysis, mesh, unit, cancel_token)

    def close(self) -> None:
        """Shut down the worker pool, waiting for running scans."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "MeasurementEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
