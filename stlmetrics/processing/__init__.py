"""Binary STL codec, file loading and measurements for stlmetrics."""

from stlmetrics.processing import binary_codec
from stlmetrics.processing.binary_codec import (
    decode,
    encode,
    extract_header,
    is_valid_binary_stl,
    peek_triangle_count,
)
from stlmetrics.processing.measurement import MeasurementEngine
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
from stlmetrics.processing.mesh_loader import MeshLoader, load_stl, save_stl
from stlmetrics.processing.statistics import MeshStatistics

__all__ = [
    "binary_codec",
    "decode",
    "encode",
    "extract_header",
    "is_valid_binary_stl",
    "peek_triangle_count",
    "MeshLoader",
    "load_stl",
    "save_stl",
    "MeasurementEngine",
    "MeshStatistics",
    "Measurement",
    "MeasurementKind",
    "MeasurementSession",
    "CentroidMethod",
    "DistanceMeasurement",
    "AngleMeasurement",
    "VolumeMeasurement",
    "SurfaceAreaMeasurement",
    "BoundingBoxMeasurement",
    "CentroidMeasurement",
]
