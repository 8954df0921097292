"""Mesh model: metadata, the immutable mesh aggregate and generators."""

from stlmetrics.model.generators import GeneratorFactory, open_unit_cube, unit_cube
from stlmetrics.model.mesh import MeshModel
from stlmetrics.model.metadata import ModelMetadata, ModelQuality, StlFormat

__all__ = [
    "MeshModel",
    "ModelMetadata",
    "ModelQuality",
    "StlFormat",
    "GeneratorFactory",
    "unit_cube",
    "open_unit_cube",
]
