"""Geometry primitives: vectors, bounding boxes, triangles."""

from stlmetrics.geometry.bounding_box import BoundingBox
from stlmetrics.geometry.tolerance import DEGENERATE_THRESHOLD, EPSILON
from stlmetrics.geometry.triangle import Triangle
from stlmetrics.geometry.vector import Vector3

__all__ = [
    "BoundingBox",
    "Triangle",
    "Vector3",
    "EPSILON",
    "DEGENERATE_THRESHOLD",
]
