"""Shared numeric tolerances and finiteness helpers."""

import math
import struct
from typing import Iterable

# Squared-length / distance threshold used by point validation and normal repair
EPSILON = 1e-6

# Cross-product magnitude below which a triangle counts as degenerate
DEGENERATE_THRESHOLD = 1e-6

_FLOAT32 = struct.Struct("<f")


def is_finite(*values: float) -> bool:
    """Return True if every value is a finite float (no NaN, no infinity)."""
    return all(math.isfinite(v) for v in values)


def all_finite(values: Iterable[float]) -> bool:
    """Iterable form of :func:`is_finite`."""
    return all(math.isfinite(v) for v in values)


def to_float32(value: float) -> float:
    """Round a Python float to the nearest float32 value.

    Values outside the float32 range become infinities, mirroring what the
    binary writer would store.
    """
    try:
        return _FLOAT32.unpack(_FLOAT32.pack(value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def nearly_equal(a: float, b: float, eps: float = EPSILON) -> bool:
    """Absolute-tolerance comparison."""
    return abs(a - b) <= eps


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]."""
    return max(lower, min(upper, value))
