"""Custom exceptions for stlmetrics."""

from pathlib import Path
from typing import Any, Optional


class StlMetricsError(Exception):
    """Base exception for stlmetrics."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(StlMetricsError):
    """Raised when configuration is invalid."""

    pass


class FormatError(StlMetricsError):
    """Raised when a binary STL payload is malformed, truncated or oversized.

    ``triangle_index`` is the 1-based record number when the problem is tied
    to a single triangle.
    """

    def __init__(
        self,
        message: str,
        triangle_index: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.triangle_index = triangle_index


class ValidationError(StlMetricsError):
    """Raised when measurement input is non-finite, coincident or degenerate."""

    pass


class CancelledError(StlMetricsError):
    """Raised when a long-running scan observes a cancellation request."""

    def __init__(self, operation: str):
        super().__init__(f"{operation} was cancelled")
        self.operation = operation


class ComputationError(StlMetricsError):
    """Raised when an arithmetic step fails in a way validation did not catch."""

    pass


class STLLoadError(StlMetricsError):
    """Raised when an STL file cannot be read from disk."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Failed to load STL file '{path}': {reason}")
        self.path = path
        self.reason = reason


class STLSaveError(StlMetricsError):
    """Raised when an STL file cannot be written."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Failed to save STL file '{path}': {reason}")
        self.path = path
        self.reason = reason


class CacheError(StlMetricsError):
    """Raised when cache operations fail."""

    pass
