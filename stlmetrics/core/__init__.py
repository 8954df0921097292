"""Core functionality for stlmetrics."""

from stlmetrics.core.cancellation import CancellationToken, check_cancelled
from stlmetrics.core.config import (
    CacheConfig,
    CodecConfig,
    Config,
    LoggingConfig,
    MeasurementConfig,
    ProcessingConfig,
    get_default_config,
    load_config,
)
from stlmetrics.core.exceptions import (
    CacheError,
    CancelledError,
    ComputationError,
    ConfigurationError,
    FormatError,
    STLLoadError,
    STLSaveError,
    StlMetricsError,
    ValidationError,
)

__all__ = [
    # Config classes
    "Config",
    "CodecConfig",
    "MeasurementConfig",
    "ProcessingConfig",
    "CacheConfig",
    "LoggingConfig",
    # Config functions
    "get_default_config",
    "load_config",
    # Cancellation
    "CancellationToken",
    "check_cancelled",
    # Exceptions
    "StlMetricsError",
    "ConfigurationError",
    "FormatError",
    "ValidationError",
    "CancelledError",
    "ComputationError",
    "STLLoadError",
    "STLSaveError",
    "CacheError",
]
