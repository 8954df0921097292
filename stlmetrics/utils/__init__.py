"""Utility functions for stlmetrics."""

from stlmetrics.utils.cache import CacheManager, create_cache_manager
from stlmetrics.utils.logging import (
    setup_logging,
    get_logger,
    log_performance,
    log_measurement,
    StructuredLogger,
)

__all__ = [
    "CacheManager",
    "create_cache_manager",
    "setup_logging",
    "get_logger",
    "log_performance",
    "log_measurement",
    "StructuredLogger",
]
