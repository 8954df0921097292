"""Unit tests for structured logging."""

import logging
from unittest.mock import patch

import pytest

from stlmetrics.core.config import LoggingConfig
from stlmetrics.geometry import Vector3
from stlmetrics.processing.measurements import DistanceMeasurement, VolumeMeasurement
from stlmetrics.utils.logging import (
    StructuredLogger,
    get_logger,
    log_measurement,
    log_performance,
    setup_logging,
)


@pytest.fixture
def logging_config():
    """Create test logging configuration."""
    return LoggingConfig(
        level="INFO",
        format="json",
        colorize=False,
        add_caller_info=True,
    )


class TestLoggingSetup:
    """Test logging setup functionality."""

    def test_setup_logging_json(self, logging_config):
        """Test JSON logging setup."""
        logger = setup_logging(logging_config)

        assert logger is not None
        # Structlog returns a BoundLoggerLazyProxy
        assert hasattr(logger, 'info')
        assert hasattr(logger, 'error')

    def test_setup_logging_console(self):
        """Test console logging setup."""
        config = LoggingConfig(format="console")
        logger = setup_logging(config)

        assert logger is not None

    def test_setup_logging_plain(self):
        """Test plain logging setup."""
        config = LoggingConfig(format="plain")
        logger = setup_logging(config)

        assert logger is not None

    def test_setup_logging_with_file(self, tmp_path):
        """Test logging with file output."""
        log_file = tmp_path / "test.log"
        config = LoggingConfig()

        setup_logging(config, log_file=log_file)
        logging.getLogger("stlmetrics.test").warning("file handler check")

        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.exists()
        assert "file handler check" in log_file.read_text()

    def test_setup_logging_log_dir(self, tmp_path):
        """Test that log_to_file derives the file from log_dir."""
        log_dir = tmp_path / "logs"
        config = LoggingConfig(log_to_file=True, log_dir=log_dir)

        setup_logging(config)

        assert log_dir.is_dir()
        assert any(
            isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers
        )

    def test_get_logger(self):
        """Test getting logger instance."""
        logger = get_logger("test.module")

        assert logger is not None
        assert hasattr(logger, 'info')
        assert hasattr(logger, 'error')


class TestLogHelpers:
    """Test logging helper functions."""

    def test_log_performance(self):
        """Test performance logging."""
        logger = get_logger("test")

        with patch.object(logger, 'info') as mock_info:
            log_performance(
                logger,
                "volume_scan",
                1.5,
                triangles=100,
            )

            mock_info.assert_called_once_with(
                "performance",
                operation="volume_scan",
                duration_ms=1500.0,
                triangles=100,
            )

    def test_log_measurement_distance(self):
        """Test logging a distance measurement."""
        logger = get_logger("test")
        measurement = DistanceMeasurement.between(Vector3(0, 0, 0), Vector3(3, 4, 0), "mm")

        with patch.object(logger, 'info') as mock_info:
            log_measurement(logger, measurement)

            mock_info.assert_called_once()
            call_args = mock_info.call_args
            assert call_args[0][0] == "measurement_recorded"
            assert call_args[1]["kind"] == "distance"
            assert call_args[1]["unit"] == "mm"
            assert call_args[1]["value"] == "5.000 mm"

    def test_log_measurement_volume(self):
        """Test logging a volume measurement with reduced confidence."""
        logger = get_logger("test")
        measurement = VolumeMeasurement(2.0, is_closed_mesh=False, confidence=0.7)

        with patch.object(logger, 'info') as mock_info:
            log_measurement(logger, measurement)

            call_args = mock_info.call_args
            assert call_args[1]["kind"] == "volume"
            assert "±30.0%" in call_args[1]["value"]
            assert call_args[1]["description"] == "Estimated volume (mesh may not be closed)"


class TestStructuredLogger:
    """Test StructuredLogger context manager."""

    def test_structured_logger_success(self):
        """Test successful operation logging."""
        logger = get_logger("test")

        with patch.object(logger, 'info') as mock_info:
            with StructuredLogger(logger, "test_op", foo="bar") as ctx:
                ctx.update_context(baz="qux")

            # Should have start and complete calls
            assert mock_info.call_count == 2

            start_call = mock_info.call_args_list[0]
            assert start_call[0][0] == "test_op_started"
            assert start_call[1]["foo"] == "bar"

            complete_call = mock_info.call_args_list[1]
            assert complete_call[0][0] == "test_op_completed"
            assert "duration_ms" in complete_call[1]
            assert complete_call[1]["baz"] == "qux"

    def test_structured_logger_failure(self):
        """Test failed operation logging."""
        logger = get_logger("test")

        with patch.object(logger, 'info') as mock_info:
            with patch.object(logger, 'error') as mock_error:
                with pytest.raises(ValueError):
                    with StructuredLogger(logger, "test_op"):
                        raise ValueError("Test error")

                assert mock_info.call_count == 1
                assert mock_info.call_args[0][0] == "test_op_started"

                assert mock_error.call_count == 1
                error_call = mock_error.call_args
                assert error_call[0][0] == "test_op_failed"
                assert error_call[1]["error"] == "Test error"
                assert error_call[1]["error_type"] == "ValueError"
                assert "duration_ms" in error_call[1]

    def test_structured_logger_update_context(self):
        """Test context updates."""
        logger = get_logger("test")

        with StructuredLogger(logger, "test_op", initial="value") as ctx:
            assert ctx.context["initial"] == "value"

            ctx.update_context(added="new_value", initial="updated")

            assert ctx.context["initial"] == "updated"
            assert ctx.context["added"] == "new_value"


class TestLogLevels:
    """Test different log levels."""

    def test_debug_level(self):
        """Test DEBUG level logging."""
        setup_logging(LoggingConfig(level="DEBUG"))

        assert logging.getLogger().level == logging.DEBUG

    def test_error_level(self):
        """Test ERROR level logging."""
        setup_logging(LoggingConfig(level="ERROR"))

        assert logging.getLogger().level == logging.ERROR

    def test_library_logging_suppressed(self):
        """Test that library logging is suppressed."""
        setup_logging(LoggingConfig(level="DEBUG"))

        assert logging.getLogger("trimesh").level == logging.WARNING
        assert logging.getLogger("numpy").level == logging.WARNING
