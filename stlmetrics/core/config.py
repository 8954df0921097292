"""Configuration management for stlmetrics using Pydantic."""

from pathlib import Path
from typing import Literal, Optional

import tomli
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from stlmetrics.core.exceptions import ConfigurationError


class CodecConfig(BaseModel):
    """Configuration for the binary STL codec."""

    model_config = ConfigDict(frozen=True)

    max_triangles: int = Field(
        10_000_000, ge=1, description="Largest triangle count accepted from a file header"
    )
    default_header: str = Field(
        "Binary STL", description="Header written when the model has no filename"
    )
    normal_epsilon: float = Field(
        1e-6, gt=0, description="Stored normals shorter than this are recomputed"
    )

    @field_validator("default_header")
    @classmethod
    def validate_default_header(cls, v: str) -> str:
        """Header must fit the 80-byte field with a terminating NUL."""
        if len(v.encode("utf-8")) > 79:
            raise ValueError("default_header must encode to at most 79 bytes")
        return v


class MeasurementConfig(BaseModel):
    """Configuration for the measurement engine."""

    model_config = ConfigDict(frozen=True)

    epsilon: float = Field(
        1e-6, gt=0, description="Coincidence threshold for point validation"
    )
    degenerate_threshold: float = Field(
        1e-6, gt=0, description="Triangles with |e1 x e2| below this are degenerate"
    )
    edge_key_precision: float = Field(
        1e-6, gt=0, description="Grid pitch used to merge edge endpoints"
    )
    open_mesh_confidence: float = Field(
        0.7, ge=0, le=1, description="Confidence reported for volumes of open meshes"
    )
    default_unit: str = Field("units", min_length=1, description="Default linear unit")
    strict_volumetric_centroid: bool = Field(
        False,
        description="Raise instead of returning the origin when total volume is zero",
    )


class ProcessingConfig(BaseModel):
    """Configuration for file loading and background scans."""

    model_config = ConfigDict(frozen=True)

    parallel_enabled: bool = Field(True, description="Enable the background worker pool")
    max_workers: Optional[int] = Field(
        None, ge=1, description="Max workers for background scans (None = auto)"
    )
    show_progress: bool = Field(True, description="Show progress bars while loading")
    max_file_size_mb: float = Field(
        1024.0, gt=0, description="Largest STL file the loader will read (MB)"
    )


class CacheConfig(BaseModel):
    """Configuration for caching system."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = Field(False, description="Enable caching of decoded meshes")
    cache_dir: Path = Field(
        Path.home() / ".cache" / "stlmetrics", description="Cache directory"
    )
    max_size_gb: float = Field(2.0, gt=0, description="Maximum cache size (GB)")
    ttl_days: int = Field(30, ge=1, description="Cache time-to-live (days)")


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    model_config = ConfigDict(frozen=True)

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        "INFO", description="Logging level"
    )
    format: Literal["json", "console", "plain"] = Field(
        "console", description="Log format"
    )
    colorize: bool = Field(True, description="Colorize console output when on a TTY")
    add_caller_info: bool = Field(False, description="Add filename/line/function to events")
    timestamp_format: str = Field("iso", description="structlog TimeStamper format")
    log_dir: Optional[Path] = Field(None, description="Directory for log files")
    log_to_file: bool = Field(False, description="Enable file logging")


class Config(BaseModel):
    """Main configuration for stlmetrics."""

    model_config = ConfigDict(frozen=True)

    codec: CodecConfig = Field(
        default_factory=CodecConfig, description="Codec configuration"
    )
    measurement: MeasurementConfig = Field(
        default_factory=MeasurementConfig, description="Measurement configuration"
    )
    processing: ProcessingConfig = Field(
        default_factory=ProcessingConfig, description="Processing configuration"
    )
    cache: CacheConfig = Field(
        default_factory=CacheConfig, description="Cache configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )

    @classmethod
    def from_toml(cls, path: Path | str) -> "Config":
        """Load configuration from TOML file.

        Args:
            path: Path to TOML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If the TOML is malformed or fails validation
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            with open(path, "rb") as f:
                data = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(
                f"Invalid TOML in {path}: {e}", details={"path": str(path)}
            ) from e

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create configuration from dictionary.

        Raises:
            ConfigurationError: If values fail validation
        """
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e.error_count()} error(s)",
                details={"errors": e.errors(include_url=False)},
            ) from e

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return self.model_dump(mode="json", exclude_none=True)

    def save_toml(self, path: Path | str) -> None:
        """Save configuration to TOML file.

        Args:
            path: Path to save TOML file
        """
        import tomli_w

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "wb") as f:
            tomli_w.dump(self.to_dict(), f)


def get_default_config() -> Config:
    """Get default configuration."""
    return Config()


def load_config(path: Optional[Path | str] = None) -> Config:
    """Load configuration from file or return defaults.

    Args:
        path: Optional path to configuration file

    Returns:
        Config instance
    """
    if path:
        return Config.from_toml(path)
    return get_default_config()
