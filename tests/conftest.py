"""Shared test fixtures and configuration."""

import shutil
import struct
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from stlmetrics.core import Config
from stlmetrics.core.config import MeasurementConfig
from stlmetrics.geometry import Triangle, Vector3
from stlmetrics.model import MeshModel, open_unit_cube, unit_cube
from stlmetrics.processing import MeasurementEngine, encode
from stlmetrics.utils import CacheManager


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def test_config() -> Config:
    """Create a test configuration."""
    return Config(
        cache={"enabled": False},  # Disable cache for tests by default
        processing={"show_progress": False},
    )


@pytest.fixture
def cache_manager(temp_dir: Path) -> Generator[CacheManager, None, None]:
    """Create a test cache manager."""
    from stlmetrics.core.config import CacheConfig

    cache_config = CacheConfig(
        enabled=True,
        cache_dir=temp_dir / "cache",
        max_size_gb=0.1,  # Small size for tests
        ttl_days=1,
    )
    manager = CacheManager(cache_config)
    yield manager
    manager.close()


@pytest.fixture
def engine() -> Generator[MeasurementEngine, None, None]:
    """Measurement engine with default settings."""
    with MeasurementEngine(MeasurementConfig()) as eng:
        yield eng


@pytest.fixture
def unit_cube_mesh() -> MeshModel:
    """Closed unit cube on [0, 1]^3 (12 triangles)."""
    return unit_cube()


@pytest.fixture
def open_cube_mesh() -> MeshModel:
    """Unit cube with the top face removed (10 triangles)."""
    return open_unit_cube()


@pytest.fixture
def degenerate_triangle() -> Triangle:
    """Triangle with all three vertices at the origin."""
    origin = Vector3(0.0, 0.0, 0.0)
    return Triangle(origin, origin, origin, Vector3(0.0, 0.0, 1.0))


@pytest.fixture
def cube_with_degenerate_mesh(unit_cube_mesh: MeshModel, degenerate_triangle: Triangle) -> MeshModel:
    """Unit cube plus one degenerate triangle."""
    return MeshModel.from_triangles(
        "cube_with_degenerate",
        list(unit_cube_mesh.triangles) + [degenerate_triangle],
    )


@pytest.fixture
def empty_mesh() -> MeshModel:
    """Mesh without triangles."""
    return MeshModel.from_triangles("empty", [])


@pytest.fixture
def unit_cube_bytes(unit_cube_mesh: MeshModel) -> bytes:
    """Binary STL encoding of the unit cube."""
    return encode(unit_cube_mesh)


@pytest.fixture
def sample_stl_path(temp_dir: Path, unit_cube_bytes: bytes) -> Path:
    """Create a sample STL file."""
    stl_path = temp_dir / "test_cube.stl"
    stl_path.write_bytes(unit_cube_bytes)
    return stl_path


def _make_record(
    normal=(0.0, 0.0, 1.0),
    v1=(0.0, 0.0, 0.0),
    v2=(1.0, 0.0, 0.0),
    v3=(0.0, 1.0, 0.0),
    attribute: bytes = b"\x00\x00",
) -> bytes:
    """Pack one 50-byte triangle record."""
    return struct.pack("<12f", *normal, *v1, *v2, *v3) + attribute


def _make_stl(records: list[bytes], header: bytes = b"test", count: int | None = None) -> bytes:
    """Assemble a binary STL payload from packed records."""
    declared = len(records) if count is None else count
    return header.ljust(80, b"\x00")[:80] + struct.pack("<I", declared) + b"".join(records)


@pytest.fixture
def make_record():
    """Factory for packed 50-byte triangle records."""
    return _make_record


@pytest.fixture
def make_stl():
    """Factory for binary STL payloads built from packed records."""
    return _make_stl


# Markers for different test categories
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test multiple components"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 1 second"
    )
