"""Unit tests for caching functionality."""

import time
from pathlib import Path

import pytest

from stlmetrics.core.config import CacheConfig
from stlmetrics.core.exceptions import CacheError
from stlmetrics.processing import MeshStatistics
from stlmetrics.utils import CacheManager, create_cache_manager


class TestCacheManager:
    """Test cache manager functionality."""

    def test_cache_creation(self, temp_dir: Path):
        """Test creating a cache manager."""
        config = CacheConfig(
            enabled=True,
            cache_dir=temp_dir / "cache",
            max_size_gb=1.0,
            ttl_days=7
        )

        cache_mgr = CacheManager(config)

        assert cache_mgr.enabled
        assert cache_mgr.cache_dir.exists()
        assert cache_mgr.config.max_size_gb == 1.0
        cache_mgr.close()

    def test_cache_disabled(self):
        """Test disabled cache behavior."""
        cache_mgr = CacheManager(CacheConfig(enabled=False))

        # All operations should be no-ops
        cache_mgr.set("key", "value")
        assert cache_mgr.get("key") is None
        assert cache_mgr.delete("key") is False
        assert cache_mgr.clear() == 0
        assert cache_mgr.evict_expired() == 0
        assert cache_mgr.get_stats() == {"enabled": False}

    def test_cache_dir_unusable(self, temp_dir: Path):
        """Test that a cache directory blocked by a file raises CacheError."""
        blocker = temp_dir / "not_a_dir"
        blocker.write_text("occupied")

        with pytest.raises(CacheError) as exc_info:
            CacheManager(CacheConfig(enabled=True, cache_dir=blocker / "cache"))

        assert exc_info.value.details["cache_dir"] == str(blocker / "cache")

    def test_basic_get_set(self, cache_manager):
        """Test basic get/set operations."""
        cache_manager.set("test_key", "test_value", ttl=60)

        assert cache_manager.get("test_key") == "test_value"
        assert cache_manager.get("nonexistent") is None
        assert cache_manager.get("nonexistent", "fallback") == "fallback"

    @pytest.mark.slow
    def test_ttl_expiration(self, cache_manager):
        """Test TTL expiration."""
        cache_manager.set("expiring_key", "value", ttl=0.1)  # 100ms

        assert cache_manager.get("expiring_key") == "value"

        time.sleep(0.2)

        assert cache_manager.get("expiring_key") is None

    def test_content_key(self, cache_manager):
        """Test cache key generation from in-memory bytes."""
        data = b"solid content" * 10

        key1 = cache_manager.content_key(data)
        assert key1 == CacheManager.hash_bytes(data)

        key2 = cache_manager.content_key(data, params={"max_triangles": 100})
        assert key1 != key2  # Different params = different key

        key3 = cache_manager.content_key(data, params={"max_triangles": 100})
        assert key2 == key3

        key4 = cache_manager.content_key(data, prefix="stl")
        assert key4.startswith("stl_")

        # Different content = different key
        assert cache_manager.content_key(data + b"!") != key1

    def test_generate_key_matches_content_key(self, cache_manager, temp_dir: Path):
        """Test that file keys hash the file content."""
        test_file = temp_dir / "test.stl"
        test_file.write_bytes(b"binary payload")

        assert cache_manager.generate_key(test_file, prefix="stl") == (
            cache_manager.content_key(b"binary payload", prefix="stl")
        )

    def test_hash_bytes_consistency(self):
        """Test content hash consistency."""
        data = b"Hello, World!" * 1000

        hash1 = CacheManager.hash_bytes(data)
        hash2 = CacheManager.hash_bytes(data)

        assert hash1 == hash2
        assert len(hash1) == 16  # First 16 chars of SHA256

    def test_mesh_caching(self, cache_manager, unit_cube_mesh):
        """Test mesh-specific caching."""
        cache_manager.cache_mesh("cube", unit_cube_mesh)

        cached = cache_manager.get_mesh("cube")

        assert cached is not None
        assert cached.triangle_count == 12
        assert cached.triangles == unit_cube_mesh.triangles
        assert cached.metadata.filename == "unit_cube"

        # Mesh entries live under their own prefix
        assert cache_manager.get("cube") is None

    def test_statistics_caching(self, cache_manager):
        """Test statistics caching."""
        stats = MeshStatistics(total_triangles=12, valid_triangles=12, quality_score=1.0)

        cache_manager.cache_statistics("cube", stats)

        assert cache_manager.get_statistics("cube") == stats
        assert cache_manager.get_statistics("missing") is None

    def test_cache_delete(self, cache_manager):
        """Test cache deletion."""
        cache_manager.set("delete_me", "value")
        assert cache_manager.get("delete_me") == "value"

        assert cache_manager.delete("delete_me") is True
        assert cache_manager.get("delete_me") is None

        assert cache_manager.delete("nonexistent") is False

    def test_cache_clear(self, cache_manager):
        """Test clearing entire cache."""
        cache_manager.set("key1", "value1")
        cache_manager.set("key2", "value2")
        cache_manager.set("key3", "value3")

        removed = cache_manager.clear()

        assert removed == 3
        assert cache_manager.get("key1") is None
        assert cache_manager.get("key2") is None
        assert cache_manager.get("key3") is None

    def test_cache_stats(self, cache_manager):
        """Test cache statistics."""
        cache_manager.clear()

        cache_manager.set("key1", "value1")
        cache_manager.set("key2", "value2")
        cache_manager.get("key1")
        cache_manager.get("missing")

        stats = cache_manager.get_stats()

        assert stats["enabled"] is True
        assert stats["entries"] == 2
        assert stats["size_mb"] > 0
        assert "location" in stats
        assert 0.0 <= stats["hit_rate"] <= 1.0

    def test_create_cache_manager_function(self, temp_dir: Path):
        """Test the create_cache_manager convenience function."""
        config = CacheConfig(
            enabled=True,
            cache_dir=temp_dir / "cache2"
        )

        cache_mgr = create_cache_manager(config)

        assert isinstance(cache_mgr, CacheManager)
        assert cache_mgr.enabled
        assert cache_mgr.cache_dir == temp_dir / "cache2"
        cache_mgr.close()


class TestCacheIntegration:
    """Integration tests for caching with other components."""

    @pytest.mark.integration
    def test_mesh_loader_caching(self, sample_stl_path: Path, cache_manager):
        """Test mesh loader with caching."""
        from stlmetrics.processing import MeshLoader

        loader = MeshLoader(show_progress=False, cache_manager=cache_manager)

        mesh1 = loader.load(sample_stl_path)
        stats = cache_manager.get_stats()
        assert stats["entries"] == 1

        mesh2 = loader.load(sample_stl_path)

        assert mesh2.triangles == mesh1.triangles
        assert mesh2.metadata.content_hash == mesh1.metadata.content_hash
