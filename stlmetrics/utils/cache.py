"""Caching system for stlmetrics using DiskCache."""

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from diskcache import Cache

from stlmetrics.core.config import CacheConfig
from stlmetrics.core.exceptions import CacheError

logger = logging.getLogger(__name__)


class CacheManager:
    """Caches decoded meshes and derived statistics on disk.

    Keys are built from a SHA-256 of the file content plus a hash of the
    parameters that influence the result, so a modified file never hits a
    stale entry.
    """

    # TTL values in seconds
    TTL_MESH = 7 * 24 * 3600        # 7 days
    TTL_STATISTICS = 3 * 24 * 3600  # 3 days

    def __init__(self, config: Optional[CacheConfig] = None):
        """Initialize cache manager.

        Args:
            config: Cache configuration
        """
        if config is None:
            config = CacheConfig()

        self.config = config
        self.enabled = config.enabled

        if not self.enabled:
            logger.info("Cache disabled")
            return

        self.cache_dir = Path(config.cache_dir)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self.cache = Cache(
                str(self.cache_dir / "meshes"),
                size_limit=int(config.max_size_gb * 1024**3),
                eviction_policy="least-recently-used",
            )
        except OSError as e:
            raise CacheError(
                f"Cannot open cache at {self.cache_dir}: {e}",
                details={"cache_dir": str(self.cache_dir)},
            ) from e

        logger.info(f"Cache initialized at {self.cache_dir}")
        logger.info(f"Cache size limit: {config.max_size_gb}GB")

    @staticmethod
    def hash_bytes(data: bytes) -> str:
        """First 16 characters of the SHA-256 of ``data``."""
        return hashlib.sha256(data).hexdigest()[:16]

    def content_key(
        self,
        data: bytes,
        params: Optional[Dict[str, Any]] = None,
        prefix: str = "",
    ) -> str:
        """Generate cache key from in-memory content and parameters.

        Args:
            data: Raw file bytes
            params: Optional parameters dict
            prefix: Optional key prefix

        Returns:
            Cache key string
        """
        param_hash = ""
        if params:
            param_str = json.dumps(params, sort_keys=True, default=str)
            param_hash = hashlib.md5(param_str.encode()).hexdigest()[:8]

        key_parts = [prefix] if prefix else []
        key_parts.extend([self.hash_bytes(data), param_hash])
        return "_".join(filter(None, key_parts))

    def generate_key(
        self,
        file_path: Union[str, Path],
        params: Optional[Dict[str, Any]] = None,
        prefix: str = "",
    ) -> str:
        """Generate cache key from a file's content and parameters.

        Args:
            file_path: Path to file
            params: Optional parameters dict
            prefix: Optional key prefix

        Returns:
            Cache key string
        """
        return self.content_key(Path(file_path).read_bytes(), params=params, prefix=prefix)

    def get(self, key: str, default: Any = None) -> Any:
        """Get value from cache.

        Args:
            key: Cache key
            default: Default value if not found

        Returns:
            Cached value or default
        """
        if not self.enabled:
            return default

        try:
            value = self.cache.get(key, default)
        except Exception as e:
            logger.warning(f"Cache get error: {e}")
            return default

        if value is default:
            logger.debug(f"Cache miss: {key}")
        else:
            logger.debug(f"Cache hit: {key}")
        return value

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        tag: Optional[str] = None,
    ) -> None:
        """Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds
            tag: Optional tag for grouped operations
        """
        if not self.enabled:
            return

        expire = ttl if ttl else self.config.ttl_days * 24 * 3600
        try:
            self.cache.set(key, value, expire=expire, tag=tag)
        except Exception as e:
            logger.warning(f"Cache set error: {e}")
            return
        logger.debug(f"Cache set: {key} (TTL: {expire}s)")

    def delete(self, key: str) -> bool:
        """Delete key from cache.

        Returns:
            True if deleted, False otherwise
        """
        if not self.enabled:
            return False

        try:
            result = self.cache.delete(key)
        except Exception as e:
            logger.warning(f"Cache delete error: {e}")
            return False

        if result:
            logger.debug(f"Cache delete: {key}")
        return bool(result)

    def clear(self) -> int:
        """Clear entire cache.

        Returns:
            Number of entries removed
        """
        if not self.enabled:
            return 0

        removed = self.cache.clear()
        logger.info("Cache cleared")
        return removed

    def evict_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries evicted
        """
        if not self.enabled:
            return 0
        return self.cache.expire()

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with cache statistics
        """
        if not self.enabled:
            return {"enabled": False}

        hits, misses = self.cache.stats(enable=True)
        size_bytes = self.cache.volume()
        total = hits + misses
        return {
            "enabled": True,
            "location": str(self.cache_dir),
            "size_limit_gb": self.config.max_size_gb,
            "entries": len(self.cache),
            "size_bytes": size_bytes,
            "size_mb": size_bytes / 1024 / 1024,
            "hits": hits,
            "misses": misses,
            "hit_rate": hits / total if total > 0 else 0.0,
        }

    def cache_mesh(
        self,
        key: str,
        mesh: Any,
        ttl: Optional[int] = None,
    ) -> None:
        """Cache a decoded mesh.

        Args:
            key: Cache key
            mesh: MeshModel to cache
            ttl: Optional TTL override
        """
        self.set(f"mesh_{key}", mesh, ttl=ttl or self.TTL_MESH, tag="mesh")

    def get_mesh(self, key: str) -> Optional[Any]:
        """Get a cached mesh, or None."""
        return self.get(f"mesh_{key}")

    def cache_statistics(
        self,
        key: str,
        statistics: Any,
        ttl: Optional[int] = None,
    ) -> None:
        """Cache mesh statistics.

        Args:
            key: Cache key
            statistics: MeshStatistics to cache
            ttl: Optional TTL override
        """
        self.set(f"stats_{key}", statistics, ttl=ttl or self.TTL_STATISTICS, tag="statistics")

    def get_statistics(self, key: str) -> Optional[Any]:
        """Get cached mesh statistics, or None."""
        return self.get(f"stats_{key}")

    def close(self) -> None:
        if self.enabled:
            self.cache.close()


def create_cache_manager(
    config: Optional[CacheConfig] = None
) -> CacheManager:
    """Create a cache manager instance.

    Args:
        config: Optional cache configuration

    Returns:
        CacheManager instance
    """
    return CacheManager(config)
