"""
Process-local TTL cache shared by all tools of all clients.

Wraps cachetools.TTLCache and allows disabling caching entirely. When
disabled, every operation is a no-op returning the empty value for that
operation (None / False / 0), so callers only ever branch on returned
values, never on whether the cache is on.

The cache is a request-deduplication optimization, never a source of
correctness: get/set are not atomic across concurrent invocations, and two
handlers racing on one key both compute and the last write wins.
"""

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from mcpbridge.server.config import CacheConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheService:
    """
    Shared cache service.

    Example:
        cache = CacheService(CacheConfig(ttl_seconds=600))
        projects = cache.get("bugsnag:projects")
        if projects is None:
            projects = await api.list_projects()
            cache.set("bugsnag:projects", projects)
    """

    def __init__(
        self, config: "CacheConfig | None" = None, timer: Callable[[], float] = time.monotonic
    ) -> None:
        """
        Initialize the cache from configuration.

        Args:
            config: Cache settings (defaults: enabled, 24h TTL)
            timer: Clock used for expiry
        """
        if config is None:
            from mcpbridge.server.config import CacheConfig

            config = CacheConfig()

        self._enabled = config.enabled
        self._ttl_seconds = config.ttl_seconds
        self._cache: TTLCache | None = (
            TTLCache(maxsize=config.max_entries, ttl=config.ttl_seconds, timer=timer)
            if self._enabled
            else None
        )
        self._stats = {"hits": 0, "misses": 0, "sets": 0, "deletes": 0}

        logger.debug(
            "Cache initialized (enabled=%s, ttl=%ss, max_entries=%s)",
            self._enabled,
            self._ttl_seconds,
            config.max_entries,
        )

    @property
    def ttl_seconds(self) -> int:
        """Time to live applied to every entry."""
        return self._ttl_seconds

    def get(self, key: str) -> Any | None:
        """Get a value from the cache, or None if missing, expired or disabled."""
        if self._cache is None:
            return None
        try:
            value = self._cache[key]
        except KeyError:
            self._stats["misses"] += 1
            return None
        self._stats["hits"] += 1
        return value

    def set(self, key: str, value: T) -> bool:
        """Set a value in the cache. Returns False when caching is disabled."""
        if self._cache is None:
            return False
        self._cache[key] = value
        self._stats["sets"] += 1
        return True

    def delete(self, key: str) -> int:
        """Delete a value from the cache. Returns the number of entries removed."""
        if self._cache is None:
            return 0
        try:
            del self._cache[key]
        except KeyError:
            return 0
        self._stats["deletes"] += 1
        return 1

    def flush_all(self) -> None:
        """Clear all cache entries."""
        if self._cache is not None:
            self._cache.clear()

    def is_enabled(self) -> bool:
        """Check if caching is enabled."""
        return self._enabled

    def get_stats(self) -> dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with hits, misses, hit_rate, size, etc.
        """
        lookups = self._stats["hits"] + self._stats["misses"]
        return {
            **self._stats,
            "enabled": self._enabled,
            "size": len(self._cache) if self._cache is not None else 0,
            "hit_rate": self._stats["hits"] / lookups if lookups else 0.0,
        }
