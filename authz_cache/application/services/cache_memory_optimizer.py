"""Cache memory optimizer.

Monitors backing-store memory and keyspace, runs cleanup passes (stale
performance snapshots, idle cached lookups, background compaction) and
produces prioritized optimization recommendations.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

import psutil

from authz_cache.application.dtos.memory import (
    CleanupResult,
    MemoryUsageInfo,
    OptimizationRecommendation,
)
from authz_cache.core.config import Settings, get_settings
from authz_cache.core.constants import IDLE_KEY_MAX_SECONDS, KEY_COUNT_HIGH
from authz_cache.domain.enums import CacheType
from authz_cache.domain.exceptions import CacheUnavailableException
from authz_cache.infrastructure.cache.keys import (
    cache_namespace_pattern,
    cache_type_pattern,
    performance_namespace_pattern,
    stats_namespace_pattern,
)
from authz_cache.shared.utils.datetime import local_now

if TYPE_CHECKING:
    from authz_cache.application.interfaces.services import IKeyValueStore
    from authz_cache.application.services.cache_performance_analyzer import (
        CachePerformanceAnalyzer,
    )

logger = logging.getLogger(__name__)

CLEANUP_PERFORMANCE = "performance"
CLEANUP_LOW_HIT_RATE = "low_hit_rate"
CLEANUP_IDLE = "idle"

STATS_COUNT_NAME = "statistics"
PERFORMANCE_COUNT_NAME = "performance"


class CacheMemoryOptimizer:
    """Memory monitoring, cleanup and recommendations for the cache store."""

    def __init__(
        self,
        store: IKeyValueStore,
        analyzer: CachePerformanceAnalyzer | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.analyzer = analyzer
        self.settings = settings or get_settings()
        self._background_tasks: set[asyncio.Task[Any]] = set()

    @property
    def enabled(self) -> bool:
        return self.settings.memory_optimization_enabled

    # ---- Introspection ----

    async def get_memory_usage_info(self) -> MemoryUsageInfo:
        """Snapshot of store memory, key count and per-cache-type key counts.

        Returns an all-zero snapshot when the store cannot be introspected.
        """
        try:
            info = await self.store.memory_info()
            used_memory = int(info.get("used_memory", 0))
            max_memory = int(info.get("maxmemory", 0))
            if max_memory == 0:
                # No maxmemory configured: the host ceiling is the effective limit
                max_memory = psutil.virtual_memory().total
            usage_ratio = used_memory / max_memory if max_memory > 0 else 0.0
            return MemoryUsageInfo(
                used_memory=used_memory,
                max_memory=max_memory,
                usage_ratio=usage_ratio,
                key_count=await self._key_count(),
                cache_type_counts=await self._cache_type_counts(),
                pressure_ratio=self.settings.memory_max_usage_ratio,
                cleanup_ratio=self.settings.memory_cleanup_threshold,
            )
        except CacheUnavailableException as e:
            logger.error("Failed to get memory usage info: %s", e.message)
            return MemoryUsageInfo.empty()

    async def _key_count(self) -> int:
        try:
            keyspace = await self.store.keyspace_info()
        except CacheUnavailableException as e:
            logger.warning("Failed to get key count: %s", e.message)
            return 0
        total = 0
        for db, stats in keyspace.items():
            if db.startswith("db") and isinstance(stats, dict):
                total += int(stats.get("keys", 0))
        return total

    async def _count_keys(self, pattern: str) -> int:
        try:
            return len(
                await self.store.scan_keys(pattern, count=self.settings.memory_batch_size)
            )
        except CacheUnavailableException as e:
            logger.warning("Failed to count keys with pattern %s: %s", pattern, e.message)
            return 0

    async def _cache_type_counts(self) -> dict[str, int]:
        counts = {t.value: await self._count_keys(cache_type_pattern(t)) for t in CacheType}
        counts[STATS_COUNT_NAME] = await self._count_keys(stats_namespace_pattern())
        counts[PERFORMANCE_COUNT_NAME] = await self._count_keys(performance_namespace_pattern())
        return counts

    # ---- Cleanup ----

    def perform_cleanup(self) -> asyncio.Task[CleanupResult]:
        """Start a cleanup pass in the background and return its task.

        Must be called from a running event loop. Await the task for the result.
        """
        task = asyncio.create_task(self._run_cleanup(), name="cache-memory-cleanup")
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _run_cleanup(self) -> CleanupResult:
        if not self.enabled:
            logger.info("Cache memory optimization is disabled")
            return CleanupResult(keys_removed=0, memory_freed=0, duration_ms=0)

        start = time.perf_counter()
        memory_before = (await self.get_memory_usage_info()).used_memory
        logger.info("Starting cache memory cleanup")

        removed = {
            CLEANUP_PERFORMANCE: await self._cleanup_stale_performance_data(),
            CLEANUP_LOW_HIT_RATE: await self._cleanup_low_hit_rate_items(),
            CLEANUP_IDLE: await self._cleanup_idle_items(),
        }
        await self._compact()

        memory_after = (await self.get_memory_usage_info()).used_memory
        result = CleanupResult(
            keys_removed=sum(removed.values()),
            memory_freed=memory_before - memory_after,
            duration_ms=int((time.perf_counter() - start) * 1000),
            cache_type_cleanup=removed,
        )
        logger.info(
            "Cache cleanup completed: %s keys removed, %s bytes freed in %sms",
            result.keys_removed,
            result.memory_freed,
            result.duration_ms,
        )
        return result

    async def _delete_in_batches(self, keys: list[str]) -> int:
        batch_size = self.settings.memory_batch_size
        for i in range(0, len(keys), batch_size):
            await self.store.delete(*keys[i : i + batch_size])
        return len(keys)

    async def _cleanup_stale_performance_data(self) -> int:
        """Delete performance snapshots without a TTL (orphaned)."""
        try:
            keys = await self.store.scan_keys(
                performance_namespace_pattern(), count=self.settings.memory_batch_size
            )
            stale = []
            for key in keys:
                try:
                    if await self.store.ttl(key) == -1:
                        stale.append(key)
                except CacheUnavailableException as e:
                    logger.warning("Failed to check TTL for key %s: %s", key, e.message)
            removed = await self._delete_in_batches(stale)
            if removed:
                logger.info("Cleaned up %s performance data keys", removed)
            return removed
        except CacheUnavailableException as e:
            logger.error("Failed to clean up performance data: %s", e.message)
            return 0

    async def _cleanup_low_hit_rate_items(self) -> int:
        """Reserved: per-key hit rates are not tracked, so nothing is removed."""
        return 0

    async def _cleanup_idle_items(self) -> int:
        """Delete cached lookups idle for longer than IDLE_KEY_MAX_SECONDS."""
        try:
            keys = await self.store.scan_keys(
                cache_namespace_pattern(), count=self.settings.memory_batch_size
            )
            idle = []
            for key in keys:
                try:
                    idle_seconds = await self.store.idle_time(key)
                except CacheUnavailableException as e:
                    logger.warning("Failed to check idle time for key %s: %s", key, e.message)
                    continue
                if idle_seconds is not None and idle_seconds > IDLE_KEY_MAX_SECONDS:
                    idle.append(key)
            removed = await self._delete_in_batches(idle)
            if removed:
                logger.info("Cleaned up %s idle cache keys", removed)
            return removed
        except CacheUnavailableException as e:
            logger.error("Failed to clean up idle items: %s", e.message)
            return 0

    async def _compact(self) -> None:
        try:
            await self.store.background_compact()
        except CacheUnavailableException as e:
            logger.warning("Failed to initiate memory compaction: %s", e.message)

    # ---- Recommendations ----

    async def get_optimization_recommendations(self) -> list[OptimizationRecommendation]:
        """Recommendations sorted by descending priority."""
        info = await self.get_memory_usage_info()
        recommendations: list[OptimizationRecommendation] = []

        if info.requires_cleanup():
            recommendations.append(
                OptimizationRecommendation(
                    type="MEMORY_CRITICAL",
                    description=f"Memory usage is critically high ({info.usage_ratio * 100:.1f}%)",
                    action="Immediate cleanup required. Consider reducing cache TTL or increasing memory limit.",
                    priority=5,
                )
            )
        elif info.is_memory_pressure():
            recommendations.append(
                OptimizationRecommendation(
                    type="MEMORY_WARNING",
                    description=f"Memory usage is high ({info.usage_ratio * 100:.1f}%)",
                    action="Schedule cleanup or monitor closely. Consider optimizing cache policies.",
                    priority=3,
                )
            )

        if info.key_count > KEY_COUNT_HIGH:
            recommendations.append(
                OptimizationRecommendation(
                    type="KEY_COUNT_HIGH",
                    description=f"High number of cache keys ({info.key_count})",
                    action="Consider implementing key expiration policies or data partitioning.",
                    priority=2,
                )
            )

        total_keys = sum(info.cache_type_counts.values())
        if total_keys > 0:
            for cache_type, count in info.cache_type_counts.items():
                share = count / total_keys
                if share > 0.5:
                    recommendations.append(
                        OptimizationRecommendation(
                            type="CACHE_IMBALANCE",
                            description=f"{cache_type} cache dominates ({share * 100:.1f}% of total keys)",
                            action=f"Consider optimizing {cache_type} cache policies or implementing data archiving.",
                            priority=2,
                        )
                    )

        if self.analyzer is not None:
            report = self.analyzer.get_performance_report()
            if report.hit_rate < 70.0:
                recommendations.append(
                    OptimizationRecommendation(
                        type="LOW_HIT_RATE",
                        description=f"Overall cache hit rate is low ({report.hit_rate:.1f}%)",
                        action="Review cache warming strategies and access patterns.",
                        priority=4,
                    )
                )
            if report.avg_response_time > 50:
                recommendations.append(
                    OptimizationRecommendation(
                        type="HIGH_RESPONSE_TIME",
                        description=f"Average response time is high ({report.avg_response_time}ms)",
                        action="Check network latency and Redis configuration. Consider connection pooling optimization.",
                        priority=3,
                    )
                )

        recommendations.sort(key=lambda r: r.priority, reverse=True)
        return recommendations

    # ---- Scheduled / tuning ----

    async def scheduled_memory_check(self) -> asyncio.Task[CleanupResult] | None:
        """Check usage and start a cleanup when above the threshold.

        Returns the cleanup task when one was started; does not wait for it.
        """
        if not self.enabled:
            return None
        info = await self.get_memory_usage_info()
        logger.debug(
            "Memory usage check: used=%s max=%s ratio=%.2f keys=%s",
            info.used_memory,
            info.max_memory,
            info.usage_ratio,
            info.key_count,
        )
        if info.requires_cleanup():
            logger.warning(
                "Memory usage exceeds cleanup threshold (%.0f%%), initiating cleanup",
                self.settings.memory_cleanup_threshold * 100,
            )
            return self.perform_cleanup()
        return None

    def suggest_cache_ttl(self, cache_type: CacheType, hit_rate: float) -> int:
        """Suggested TTL (seconds) for a cache type given its hit rate (0-1).

        High hit rates stretch the TTL by the extension factor, low ones
        shrink it by the same factor; otherwise the configured TTL stands.
        """
        ttl = self.settings.cache_ttl(cache_type)
        if not self.enabled:
            return ttl
        factor = self.settings.memory_ttl_extension_factor
        if hit_rate > 0.9:
            logger.info("High hit rate for %s, suggesting TTL extension", cache_type.value)
            return int(ttl * factor)
        if hit_rate < 0.5:
            logger.info("Low hit rate for %s, suggesting TTL reduction", cache_type.value)
            return max(1, int(ttl / factor))
        return ttl

    async def get_optimization_stats(self) -> dict[str, Any]:
        return {
            "memory_usage": await self.get_memory_usage_info(),
            "recommendations": await self.get_optimization_recommendations(),
            "optimization_enabled": self.enabled,
            "last_check_time": local_now(),
        }
