"""Cache health checks: store round trip, hit rate / latency, cache size."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from authz_cache.application.dtos.health import (
    CacheHealthStatus,
    CachePerformanceHealth,
    CacheSizeHealth,
)
from authz_cache.core.constants import CACHE_SIZE_HEALTHY_MAX, HEALTH_CHECK_KEY
from authz_cache.domain.exceptions import CacheUnavailableException

if TYPE_CHECKING:
    from authz_cache.application.interfaces.services import IKeyValueStore
    from authz_cache.application.services.cache_performance_analyzer import (
        CachePerformanceAnalyzer,
    )
    from authz_cache.application.services.permission_cache_service import (
        PermissionCacheService,
    )

logger = logging.getLogger(__name__)

HEALTHY_MIN_HIT_RATE = 70.0
HEALTHY_MAX_RESPONSE_TIME_MS = 100
_PROBE_VALUE = "ok"
_PROBE_TTL_SECONDS = 1


class CacheHealthService:
    """Aggregates store connectivity, performance and size into one status."""

    def __init__(
        self,
        store: IKeyValueStore,
        cache_service: PermissionCacheService,
        analyzer: CachePerformanceAnalyzer,
    ) -> None:
        self.store = store
        self.cache_service = cache_service
        self.analyzer = analyzer

    async def check_cache_health(self) -> CacheHealthStatus:
        status = CacheHealthStatus()
        status.store_connected = await self._check_store()
        status.performance = self._check_performance()
        status.size = await self._check_size()
        status.healthy = (
            status.store_connected and status.performance.healthy and status.size.healthy
        )
        return status

    async def _check_store(self) -> bool:
        """Set, read back and delete a probe key."""
        try:
            await self.store.set(HEALTH_CHECK_KEY, _PROBE_VALUE, ttl=_PROBE_TTL_SECONDS)
            value = await self.store.get(HEALTH_CHECK_KEY)
            await self.store.delete(HEALTH_CHECK_KEY)
        except CacheUnavailableException as e:
            logger.warning("Cache store probe failed: %s", e.message)
            return False
        return value == _PROBE_VALUE

    def _check_performance(self) -> CachePerformanceHealth:
        report = self.analyzer.get_performance_report()
        return CachePerformanceHealth(
            healthy=(
                report.hit_rate >= HEALTHY_MIN_HIT_RATE
                and report.avg_response_time <= HEALTHY_MAX_RESPONSE_TIME_MS
            ),
            hit_rate=report.hit_rate,
            average_response_time=report.avg_response_time,
        )

    async def _check_size(self) -> CacheSizeHealth:
        stats = await self.cache_service.get_cache_stats()
        size = CacheSizeHealth(total_cache_size=stats.total_cache_size)
        size.healthy = stats.total_cache_size < CACHE_SIZE_HEALTHY_MAX
        if not size.healthy:
            size.warning_message = (
                f"Cache holds {stats.total_cache_size} entries; review caching strategy"
            )
        return size
