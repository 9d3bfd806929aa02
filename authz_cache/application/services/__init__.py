"""Application services: permission cache and its optimization engine."""

from authz_cache.application.services.access_patterns import (
    AccessPattern,
    AccessPatternTracker,
)
from authz_cache.application.services.cache_health_service import CacheHealthService
from authz_cache.application.services.cache_memory_optimizer import CacheMemoryOptimizer
from authz_cache.application.services.cache_performance_analyzer import (
    CachePerformanceAnalyzer,
)
from authz_cache.application.services.cache_warmup_service import CacheWarmupService
from authz_cache.application.services.cache_warmup_strategy import (
    CacheWarmupStrategy,
    select_strategy,
)
from authz_cache.application.services.permission_cache_service import (
    CacheCounters,
    PermissionCacheService,
    evict_after_commit,
)

__all__ = [
    "AccessPattern",
    "AccessPatternTracker",
    "CacheCounters",
    "CacheHealthService",
    "CacheMemoryOptimizer",
    "CachePerformanceAnalyzer",
    "CacheWarmupService",
    "CacheWarmupStrategy",
    "PermissionCacheService",
    "evict_after_commit",
    "select_strategy",
]
