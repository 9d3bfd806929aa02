"""Application DTOs (no ORM dependency)."""

from authz_cache.application.dtos.authorization import (
    DocumentAssignment,
    DocumentRecord,
    RoleRecord,
    UserRecord,
)
from authz_cache.application.dtos.cache_stats import CacheStats, CacheTypeCounters
from authz_cache.application.dtos.health import (
    CacheHealthStatus,
    CachePerformanceHealth,
    CacheSizeHealth,
)
from authz_cache.application.dtos.memory import (
    CleanupResult,
    MemoryUsageInfo,
    OptimizationRecommendation,
)
from authz_cache.application.dtos.performance import (
    CacheEvent,
    CacheTypeEfficiency,
    PerformanceReport,
    TrendData,
)
from authz_cache.application.dtos.warmup import (
    CompleteWarmupResult,
    WarmupExecution,
    WarmupResult,
)

__all__ = [
    "CacheEvent",
    "CacheHealthStatus",
    "CachePerformanceHealth",
    "CacheSizeHealth",
    "CacheStats",
    "CacheTypeCounters",
    "CacheTypeEfficiency",
    "CleanupResult",
    "CompleteWarmupResult",
    "DocumentAssignment",
    "DocumentRecord",
    "MemoryUsageInfo",
    "OptimizationRecommendation",
    "PerformanceReport",
    "RoleRecord",
    "TrendData",
    "UserRecord",
    "WarmupExecution",
    "WarmupResult",
]
