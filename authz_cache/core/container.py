"""Subsystem wiring: builds every cache component once, in dependency order.

counters -> analyzer -> cache service -> optimizer -> warmup service ->
warmup strategy -> health service -> jobs. No component holds a lazy
reference back up this chain.
"""

from __future__ import annotations

from dataclasses import dataclass

from authz_cache.application.interfaces.repositories import IAuthorizationSource
from authz_cache.application.interfaces.services import IKeyValueStore
from authz_cache.application.services.access_patterns import AccessPatternTracker
from authz_cache.application.services.cache_health_service import CacheHealthService
from authz_cache.application.services.cache_memory_optimizer import CacheMemoryOptimizer
from authz_cache.application.services.cache_performance_analyzer import (
    CachePerformanceAnalyzer,
)
from authz_cache.application.services.cache_warmup_service import CacheWarmupService
from authz_cache.application.services.cache_warmup_strategy import CacheWarmupStrategy
from authz_cache.application.services.permission_cache_service import (
    CacheCounters,
    PermissionCacheService,
)
from authz_cache.core.config import Settings
from authz_cache.infrastructure.scheduling.jobs import CacheOptimizationJobs
from authz_cache.infrastructure.scheduling.scheduler import PeriodicTaskScheduler


@dataclass
class CacheSubsystem:
    """Every component of the permission cache, built by build_cache_subsystem()."""

    settings: Settings
    store: IKeyValueStore
    source: IAuthorizationSource
    counters: CacheCounters
    access_tracker: AccessPatternTracker
    analyzer: CachePerformanceAnalyzer
    cache_service: PermissionCacheService
    memory_optimizer: CacheMemoryOptimizer
    warmup_service: CacheWarmupService
    warmup_strategy: CacheWarmupStrategy
    health_service: CacheHealthService
    jobs: CacheOptimizationJobs
    scheduler: PeriodicTaskScheduler


def build_cache_subsystem(
    settings: Settings,
    store: IKeyValueStore,
    source: IAuthorizationSource,
) -> CacheSubsystem:
    """Wire the subsystem. Access tracking is only attached when the warmup strategy is enabled."""
    counters = CacheCounters()
    tracker = AccessPatternTracker()
    analyzer = CachePerformanceAnalyzer(counters)
    cache_service = PermissionCacheService(
        store,
        source,
        analyzer=analyzer,
        counters=counters,
        access_tracker=tracker if settings.warmup_strategy_enabled else None,
        settings=settings,
    )
    memory_optimizer = CacheMemoryOptimizer(store, analyzer, settings)
    warmup_service = CacheWarmupService(cache_service, source)
    warmup_strategy = CacheWarmupStrategy(warmup_service, memory_optimizer, tracker, settings)
    health_service = CacheHealthService(store, cache_service, analyzer)
    jobs = CacheOptimizationJobs(
        settings,
        store,
        cache_service,
        analyzer,
        memory_optimizer,
        warmup_strategy,
        health_service,
    )
    scheduler = PeriodicTaskScheduler()
    jobs.register(scheduler)
    return CacheSubsystem(
        settings=settings,
        store=store,
        source=source,
        counters=counters,
        access_tracker=tracker,
        analyzer=analyzer,
        cache_service=cache_service,
        memory_optimizer=memory_optimizer,
        warmup_service=warmup_service,
        warmup_strategy=warmup_strategy,
        health_service=health_service,
        jobs=jobs,
        scheduler=scheduler,
    )
