"""Cache optimization jobs run by the periodic task scheduler.

- memory check (interval): start a cleanup when usage exceeds the threshold
- health check (interval): log issues; trigger a smart warmup on poor performance
- smart warmup (interval, business hours only)
- deep optimization (daily): cleanup, statistics reset and access-pattern reset
- weekly report: log it and store a JSON snapshot under the performance namespace
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

from authz_cache.domain.enums import CacheType
from authz_cache.domain.exceptions import CacheUnavailableException
from authz_cache.infrastructure.cache.keys import performance_key
from authz_cache.shared.utils.datetime import local_now

if TYPE_CHECKING:
    from authz_cache.application.dtos.warmup import WarmupExecution
    from authz_cache.application.interfaces.services import IKeyValueStore
    from authz_cache.application.services.cache_health_service import CacheHealthService
    from authz_cache.application.services.cache_memory_optimizer import (
        CacheMemoryOptimizer,
    )
    from authz_cache.application.services.cache_performance_analyzer import (
        CachePerformanceAnalyzer,
    )
    from authz_cache.application.services.cache_warmup_strategy import (
        CacheWarmupStrategy,
    )
    from authz_cache.application.services.permission_cache_service import (
        PermissionCacheService,
    )
    from authz_cache.core.config import Settings
    from authz_cache.infrastructure.scheduling.scheduler import PeriodicTaskScheduler

logger = logging.getLogger(__name__)

WEEKLY_REPORT_TTL_SECONDS = 30 * 24 * 3600


class CacheOptimizationJobs:
    """The optimization engine's periodic jobs; register() wires them into a scheduler."""

    def __init__(
        self,
        settings: Settings,
        store: IKeyValueStore,
        cache_service: PermissionCacheService,
        analyzer: CachePerformanceAnalyzer,
        memory_optimizer: CacheMemoryOptimizer,
        warmup_strategy: CacheWarmupStrategy,
        health_service: CacheHealthService,
    ) -> None:
        self.settings = settings
        self.store = store
        self.cache_service = cache_service
        self.analyzer = analyzer
        self.memory_optimizer = memory_optimizer
        self.warmup_strategy = warmup_strategy
        self.health_service = health_service

    def register(self, scheduler: PeriodicTaskScheduler) -> None:
        s = self.settings
        scheduler.add_interval("memory_check", s.memory_check_interval_seconds, self.check_memory_usage)
        scheduler.add_interval("health_check", s.health_check_interval_seconds, self.check_cache_health)
        scheduler.add_interval("smart_warmup", s.smart_warmup_interval_seconds, self.perform_smart_warmup)
        scheduler.add_daily("deep_optimization", s.deep_optimization_hour, self.perform_deep_optimization)
        scheduler.add_weekly(
            "weekly_report", s.weekly_report_weekday, s.weekly_report_hour, self.generate_weekly_report
        )

    def is_business_hour(self, hour: int) -> bool:
        return self.settings.business_hours_start <= hour <= self.settings.business_hours_end

    async def check_memory_usage(self) -> asyncio.Task[Any] | None:
        task = await self.memory_optimizer.scheduled_memory_check()
        if task is not None:
            task.add_done_callback(_log_cleanup_result)
        return task

    def sync_hit_rates(self) -> None:
        """Feed the analyzer's per-type hit rates (as 0-1) into the warmup strategy."""
        report = self.analyzer.get_performance_report()
        for name, efficiency in report.cache_efficiency.items():
            if efficiency.total_requests > 0:
                self.warmup_strategy.update_cache_hit_rate(
                    CacheType(name), efficiency.hit_rate / 100
                )

    def _start_smart_warmup(self) -> asyncio.Task[WarmupExecution]:
        self.sync_hit_rates()
        task = self.warmup_strategy.execute_smart_warmup()
        task.add_done_callback(_log_warmup_result)
        return task

    async def perform_smart_warmup(self) -> asyncio.Task[WarmupExecution] | None:
        """Start a smart warmup when inside business hours (does not wait for it)."""
        if not self.is_business_hour(local_now().hour):
            logger.debug("Outside business hours, skipping smart warmup")
            return None
        return self._start_smart_warmup()

    async def check_cache_health(self) -> asyncio.Task[WarmupExecution] | None:
        status = await self.health_service.check_cache_health()
        if status.healthy:
            return None
        logger.warning("Cache health check found issues: %s", "; ".join(status.issues()))
        if status.performance is not None and not status.performance.healthy:
            logger.info("Triggering smart warmup due to cache performance issues")
            return self._start_smart_warmup()
        return None

    async def perform_deep_optimization(self) -> list[BaseException | None]:
        """Run cleanup, statistics reset and pattern reset; each failure is logged, none aborts the others."""
        logger.info("Starting deep cache optimization")

        async def cleanup() -> None:
            result = await self.memory_optimizer.perform_cleanup()
            logger.info("Deep optimization cleanup removed %s keys", result.keys_removed)

        async def reset_statistics() -> None:
            self.analyzer.reset_statistics()
            self.cache_service.reset_counters()

        async def reset_patterns() -> None:
            self.warmup_strategy.reset_access_patterns()

        names = ("memory cleanup", "statistics reset", "access pattern reset")
        results = await asyncio.gather(
            cleanup(), reset_statistics(), reset_patterns(), return_exceptions=True
        )
        outcomes: list[BaseException | None] = []
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                logger.error("Deep optimization step %s failed", name, exc_info=result)
                outcomes.append(result)
            else:
                outcomes.append(None)
        logger.info(
            "Deep cache optimization completed (%s of %s steps succeeded)",
            outcomes.count(None),
            len(outcomes),
        )
        return outcomes

    async def generate_weekly_report(self) -> dict[str, Any]:
        """Log the weekly report and keep a 30-day snapshot in the store."""
        report = self.analyzer.get_performance_report()
        recommendations = await self.memory_optimizer.get_optimization_recommendations()
        stats = self.warmup_strategy.get_strategy_stats()
        snapshot = {
            "generated_at": local_now().isoformat(),
            "performance": asdict(report),
            "recommendations": [asdict(r) for r in recommendations],
            "warmup": {
                "strategy_enabled": stats["strategy_enabled"],
                "total_executions": stats["total_executions"],
                "successful_executions": stats["successful_executions"],
                "success_rate": stats["success_rate"],
            },
        }
        logger.info(
            "Weekly cache report: hit_rate=%.1f%% requests=%s avg=%sms evictions=%s",
            report.hit_rate,
            report.total_requests,
            report.avg_response_time,
            report.total_evictions,
        )
        for r in recommendations:
            logger.info("Weekly cache recommendation [%s] %s: %s", r.priority, r.type, r.action)

        year, week, _ = local_now().isocalendar()
        key = performance_key("weekly", f"{year}-W{week:02d}")
        try:
            await self.store.set(key, snapshot, ttl=WEEKLY_REPORT_TTL_SECONDS)
        except CacheUnavailableException as e:
            logger.warning("Could not store weekly report snapshot: %s", e.message)
        return snapshot


def _log_cleanup_result(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Memory cleanup failed", exc_info=error)
        return
    result = task.result()
    logger.info(
        "Memory cleanup finished: %s keys removed, %s bytes freed",
        result.keys_removed,
        result.memory_freed,
    )


def _log_warmup_result(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Smart warmup failed", exc_info=error)
        return
    execution = task.result()
    logger.info(
        "Smart warmup finished: strategy=%s items=%s",
        execution.strategy,
        execution.total_items_warmed,
    )
