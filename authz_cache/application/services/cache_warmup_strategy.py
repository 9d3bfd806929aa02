"""Smart cache warmup: picks a warmup strategy from memory, time of day and access patterns.

Strategies are considered in priority order (first match wins):

1. MEMORY_PRESSURE_RELIEF: store memory ratio above warmup_max_memory_usage;
   warm user permissions only, capped at half the batch size.
2. PEAK_HOUR_PREPARATION: current or next hour is a peak hour; warm user
   permissions and document public status in full.
3. LOW_HIT_RATE_RECOVERY: a tracked cache type's hit rate is below
   warmup_min_hit_rate; warm only the lowest one.
4. ADAPTIVE_LEARNING: at least two cache types tracked and no adaptive run
   in the last ADAPTIVE_LEARNING_COOLDOWN_HOURS; warm each type's popular keys.
5. SCHEDULED_MAINTENANCE: complete warmup of every cache.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections import deque
from collections.abc import Collection, Mapping
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from authz_cache.application.dtos.warmup import WarmupExecution
from authz_cache.application.services.access_patterns import (
    AccessPattern,
    AccessPatternTracker,
)
from authz_cache.core.config import Settings, get_settings
from authz_cache.core.constants import (
    ADAPTIVE_LEARNING_COOLDOWN_HOURS,
    WARMUP_HISTORY_CAPACITY,
)
from authz_cache.domain.enums import CacheType, WarmupStrategyType
from authz_cache.shared.utils.datetime import local_now, utc_now

if TYPE_CHECKING:
    from authz_cache.application.interfaces.services import ICacheWarmupService
    from authz_cache.application.services.cache_memory_optimizer import (
        CacheMemoryOptimizer,
    )

logger = logging.getLogger(__name__)

DISABLED_STRATEGY = "DISABLED"
ERROR_STRATEGY = "ERROR"
COMPLETED_REASON = "Completed successfully"


def select_strategy(
    *,
    current_hour: int,
    memory_ratio: float,
    hit_rates: Mapping[CacheType, float],
    pattern_count: int,
    recent_adaptive_runs: int,
    peak_hours: Collection[int],
    min_hit_rate: float,
    max_memory_usage: float,
) -> WarmupStrategyType:
    """Pick the warmup strategy for the given inputs (pure, first match wins)."""
    if memory_ratio > max_memory_usage:
        return WarmupStrategyType.MEMORY_PRESSURE_RELIEF
    if current_hour in peak_hours or (current_hour + 1) % 24 in peak_hours:
        return WarmupStrategyType.PEAK_HOUR_PREPARATION
    if any(rate < min_hit_rate for rate in hit_rates.values()):
        return WarmupStrategyType.LOW_HIT_RATE_RECOVERY
    if pattern_count >= 2 and recent_adaptive_runs == 0:
        return WarmupStrategyType.ADAPTIVE_LEARNING
    return WarmupStrategyType.SCHEDULED_MAINTENANCE


class CacheWarmupStrategy:
    """Chooses and runs warmup strategies; keeps a bounded execution history."""

    def __init__(
        self,
        warmup_service: ICacheWarmupService,
        memory_optimizer: CacheMemoryOptimizer,
        tracker: AccessPatternTracker | None = None,
        settings: Settings | None = None,
        history_capacity: int = WARMUP_HISTORY_CAPACITY,
    ) -> None:
        self.warmup_service = warmup_service
        self.memory_optimizer = memory_optimizer
        self.tracker = tracker if tracker is not None else AccessPatternTracker()
        self.settings = settings or get_settings()
        self._history_lock = threading.Lock()
        self._history: deque[WarmupExecution] = deque(maxlen=history_capacity)
        self._background_tasks: set[asyncio.Task[Any]] = set()

    @property
    def enabled(self) -> bool:
        return self.settings.warmup_strategy_enabled

    @property
    def batch_size(self) -> int:
        return self.settings.warmup_batch_size

    # ---- Access tracking ----

    def record_cache_access(self, cache_type: CacheType, key: str) -> None:
        """Count an access to key in the current hour."""
        if not self.enabled:
            return
        self.tracker.record_access(cache_type, key)

    def update_cache_hit_rate(self, cache_type: CacheType, hit_rate: float) -> None:
        """Overwrite the tracked hit rate (0-1) of an already tracked cache type."""
        if not self.enabled:
            return
        self.tracker.update_hit_rate(cache_type, hit_rate)

    # ---- Strategy selection ----

    def _recent_adaptive_runs(self) -> int:
        cutoff = utc_now() - timedelta(hours=ADAPTIVE_LEARNING_COOLDOWN_HOURS)
        with self._history_lock:
            return sum(
                1
                for e in self._history
                if e.strategy == WarmupStrategyType.ADAPTIVE_LEARNING.value
                and e.execution_time > cutoff
            )

    async def determine_optimal_strategy(self) -> WarmupStrategyType:
        """Gather current inputs and select a strategy."""
        memory_info = await self.memory_optimizer.get_memory_usage_info()
        return select_strategy(
            current_hour=local_now().hour,
            memory_ratio=memory_info.usage_ratio,
            hit_rates=self.tracker.hit_rates(),
            pattern_count=len(self.tracker),
            recent_adaptive_runs=self._recent_adaptive_runs(),
            peak_hours=self.settings.peak_hours,
            min_hit_rate=self.settings.warmup_min_hit_rate,
            max_memory_usage=self.settings.warmup_max_memory_usage,
        )

    # ---- Execution ----

    def execute_smart_warmup(self) -> asyncio.Task[WarmupExecution]:
        """Start a smart warmup in the background and return its task.

        Must be called from a running event loop. The execution is appended
        to the history whatever its outcome.
        """
        task = asyncio.create_task(self._run_smart_warmup(), name="cache-smart-warmup")
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _run_smart_warmup(self) -> WarmupExecution:
        if not self.enabled:
            return WarmupExecution(
                strategy=DISABLED_STRATEGY,
                items_warmed={},
                duration_ms=0,
                successful=False,
                reason="Strategy disabled",
            )

        start = time.perf_counter()
        strategy: WarmupStrategyType | None = None
        try:
            strategy = await self.determine_optimal_strategy()
            logger.info("Executing smart warmup with strategy: %s", strategy.value)
            items_warmed = await self._execute(strategy)
            execution = WarmupExecution(
                strategy=strategy.value,
                items_warmed=items_warmed,
                duration_ms=int((time.perf_counter() - start) * 1000),
                successful=True,
                reason=COMPLETED_REASON,
            )
            logger.info(
                "Smart warmup completed: strategy=%s items=%s duration=%sms",
                execution.strategy,
                execution.total_items_warmed,
                execution.duration_ms,
            )
        except Exception as e:
            logger.exception("Smart warmup failed")
            execution = WarmupExecution(
                strategy=strategy.value if strategy is not None else ERROR_STRATEGY,
                items_warmed={},
                duration_ms=int((time.perf_counter() - start) * 1000),
                successful=False,
                reason=str(e),
            )
        self._record_execution(execution)
        return execution

    async def _execute(self, strategy: WarmupStrategyType) -> dict[str, int]:
        if strategy == WarmupStrategyType.MEMORY_PRESSURE_RELIEF:
            return await self._memory_pressure_relief()
        if strategy == WarmupStrategyType.PEAK_HOUR_PREPARATION:
            return await self._peak_hour_preparation()
        if strategy == WarmupStrategyType.LOW_HIT_RATE_RECOVERY:
            return await self._low_hit_rate_recovery()
        if strategy == WarmupStrategyType.ADAPTIVE_LEARNING:
            return await self._adaptive_learning()
        return await self._scheduled_maintenance()

    async def _memory_pressure_relief(self) -> dict[str, int]:
        """Warm only user permissions, capped at half the batch size."""
        cap = self.batch_size // 2
        result = await self.warmup_service.warmup_user_permissions(limit=cap)
        return {CacheType.USER_PERMISSIONS.value: min(result.success_count, cap)}

    async def _peak_hour_preparation(self) -> dict[str, int]:
        users = await self.warmup_service.warmup_user_permissions()
        documents = await self.warmup_service.warmup_document_public_status()
        return {
            CacheType.USER_PERMISSIONS.value: users.success_count,
            CacheType.DOCUMENT_PUBLIC.value: documents.success_count,
        }

    async def _low_hit_rate_recovery(self) -> dict[str, int]:
        hit_rates = self.tracker.hit_rates()
        # min() keeps the first-tracked type on ties
        lowest = (
            min(hit_rates, key=hit_rates.__getitem__)
            if hit_rates
            else CacheType.USER_PERMISSIONS
        )
        if lowest == CacheType.USER_PERMISSIONS:
            result = await self.warmup_service.warmup_user_permissions()
        elif lowest == CacheType.DOCUMENT_PUBLIC:
            result = await self.warmup_service.warmup_document_public_status()
        elif lowest == CacheType.USER_DOCUMENT_ASSIGNMENTS:
            result = await self.warmup_service.warmup_popular_document_assignments()
        else:
            popular = self.tracker.snapshot()[lowest].get_popular_keys(self.batch_size)
            result = await self.warmup_service.warmup_keys(lowest, popular)
        logger.info(
            "Low hit rate recovery for %s warmed %s entries",
            lowest.value,
            result.success_count,
        )
        return {lowest.value: result.success_count}

    async def _adaptive_learning(self) -> dict[str, int]:
        items: dict[str, int] = {}
        for cache_type, pattern in self.tracker.snapshot().items():
            popular = pattern.get_popular_keys(self.batch_size)
            if not popular:
                continue
            result = await self.warmup_service.warmup_keys(cache_type, popular)
            items[cache_type.value] = result.success_count
        return items

    async def _scheduled_maintenance(self) -> dict[str, int]:
        result = await self.warmup_service.perform_complete_warmup()
        return {
            CacheType.USER_PERMISSIONS.value: result.user_permissions.success_count,
            CacheType.DOCUMENT_PUBLIC.value: result.document_public.success_count,
            CacheType.USER_DOCUMENT_ASSIGNMENTS.value: result.document_assignments.success_count,
        }

    def _record_execution(self, execution: WarmupExecution) -> None:
        with self._history_lock:
            self._history.append(execution)

    # ---- Introspection / maintenance ----

    def get_access_patterns(self) -> dict[CacheType, AccessPattern]:
        return self.tracker.snapshot()

    def get_warmup_history(self) -> list[WarmupExecution]:
        with self._history_lock:
            return list(self._history)

    def get_strategy_stats(self) -> dict[str, Any]:
        history = self.get_warmup_history()
        successful = sum(1 for e in history if e.successful)
        return {
            "strategy_enabled": self.enabled,
            "access_patterns": self.get_access_patterns(),
            "warmup_history": history,
            "peak_hours": sorted(self.settings.peak_hours),
            "min_hit_rate": self.settings.warmup_min_hit_rate,
            "max_memory_usage": self.settings.warmup_max_memory_usage,
            "batch_size": self.batch_size,
            "total_executions": len(history),
            "successful_executions": successful,
            "success_rate": successful / len(history) if history else 0.0,
        }

    def reset_access_patterns(self) -> None:
        """Drop every tracked access pattern."""
        self.tracker.reset()
        logger.info("Access patterns reset")

    def clear_warmup_history(self) -> None:
        with self._history_lock:
            self._history.clear()
        logger.info("Warmup history cleared")
