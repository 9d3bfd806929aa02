"""Cache performance analysis: operation events, hourly trend and recommendations."""

from __future__ import annotations

import logging
import threading
from collections import deque

from authz_cache.application.dtos.performance import (
    CacheEvent,
    CacheTypeEfficiency,
    PerformanceReport,
    TrendData,
)
from authz_cache.application.services.permission_cache_service import CacheCounters
from authz_cache.core.constants import CACHE_EVENT_HISTORY_CAPACITY
from authz_cache.shared.utils.datetime import hour_bucket, local_now

logger = logging.getLogger(__name__)

LOW_HIT_RATE_PERCENT = 70.0
HIGH_HIT_RATE_PERCENT = 95.0
HIGH_RESPONSE_TIME_MS = 100
FREQUENT_EVICTIONS = 1000


def _rate(part: int, total: int) -> float:
    return part / total * 100 if total > 0 else 0.0


class CachePerformanceAnalyzer:
    """Collects cache events and builds performance reports.

    Hit/miss totals combine operations recorded here with the cache
    service's per-type counters, which this class only reads.
    """

    def __init__(
        self,
        counters: CacheCounters | None = None,
        history_capacity: int = CACHE_EVENT_HISTORY_CAPACITY,
    ) -> None:
        self.counters = counters or CacheCounters()
        self._lock = threading.Lock()
        self._history: deque[CacheEvent] = deque(maxlen=history_capacity)
        self._hits = 0
        self._misses = 0
        self._latency_ms = 0
        self._evictions = 0

    def record_cache_operation(
        self, operation_name: str, execution_time_ms: int, is_hit: bool
    ) -> None:
        """Count a hit or miss, add its latency and append it to the event history."""
        with self._lock:
            if is_hit:
                self._hits += 1
            else:
                self._misses += 1
            self._latency_ms += execution_time_ms
            self._history.append(
                CacheEvent(local_now(), operation_name, execution_time_ms, is_hit)
            )

    def record_cache_event(
        self, operation_name: str, execution_time_ms: int, is_hit: bool
    ) -> None:
        """Append an event already counted in the shared counters (trend only)."""
        with self._lock:
            self._history.append(
                CacheEvent(local_now(), operation_name, execution_time_ms, is_hit)
            )

    def record_cache_eviction(self, cache_name: str) -> None:
        with self._lock:
            self._evictions += 1
        logger.debug("Cache eviction recorded for %s", cache_name)

    def get_history(self) -> list[CacheEvent]:
        with self._lock:
            return list(self._history)

    def get_performance_report(self) -> PerformanceReport:
        """Build the report from shared counters, own counters and the event history."""
        per_type = self.counters.snapshot()
        shared_latency = self.counters.total_latency_ms()
        with self._lock:
            hits = self._hits + sum(c.hits for c in per_type.values())
            misses = self._misses + sum(c.misses for c in per_type.values())
            latency = self._latency_ms + shared_latency
            evictions = self._evictions
            history = list(self._history)

        total = hits + misses
        hit_rate = _rate(hits, total)
        miss_rate = _rate(misses, total)
        avg_response_time = latency // total if total > 0 else 0

        efficiency = {
            name: CacheTypeEfficiency(
                hit_rate=_rate(c.hits, c.total),
                total_requests=c.total,
                hits=c.hits,
                misses=c.misses,
            )
            for name, c in per_type.items()
        }

        return PerformanceReport(
            hit_rate=hit_rate,
            miss_rate=miss_rate,
            total_requests=total,
            avg_response_time=avg_response_time,
            total_evictions=evictions,
            performance_trend=_hourly_trend(history),
            cache_efficiency=efficiency,
            recommendations=_recommendations(hit_rate, avg_response_time, evictions),
        )

    def reset_statistics(self) -> None:
        """Zero this analyzer's counters and clear the event history."""
        with self._lock:
            self._hits = 0
            self._misses = 0
            self._latency_ms = 0
            self._evictions = 0
            self._history.clear()
        logger.info("Cache performance statistics reset")


def _hourly_trend(history: list[CacheEvent]) -> list[TrendData]:
    buckets: dict[str, list[CacheEvent]] = {}
    for event in history:
        buckets.setdefault(hour_bucket(event.timestamp), []).append(event)

    trend = []
    for label in sorted(buckets):
        events = buckets[label]
        hits = sum(1 for e in events if e.is_hit)
        trend.append(
            TrendData(
                time_label=label,
                hit_rate=_rate(hits, len(events)),
                avg_response_time=sum(e.execution_time_ms for e in events) / len(events),
                request_count=len(events),
            )
        )
    return trend


def _recommendations(hit_rate: float, avg_response_time: int, evictions: int) -> list[str]:
    recommendations = []
    if hit_rate < LOW_HIT_RATE_PERCENT:
        recommendations.append(f"Cache hit rate is low ({hit_rate:.1f}%); increase TTL")
    if hit_rate > HIGH_HIT_RATE_PERCENT:
        recommendations.append(
            f"Cache hit rate is very high ({hit_rate:.1f}%); TTL could shrink to save memory"
        )
    if avg_response_time > HIGH_RESPONSE_TIME_MS:
        recommendations.append(
            f"Average response time is high ({avg_response_time} ms); check connection config"
        )
    if evictions > FREQUENT_EVICTIONS:
        recommendations.append("Evictions are frequent; optimize invalidation strategy")
    if not recommendations:
        recommendations.append("Cache performance is healthy; keep current configuration")
    return recommendations
