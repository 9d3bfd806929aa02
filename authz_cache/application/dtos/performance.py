"""DTOs for cache performance analysis (events, trend, report)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class CacheEvent:
    """One recorded cache operation (kept in the bounded event history)."""

    timestamp: datetime
    operation_name: str
    execution_time_ms: int
    is_hit: bool


@dataclass(frozen=True)
class TrendData:
    """Aggregates for one hourly bucket (label format yyyy-MM-dd HH)."""

    time_label: str
    hit_rate: float
    avg_response_time: float
    request_count: int


@dataclass(frozen=True)
class CacheTypeEfficiency:
    """Hit rate (percent) and counters for one cache type."""

    hit_rate: float
    total_requests: int
    hits: int
    misses: int


@dataclass(frozen=True)
class PerformanceReport:
    """Report produced by CachePerformanceAnalyzer.get_performance_report().

    Rates are percentages (0-100). avg_response_time is integer milliseconds.
    """

    hit_rate: float
    miss_rate: float
    total_requests: int
    avg_response_time: int
    total_evictions: int
    performance_trend: list[TrendData] = field(default_factory=list)
    cache_efficiency: dict[str, CacheTypeEfficiency] = field(default_factory=dict)
    recommendations: list[str] = field(default_factory=list)
