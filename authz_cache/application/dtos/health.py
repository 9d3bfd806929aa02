"""DTOs for cache health checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from authz_cache.shared.utils.datetime import utc_now


@dataclass
class CachePerformanceHealth:
    """Hit rate (percent) and average latency (ms) against health thresholds."""

    healthy: bool = False
    hit_rate: float = 0.0
    average_response_time: float = 0.0
    error_message: str | None = None


@dataclass
class CacheSizeHealth:
    """Total cached entries against the size threshold."""

    healthy: bool = False
    total_cache_size: int = 0
    warning_message: str | None = None
    error_message: str | None = None


@dataclass
class CacheHealthStatus:
    """Aggregate health of the cache subsystem."""

    healthy: bool = False
    store_connected: bool = False
    performance: CachePerformanceHealth | None = None
    size: CacheSizeHealth | None = None
    last_check_time: datetime = field(default_factory=utc_now)
    error_message: str | None = None

    def issues(self) -> list[str]:
        """Human-readable list of problems found (empty when healthy)."""
        found: list[str] = []
        if not self.store_connected:
            found.append("cache store unreachable")
        if self.performance is not None and not self.performance.healthy:
            found.append(
                f"performance degraded (hit rate {self.performance.hit_rate:.1f}%, "
                f"avg {self.performance.average_response_time:.0f}ms)"
            )
        if self.size is not None and not self.size.healthy:
            found.append(self.size.warning_message or "cache size check failed")
        if self.error_message:
            found.append(self.error_message)
        return found
