"""Access-pattern tracking per cache type.

Fed by PermissionCacheService on every lookup and read by
CacheWarmupStrategy to pick peak hours and popular keys.
"""

from __future__ import annotations

import threading
from collections import Counter
from datetime import datetime

from authz_cache.domain.enums import CacheType
from authz_cache.shared.utils.datetime import local_now

PEAK_HOURS_LIMIT = 3


class AccessPattern:
    """Hourly and per-key access counts for one cache type.

    Counter preserves first-insertion order, so most_common() breaks ties
    by the order keys (or hours) were first seen.
    """

    def __init__(self, cache_type: CacheType) -> None:
        self.cache_type = cache_type
        self.hourly_access: Counter[int] = Counter()
        self.key_access: Counter[str] = Counter()
        self.average_hit_rate = 0.0
        self.last_updated: datetime = local_now()

    def record_access(self, key: str, hour: int) -> None:
        self.hourly_access[hour] += 1
        self.key_access[key] += 1
        self.last_updated = local_now()

    def update_hit_rate(self, hit_rate: float) -> None:
        self.average_hit_rate = hit_rate
        self.last_updated = local_now()

    def get_peak_hours(self) -> list[int]:
        """Top three busiest hours of the day."""
        return [hour for hour, _ in self.hourly_access.most_common(PEAK_HOURS_LIMIT)]

    def get_popular_keys(self, limit: int) -> list[str]:
        """Most accessed keys, at most limit."""
        if limit <= 0:
            return []
        return [key for key, _ in self.key_access.most_common(limit)]

    def copy(self) -> AccessPattern:
        clone = AccessPattern(self.cache_type)
        clone.hourly_access = Counter(self.hourly_access)
        clone.key_access = Counter(self.key_access)
        clone.average_hit_rate = self.average_hit_rate
        clone.last_updated = self.last_updated
        return clone


class AccessPatternTracker:
    """Thread-safe map of CacheType -> AccessPattern."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._patterns: dict[CacheType, AccessPattern] = {}

    def record_access(self, cache_type: CacheType, key: str, hour: int | None = None) -> None:
        if hour is None:
            hour = local_now().hour
        with self._lock:
            pattern = self._patterns.get(cache_type)
            if pattern is None:
                pattern = self._patterns[cache_type] = AccessPattern(cache_type)
            pattern.record_access(key, hour)

    def update_hit_rate(self, cache_type: CacheType, hit_rate: float) -> bool:
        """Overwrite the tracked hit rate; returns False when the type has no pattern yet."""
        with self._lock:
            pattern = self._patterns.get(cache_type)
            if pattern is None:
                return False
            pattern.update_hit_rate(hit_rate)
            return True

    def snapshot(self) -> dict[CacheType, AccessPattern]:
        """Independent copies of every tracked pattern."""
        with self._lock:
            return {t: p.copy() for t, p in self._patterns.items()}

    def hit_rates(self) -> dict[CacheType, float]:
        with self._lock:
            return {t: p.average_hit_rate for t, p in self._patterns.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._patterns)

    def reset(self) -> None:
        with self._lock:
            self._patterns.clear()
