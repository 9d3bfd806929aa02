"""DTOs for memory optimization snapshots (never stored)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from authz_cache.shared.utils.datetime import utc_now

MEMORY_PRESSURE_RATIO = 0.8
CLEANUP_REQUIRED_RATIO = 0.9


@dataclass(frozen=True)
class MemoryUsageInfo:
    """Backing-store memory and keyspace snapshot."""

    used_memory: int
    max_memory: int
    usage_ratio: float
    key_count: int
    cache_type_counts: dict[str, int] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)
    pressure_ratio: float = MEMORY_PRESSURE_RATIO
    cleanup_ratio: float = CLEANUP_REQUIRED_RATIO

    def is_memory_pressure(self) -> bool:
        return self.usage_ratio > self.pressure_ratio

    def requires_cleanup(self) -> bool:
        return self.usage_ratio > self.cleanup_ratio

    @classmethod
    def empty(cls) -> MemoryUsageInfo:
        """Snapshot used when the store cannot be introspected."""
        return cls(used_memory=0, max_memory=0, usage_ratio=0.0, key_count=0)


@dataclass(frozen=True)
class CleanupResult:
    """Outcome of one cleanup pass.

    memory_freed is used_memory(before) - used_memory(after) and may be
    negative when concurrent writes grew usage during the pass.
    """

    keys_removed: int
    memory_freed: int
    duration_ms: int
    cache_type_cleanup: dict[str, int] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class OptimizationRecommendation:
    """Prioritized recommendation; priority 1-5, 5 is most urgent."""

    type: str
    description: str
    action: str
    priority: int
