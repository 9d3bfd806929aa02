"""DTOs for cache statistics (key counts and hit/miss counters)."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CacheTypeCounters:
    """Cumulative hit/miss counters for one logical cache."""

    hits: int = 0
    misses: int = 0

    @property
    def total(self) -> int:
        return self.hits + self.misses


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time cache statistics from PermissionCacheService.get_cache_stats()."""

    user_permissions_cache_size: int
    user_document_assignments_cache_size: int
    document_public_cache_size: int
    document_assignments_cache_size: int
    counters: dict[str, CacheTypeCounters]

    @property
    def total_cache_size(self) -> int:
        return (
            self.user_permissions_cache_size
            + self.user_document_assignments_cache_size
            + self.document_public_cache_size
            + self.document_assignments_cache_size
        )

    @property
    def total_hits(self) -> int:
        return sum(c.hits for c in self.counters.values())

    @property
    def total_misses(self) -> int:
        return sum(c.misses for c in self.counters.values())
