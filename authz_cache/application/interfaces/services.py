"""Service interfaces (ports) for the application layer.

Protocols define contracts for the backing store and the bulk warmup
service (DIP).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from authz_cache.application.dtos.warmup import CompleteWarmupResult, WarmupResult
    from authz_cache.domain.enums import CacheType


# Key/value store interface
class IKeyValueStore(Protocol):
    """Protocol for the remote key/value store backing the cache.

    Implementations raise CacheUnavailableException when a command cannot
    be served. Pattern syntax uses '*' as wildcard and ':' between namespaces.
    """

    def is_available(self) -> bool:
        """Return True if the store is connected and usable."""

    async def ping(self) -> bool:
        """Round-trip check; True when the store answered."""

    async def get(self, key: str) -> Any | None:
        """Return the stored (JSON-decoded) value or None on miss."""

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store value; with ttl in seconds when given."""

    async def delete(self, *keys: str) -> int:
        """Delete keys; return how many existed."""

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (scan + delete); return count deleted."""

    async def scan_keys(self, pattern: str, count: int = 1000) -> list[str]:
        """Return all keys matching pattern (incremental scan, non-blocking)."""

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds; -1 when no TTL is set, -2 when key is missing."""

    async def idle_time(self, key: str) -> int | None:
        """Seconds since the key was last accessed, or None if unknown."""

    async def memory_info(self) -> dict[str, Any]:
        """Memory section of the store's server info (used_memory, maxmemory)."""

    async def keyspace_info(self) -> dict[str, Any]:
        """Keyspace section of the store's server info (per-db key counts)."""

    async def background_compact(self) -> None:
        """Trigger an asynchronous background rewrite/compaction."""


# Warmup service interface
class ICacheWarmupService(Protocol):
    """Protocol for bulk re-population of the permission caches."""

    async def warmup_user_permissions(self, limit: int | None = None) -> WarmupResult:
        """Load permissions of all (or the first `limit`) users into the cache."""

    async def warmup_document_public_status(
        self, limit: int | None = None
    ) -> WarmupResult:
        """Load public flags of all (or the first `limit`) documents into the cache."""

    async def warmup_popular_document_assignments(self) -> WarmupResult:
        """Load user-document assignments for the most relevant pairs."""

    async def perform_complete_warmup(self) -> CompleteWarmupResult:
        """Run all three bulk warmups concurrently."""

    async def warmup_keys(self, cache_type: CacheType, keys: Iterable[str]) -> WarmupResult:
        """Load specific keys (as recorded by access tracking) of one cache type."""
