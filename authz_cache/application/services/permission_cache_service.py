"""Permission cache service: cache-aside lookups over the authorization source.

Owns the four logical caches (user permissions, user-document assignments,
document public status, document assignments), their TTLs, the per-type
hit/miss counters, and every invalidation entry point.

Mutations of roles, permissions, user-role mappings, document visibility or
assignments must await the matching evict_* call before they are considered
complete. Use evict_after_commit() from the mutating code so a store outage
never fails the business transaction.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

from authz_cache.application.dtos.authorization import DocumentAssignment
from authz_cache.application.dtos.cache_stats import CacheStats, CacheTypeCounters
from authz_cache.core.config import Settings, get_settings
from authz_cache.domain.enums import AssignmentType, CacheType
from authz_cache.domain.exceptions import (
    CacheUnavailableException,
    ResourceNotFoundException,
)
from authz_cache.infrastructure.cache.keys import (
    assignment_access_key,
    cache_type_pattern,
    document_assignments_key,
    document_public_key,
    document_user_assignments_pattern,
    user_document_assignments_key,
    user_document_assignments_pattern,
    user_permissions_key,
)

if TYPE_CHECKING:
    from authz_cache.application.interfaces.repositories import IAuthorizationSource
    from authz_cache.application.interfaces.services import IKeyValueStore
    from authz_cache.application.services.access_patterns import AccessPatternTracker
    from authz_cache.application.services.cache_performance_analyzer import (
        CachePerformanceAnalyzer,
    )

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheCounters:
    """Thread-safe cumulative hit/miss/latency counters per cache type.

    Written only by PermissionCacheService; the analyzer reads snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits: dict[str, int] = {}
        self._misses: dict[str, int] = {}
        self._latency_ms: dict[str, int] = {}

    def record(self, cache_type: CacheType, is_hit: bool, execution_time_ms: int) -> None:
        name = cache_type.value
        with self._lock:
            target = self._hits if is_hit else self._misses
            target[name] = target.get(name, 0) + 1
            self._latency_ms[name] = self._latency_ms.get(name, 0) + execution_time_ms

    def snapshot(self) -> dict[str, CacheTypeCounters]:
        """Counters for every cache type (zeros for types never accessed)."""
        with self._lock:
            return {
                t.value: CacheTypeCounters(
                    hits=self._hits.get(t.value, 0),
                    misses=self._misses.get(t.value, 0),
                )
                for t in CacheType
            }

    def total_latency_ms(self) -> int:
        with self._lock:
            return sum(self._latency_ms.values())

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._misses.clear()
            self._latency_ms.clear()


class PermissionCacheService:
    """Cache-aside permission lookups with explicit hit/miss instrumentation.

    Each accessor checks the store, loads from the authorization source on
    a miss, writes the value back with the type's TTL, then records the
    access (counters, analyzer event, access pattern).
    """

    def __init__(
        self,
        store: IKeyValueStore,
        source: IAuthorizationSource,
        analyzer: CachePerformanceAnalyzer | None = None,
        counters: CacheCounters | None = None,
        access_tracker: AccessPatternTracker | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.store = store
        self.source = source
        self.analyzer = analyzer
        self.counters = counters or CacheCounters()
        self.access_tracker = access_tracker
        self.settings = settings or get_settings()
        # Bumped by every eviction; a load that straddles an eviction does not keep its write.
        self._epochs: dict[CacheType, int] = {t: 0 for t in CacheType}

    # ---- Cache-aside core ----

    async def _read(self, key: str) -> Any | None:
        try:
            return await self.store.get(key)
        except CacheUnavailableException as e:
            logger.warning("Cache read failed, loading from source: %s", e.message)
            return None

    async def _write(self, cache_type: CacheType, key: str, value: Any, epoch: int) -> None:
        if self._epochs[cache_type] != epoch:
            logger.debug("Skipping cache write for %s: evicted during load", key)
            return
        try:
            await self.store.set(key, value, ttl=self.settings.cache_ttl(cache_type))
            if self._epochs[cache_type] != epoch:
                await self.store.delete(key)
        except CacheUnavailableException as e:
            logger.warning("Cache write failed for %s: %s", key, e.message)

    async def _cache_aside(
        self,
        cache_type: CacheType,
        key: str,
        access_key: str,
        loader: Callable[[], Awaitable[T | None]],
        encode: Callable[[T], Any],
        decode: Callable[[Any], T],
        missing: Callable[[], T],
    ) -> T:
        """Return cached value or load, store and return it; always record the access.

        A loader returning None means "not in source": the caller gets
        missing() and nothing is cached.
        """
        start = time.perf_counter()
        is_hit = False
        try:
            cached = await self._read(key)
            if cached is not None:
                is_hit = True
                return decode(cached)
            epoch = self._epochs[cache_type]
            value = await loader()
            if value is None:
                return missing()
            await self._write(cache_type, key, encode(value), epoch)
            return value
        finally:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            self._record_access(cache_type, access_key, is_hit, elapsed_ms)

    def _record_access(
        self, cache_type: CacheType, access_key: str, is_hit: bool, elapsed_ms: int
    ) -> None:
        self.counters.record(cache_type, is_hit, elapsed_ms)
        if self.analyzer is not None:
            self.analyzer.record_cache_event(cache_type.value, elapsed_ms, is_hit)
        if self.access_tracker is not None:
            self.access_tracker.record_access(cache_type, access_key)

    # ---- Lookups ----

    async def get_user_permissions(self, username: str) -> set[str]:
        """Return the user's permission codes; empty set for unknown users (not cached)."""

        async def load() -> set[str] | None:
            user = await self.source.find_user_by_username(username)
            if user is None:
                return None
            return user.permission_codes()

        return await self._cache_aside(
            CacheType.USER_PERMISSIONS,
            user_permissions_key(username),
            username,
            load,
            encode=sorted,
            decode=set,
            missing=set,
        )

    async def has_permission(self, username: str, permission_code: str) -> bool:
        """Return True if the user holds permission_code."""
        return permission_code in await self.get_user_permissions(username)

    async def preload_user_permissions(self, username: str) -> None:
        """Populate the permission cache for one user (used by warmup)."""
        await self.get_user_permissions(username)

    async def get_user_document_assignments(
        self, user_id: str, document_id: str
    ) -> list[DocumentAssignment]:
        """Return the user's assignments on one document.

        Raises:
            ResourceNotFoundException: If the user does not exist.
        """

        async def load() -> list[DocumentAssignment]:
            if not await self.source.exists_user_by_id(user_id):
                raise ResourceNotFoundException("user", user_id)
            assignments = await self.source.find_document_assignments_by_user_id(user_id)
            return [a for a in assignments if a.document_id == document_id]

        return await self._cache_aside(
            CacheType.USER_DOCUMENT_ASSIGNMENTS,
            user_document_assignments_key(user_id, document_id),
            assignment_access_key(user_id, document_id),
            load,
            encode=_encode_assignments,
            decode=_decode_assignments,
            missing=list,
        )

    async def has_document_assignment(
        self, user_id: str, document_id: str, assignment_type: AssignmentType
    ) -> bool:
        """Return True if the user holds assignment_type on the document."""
        assignments = await self.get_user_document_assignments(user_id, document_id)
        return any(a.assignment_type == assignment_type for a in assignments)

    async def is_document_public(self, document_id: str) -> bool:
        """Return the document's public flag; False when the document does not exist."""

        async def load() -> bool:
            document = await self.source.find_document_by_id(document_id)
            return bool(document and document.is_public)

        return await self._cache_aside(
            CacheType.DOCUMENT_PUBLIC,
            document_public_key(document_id),
            document_id,
            load,
            encode=bool,
            decode=bool,
            missing=lambda: False,
        )

    async def get_document_assignments(self, document_id: str) -> list[DocumentAssignment]:
        """Return every assignment on the document.

        Raises:
            ResourceNotFoundException: If the document does not exist.
        """

        async def load() -> list[DocumentAssignment]:
            if not await self.source.exists_document_by_id(document_id):
                raise ResourceNotFoundException("document", document_id)
            return await self.source.find_document_assignments_by_document_id(document_id)

        return await self._cache_aside(
            CacheType.DOCUMENT_ASSIGNMENTS,
            document_assignments_key(document_id),
            document_id,
            load,
            encode=_encode_assignments,
            decode=_decode_assignments,
            missing=list,
        )

    async def is_user_assigned_to_document(
        self,
        user_id: str,
        document_id: str,
        assignment_type: AssignmentType | None = None,
    ) -> bool:
        """Return True if the user has any (or the given type of) assignment on the document."""
        assignments = await self.get_document_assignments(document_id)
        return any(
            a.user_id == user_id
            and (assignment_type is None or a.assignment_type == assignment_type)
            for a in assignments
        )

    # ---- Evictions ----
    # Store failures propagate as CacheUnavailableException; see evict_after_commit().

    def _bump(self, *cache_types: CacheType) -> None:
        for cache_type in cache_types:
            self._epochs[cache_type] += 1

    def _record_eviction(self, cache_type: CacheType) -> None:
        if self.analyzer is not None:
            self.analyzer.record_cache_eviction(cache_type.value)

    async def evict_user_permissions(self, username: str) -> None:
        """Invalidate one user's permission set."""
        self._bump(CacheType.USER_PERMISSIONS)
        await self.store.delete(user_permissions_key(username))
        self._record_eviction(CacheType.USER_PERMISSIONS)

    async def evict_user_permissions_by_id(self, user_id: str) -> None:
        """Invalidate one user's permission set, resolving the username by ID."""
        user = await self.source.find_user_by_id(user_id)
        if user is None:
            logger.debug("No user %s; nothing to evict", user_id)
            return
        await self.evict_user_permissions(user.username)

    async def evict_user_document_assignments(self, user_id: str) -> None:
        """Invalidate every cached assignment of one user (user_id:*)."""
        self._bump(CacheType.USER_DOCUMENT_ASSIGNMENTS)
        await self.store.delete_pattern(user_document_assignments_pattern(user_id))
        self._record_eviction(CacheType.USER_DOCUMENT_ASSIGNMENTS)

    async def evict_all_user_document_assignments_for_document(self, document_id: str) -> None:
        """Invalidate every user's cached assignments on one document (*:document_id)."""
        self._bump(CacheType.USER_DOCUMENT_ASSIGNMENTS)
        await self.store.delete_pattern(document_user_assignments_pattern(document_id))
        self._record_eviction(CacheType.USER_DOCUMENT_ASSIGNMENTS)

    async def evict_document_public_status(self, document_id: str) -> None:
        """Invalidate one document's public flag."""
        self._bump(CacheType.DOCUMENT_PUBLIC)
        await self.store.delete(document_public_key(document_id))
        self._record_eviction(CacheType.DOCUMENT_PUBLIC)

    async def evict_document_cache(self, document_id: str) -> None:
        """Invalidate everything cached about one document (status, visibility, deletion)."""
        self._bump(
            CacheType.DOCUMENT_PUBLIC,
            CacheType.DOCUMENT_ASSIGNMENTS,
            CacheType.USER_DOCUMENT_ASSIGNMENTS,
        )
        await self.store.delete(
            document_public_key(document_id), document_assignments_key(document_id)
        )
        await self.store.delete_pattern(document_user_assignments_pattern(document_id))
        self._record_eviction(CacheType.DOCUMENT_PUBLIC)
        self._record_eviction(CacheType.DOCUMENT_ASSIGNMENTS)
        self._record_eviction(CacheType.USER_DOCUMENT_ASSIGNMENTS)

    async def evict_all_user_caches(self, username: str, user_id: str) -> None:
        """Invalidate a user's permission set and all their assignments."""
        await self.evict_user_permissions(username)
        await self.evict_user_document_assignments(user_id)

    async def _evict_all(self, cache_type: CacheType) -> int:
        self._bump(cache_type)
        deleted = await self.store.delete_pattern(cache_type_pattern(cache_type))
        self._record_eviction(cache_type)
        logger.info("Evicted all %s entries (%s keys)", cache_type.value, deleted)
        return deleted

    async def evict_all_user_permissions(self) -> int:
        """Invalidate every cached permission set. Returns keys deleted."""
        return await self._evict_all(CacheType.USER_PERMISSIONS)

    async def evict_all_user_document_assignments(self) -> int:
        """Invalidate every cached user-document assignment list. Returns keys deleted."""
        return await self._evict_all(CacheType.USER_DOCUMENT_ASSIGNMENTS)

    async def evict_all_document_public_status(self) -> int:
        """Invalidate every cached public flag. Returns keys deleted."""
        return await self._evict_all(CacheType.DOCUMENT_PUBLIC)

    async def evict_all_document_assignments(self) -> int:
        """Invalidate every cached per-document assignment list. Returns keys deleted."""
        return await self._evict_all(CacheType.DOCUMENT_ASSIGNMENTS)

    # ---- Statistics ----

    async def _count_keys(self, cache_type: CacheType) -> int:
        try:
            return len(await self.store.scan_keys(cache_type_pattern(cache_type)))
        except CacheUnavailableException as e:
            logger.warning("Could not count %s keys: %s", cache_type.value, e.message)
            return 0

    async def get_cache_stats(self) -> CacheStats:
        """Key counts per logical cache plus cumulative hit/miss counters."""
        return CacheStats(
            user_permissions_cache_size=await self._count_keys(CacheType.USER_PERMISSIONS),
            user_document_assignments_cache_size=await self._count_keys(
                CacheType.USER_DOCUMENT_ASSIGNMENTS
            ),
            document_public_cache_size=await self._count_keys(CacheType.DOCUMENT_PUBLIC),
            document_assignments_cache_size=await self._count_keys(
                CacheType.DOCUMENT_ASSIGNMENTS
            ),
            counters=self.counters.snapshot(),
        )

    def reset_counters(self) -> None:
        """Zero the hit/miss counters (maintenance jobs)."""
        self.counters.reset()


def _encode_assignments(assignments: list[DocumentAssignment]) -> list[dict[str, Any]]:
    return [a.to_dict() for a in assignments]


def _decode_assignments(payload: list[dict[str, Any]]) -> list[DocumentAssignment]:
    return [DocumentAssignment.from_dict(item) for item in payload]


async def evict_after_commit(*evictions: Awaitable[Any]) -> int:
    """Run evictions after a committed mutation; never fail the mutation.

    Every eviction is awaited even when another one fails. Failures are
    logged (entries may stay stale until their TTL) and not retried inline.

    Returns:
        Number of evictions that completed.
    """
    results = await asyncio.gather(*evictions, return_exceptions=True)
    completed = 0
    for result in results:
        if isinstance(result, CacheUnavailableException):
            logger.warning(
                "Cache eviction failed after commit; entries may be stale until TTL: %s",
                result.message,
            )
        elif isinstance(result, Exception):
            logger.error(
                "Cache eviction failed after commit; entries may be stale until TTL",
                exc_info=result,
            )
        elif isinstance(result, BaseException):
            raise result
        else:
            completed += 1
    return completed
