"""Bulk cache warmup through PermissionCacheService (implements ICacheWarmupService).

Each warmup reads through the cache service so entries land with the
normal key layout and TTLs. Per-item failures are counted, not raised.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import TYPE_CHECKING, Any

from authz_cache.application.dtos.warmup import CompleteWarmupResult, WarmupResult
from authz_cache.domain.enums import CacheType
from authz_cache.infrastructure.cache.keys import split_assignment_access_key
from authz_cache.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from authz_cache.application.interfaces.repositories import IAuthorizationSource
    from authz_cache.application.services.permission_cache_service import (
        PermissionCacheService,
    )

logger = logging.getLogger(__name__)

POPULAR_DOCUMENTS_LIMIT = 50
POPULAR_USERS_LIMIT = 100
POPULAR_ASSIGNMENTS_MAX_OPERATIONS = 1000


class CacheWarmupService:
    """Re-populates the permission caches in bulk."""

    def __init__(
        self,
        cache_service: PermissionCacheService,
        source: IAuthorizationSource,
    ) -> None:
        self.cache_service = cache_service
        self.source = source

    async def _warm_each(
        self,
        label: str,
        list_items: Callable[[], Awaitable[list[Any]]],
        warm: Callable[[Any], Awaitable[Any]],
    ) -> WarmupResult:
        result = WarmupResult()
        logger.info("Starting %s warmup", label)
        try:
            items = await list_items()
            result.total_count = len(items)
            for item in items:
                try:
                    await warm(item)
                    result.success_count += 1
                except Exception as e:
                    logger.warning("Failed to warm %s for %s: %s", label, item, e)
                    result.failure_count += 1
            result.success = True
            logger.info(
                "%s warmup completed: %s succeeded, %s failed, %s total",
                label,
                result.success_count,
                result.failure_count,
                result.total_count,
            )
        except Exception as e:
            logger.exception("%s warmup failed", label)
            result.success = False
            result.error_message = str(e)
        result.finished_at = utc_now()
        return result

    async def warmup_user_permissions(self, limit: int | None = None) -> WarmupResult:
        """Load permission sets of all users (or the first `limit`)."""
        return await self._warm_each(
            "user permissions",
            lambda: self.source.list_usernames(limit),
            self.cache_service.preload_user_permissions,
        )

    async def warmup_document_public_status(self, limit: int | None = None) -> WarmupResult:
        """Load public flags of all documents (or the first `limit`)."""
        return await self._warm_each(
            "document public status",
            lambda: self.source.list_document_ids(limit),
            self.cache_service.is_document_public,
        )

    async def warmup_popular_document_assignments(self) -> WarmupResult:
        """Load user-document assignments for the first documents x first users.

        Bounded to POPULAR_ASSIGNMENTS_MAX_OPERATIONS lookups.
        """

        async def pairs() -> list[tuple[str, str]]:
            document_ids = await self.source.list_document_ids(POPULAR_DOCUMENTS_LIMIT)
            user_ids = await self.source.list_user_ids(POPULAR_USERS_LIMIT)
            combined = [(u, d) for d in document_ids for u in user_ids]
            return combined[:POPULAR_ASSIGNMENTS_MAX_OPERATIONS]

        async def warm(pair: tuple[str, str]) -> None:
            user_id, document_id = pair
            await self.cache_service.get_user_document_assignments(user_id, document_id)

        return await self._warm_each("popular document assignments", pairs, warm)

    async def perform_complete_warmup(self) -> CompleteWarmupResult:
        """Run the three bulk warmups concurrently."""
        started_at = utc_now()
        logger.info("Starting complete cache warmup")
        user_permissions, document_public, document_assignments = await asyncio.gather(
            self.warmup_user_permissions(),
            self.warmup_document_public_status(),
            self.warmup_popular_document_assignments(),
        )
        result = CompleteWarmupResult(
            user_permissions=user_permissions,
            document_public=document_public,
            document_assignments=document_assignments,
            started_at=started_at,
            finished_at=utc_now(),
        )
        logger.info(
            "Complete cache warmup finished: %s succeeded, %s failed",
            result.total_success_count,
            result.total_failure_count,
        )
        return result

    async def warmup_keys(self, cache_type: CacheType, keys: Iterable[str]) -> WarmupResult:
        """Load specific entries by their access-tracking key.

        Keys are usernames, document ids, or assignment_access_key() values for
        user-document assignments.
        """
        key_list = list(keys)

        async def list_keys() -> list[str]:
            return key_list

        if cache_type == CacheType.USER_PERMISSIONS:
            warm = self.cache_service.preload_user_permissions
        elif cache_type == CacheType.DOCUMENT_PUBLIC:
            warm = self.cache_service.is_document_public
        elif cache_type == CacheType.DOCUMENT_ASSIGNMENTS:
            warm = self.cache_service.get_document_assignments
        else:

            async def warm(key: str) -> None:
                user_id, document_id = split_assignment_access_key(key)
                await self.cache_service.get_user_document_assignments(user_id, document_id)

        return await self._warm_each(f"{cache_type.value} keys", list_keys, warm)
