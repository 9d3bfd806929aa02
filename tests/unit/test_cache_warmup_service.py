"""Unit tests for CacheWarmupService (bulk warmups through the cache service)."""

from unittest.mock import AsyncMock

import pytest

from authz_cache.application.services.cache_warmup_service import CacheWarmupService
from authz_cache.domain.enums import CacheType


@pytest.fixture
def warmup_service(cache_service, source) -> CacheWarmupService:
    return CacheWarmupService(cache_service, source)


@pytest.mark.asyncio
async def test_warmup_user_permissions_populates_cache(warmup_service, store) -> None:
    result = await warmup_service.warmup_user_permissions()

    assert result.success is True
    assert (result.success_count, result.failure_count, result.total_count) == (2, 0, 2)
    assert result.finished_at is not None
    assert store.data["cache:user_permissions:alice"] == ["document:read", "document:write"]
    assert "cache:user_permissions:bob" in store.data


@pytest.mark.asyncio
async def test_warmup_user_permissions_honours_limit(warmup_service, store) -> None:
    result = await warmup_service.warmup_user_permissions(limit=1)
    assert result.total_count == 1
    assert list(store.data) == ["cache:user_permissions:alice"]


@pytest.mark.asyncio
async def test_warmup_document_public_status(warmup_service, store) -> None:
    result = await warmup_service.warmup_document_public_status()
    assert result.success_count == 2
    assert store.data["cache:document_public:d1"] is True
    assert store.data["cache:document_public:d2"] is False


@pytest.mark.asyncio
async def test_warmup_popular_document_assignments(warmup_service, store) -> None:
    """Every (user, document) pair of the first documents and users is loaded."""
    result = await warmup_service.warmup_popular_document_assignments()

    assert result.success_count == 4
    assert "cache:user_document_assignments:u2:d2" in store.data
    assert store.data["cache:user_document_assignments:u2:d2"] == []


@pytest.mark.asyncio
async def test_warmup_keys_counts_item_failures(warmup_service) -> None:
    """Unknown users fail individually without aborting the batch."""
    result = await warmup_service.warmup_keys(
        CacheType.USER_DOCUMENT_ASSIGNMENTS, ["u1:d1", "ghost:d1", "u2:d1"]
    )

    assert result.success is True
    assert (result.success_count, result.failure_count, result.total_count) == (2, 1, 3)


@pytest.mark.asyncio
async def test_warmup_keys_per_cache_type(warmup_service, store) -> None:
    await warmup_service.warmup_keys(CacheType.USER_PERMISSIONS, ["bob"])
    await warmup_service.warmup_keys(CacheType.DOCUMENT_PUBLIC, ["d2"])
    await warmup_service.warmup_keys(CacheType.DOCUMENT_ASSIGNMENTS, ["d1"])

    assert set(store.data) == {
        "cache:user_permissions:bob",
        "cache:document_public:d2",
        "cache:document_assignments:d1",
    }


@pytest.mark.asyncio
async def test_listing_failure_marks_result_failed(warmup_service, source) -> None:
    source.list_usernames = AsyncMock(side_effect=RuntimeError("connection refused"))

    result = await warmup_service.warmup_user_permissions()

    assert result.success is False
    assert result.error_message == "connection refused"
    assert result.finished_at is not None


@pytest.mark.asyncio
async def test_perform_complete_warmup(warmup_service) -> None:
    result = await warmup_service.perform_complete_warmup()

    assert result.user_permissions.success_count == 2
    assert result.document_public.success_count == 2
    assert result.document_assignments.success_count == 4
    assert result.total_success_count == 8
    assert result.success is True
