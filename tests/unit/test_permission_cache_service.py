"""Unit tests for PermissionCacheService (cache-aside, evictions, fallback, stats)."""

import pytest

from authz_cache.application.dtos.authorization import DocumentAssignment
from authz_cache.application.services.permission_cache_service import (
    CacheCounters,
    evict_after_commit,
)
from authz_cache.domain.enums import AssignmentType, CacheType
from authz_cache.domain.exceptions import (
    CacheUnavailableException,
    ResourceNotFoundException,
)

USER_KEY = "cache:user_permissions:alice"


@pytest.mark.asyncio
async def test_get_user_permissions_miss_then_hit(cache_service, store, source, counters) -> None:
    """First lookup loads from source and caches with the user TTL; second is a hit."""
    first = await cache_service.get_user_permissions("alice")
    second = await cache_service.get_user_permissions("alice")

    assert first == {"document:read", "document:write"}
    assert second == first
    assert source.calls["find_user_by_username"] == 1
    assert store.ttls[USER_KEY] == 300
    snapshot = counters.snapshot()[CacheType.USER_PERMISSIONS.value]
    assert snapshot.hits == 1
    assert snapshot.misses == 1


@pytest.mark.asyncio
async def test_unknown_user_is_empty_miss_and_not_cached(cache_service, store, counters) -> None:
    """Unknown username returns an empty set, counts as a miss and leaves no entry."""
    assert await cache_service.get_user_permissions("nobody") == set()
    assert "cache:user_permissions:nobody" not in store.data
    assert counters.snapshot()[CacheType.USER_PERMISSIONS.value].misses == 1


@pytest.mark.asyncio
async def test_usernames_with_separator_are_valid(cache_service, store, source, counters) -> None:
    """Usernames containing ':' resolve, cache and evict like any other."""
    assert await cache_service.get_user_permissions("corp:nobody") == set()
    assert counters.snapshot()[CacheType.USER_PERMISSIONS.value].misses == 1

    source.add_user("u9", "corp:alice", editor={"document:read"})
    assert await cache_service.get_user_permissions("corp:alice") == {"document:read"}
    assert "cache:user_permissions:corp%3Aalice" in store.data

    assert await evict_after_commit(cache_service.evict_user_permissions("corp:alice")) == 1
    assert "cache:user_permissions:corp%3Aalice" not in store.data


@pytest.mark.asyncio
async def test_has_permission(cache_service) -> None:
    """has_permission checks membership in the cached permission set."""
    assert await cache_service.has_permission("bob", "document:read") is True
    assert await cache_service.has_permission("bob", "document:write") is False
    assert await cache_service.has_permission("nobody", "document:read") is False


@pytest.mark.asyncio
async def test_eviction_forces_fresh_load(cache_service, source) -> None:
    """A read after evict_user_permissions returns the source's current value."""
    await cache_service.get_user_permissions("bob")
    source.add_user("u2", "bob", viewer={"document:read"}, approver={"document:approve"})

    assert await cache_service.get_user_permissions("bob") == {"document:read"}
    await cache_service.evict_user_permissions("bob")
    assert await cache_service.get_user_permissions("bob") == {
        "document:read",
        "document:approve",
    }


@pytest.mark.asyncio
async def test_evict_user_permissions_by_id_resolves_username(cache_service, store) -> None:
    """Evicting by user id removes the username-keyed entry; unknown ids are ignored."""
    await cache_service.get_user_permissions("alice")
    await cache_service.evict_user_permissions_by_id("missing")
    assert USER_KEY in store.data

    await cache_service.evict_user_permissions_by_id("u1")
    assert USER_KEY not in store.data


@pytest.mark.asyncio
async def test_load_straddling_eviction_does_not_write_back(cache_service, store, source) -> None:
    """An eviction that lands while a miss is loading keeps the stale value out of the store."""
    original = source.find_user_by_username

    async def load_then_evict(username):
        user = await original(username)
        await cache_service.evict_user_permissions(username)
        return user

    source.find_user_by_username = load_then_evict
    await cache_service.get_user_permissions("alice")
    assert USER_KEY not in store.data

    source.find_user_by_username = original
    await cache_service.get_user_permissions("alice")
    assert USER_KEY in store.data


@pytest.mark.asyncio
async def test_store_outage_falls_back_to_source(cache_service, store, source, counters) -> None:
    """Reads during a store outage load from the source and count as misses."""
    store.available = False

    assert await cache_service.get_user_permissions("alice") == {
        "document:read",
        "document:write",
    }
    assert await cache_service.is_document_public("d1") is True
    assert source.calls["find_user_by_username"] == 1
    stats = await cache_service.get_cache_stats()
    assert stats.total_cache_size == 0
    assert counters.snapshot()[CacheType.USER_PERMISSIONS.value].misses == 1


@pytest.mark.asyncio
async def test_eviction_propagates_store_outage(cache_service, store) -> None:
    """Evictions surface CacheUnavailableException to the caller."""
    store.available = False
    with pytest.raises(CacheUnavailableException):
        await cache_service.evict_user_permissions("alice")


@pytest.mark.asyncio
async def test_evict_after_commit_swallows_outage(cache_service, store) -> None:
    """evict_after_commit logs outages and reports how many evictions completed."""
    completed = await evict_after_commit(
        cache_service.evict_user_permissions("alice"),
        cache_service.evict_document_public_status("d1"),
    )
    assert completed == 2

    store.available = False
    completed = await evict_after_commit(
        cache_service.evict_user_permissions("alice"),
        cache_service.evict_document_public_status("d1"),
    )
    assert completed == 0


@pytest.mark.asyncio
async def test_evict_after_commit_runs_every_eviction_when_one_fails(
    cache_service, store, source, monkeypatch, caplog
) -> None:
    """A non-cache error in one eviction is logged and the others still run."""
    await cache_service.is_document_public("d1")

    async def broken_lookup(user_id: str) -> None:
        raise RuntimeError("db down")

    monkeypatch.setattr(source, "find_user_by_id", broken_lookup)

    completed = await evict_after_commit(
        cache_service.evict_user_permissions_by_id("u1"),
        cache_service.evict_document_public_status("d1"),
    )

    assert completed == 1
    assert "cache:document_public:d1" not in store.data
    assert "Cache eviction failed after commit" in caplog.text


@pytest.mark.asyncio
async def test_user_document_assignments_filtered_by_document(cache_service) -> None:
    """User-document assignments contain only the requested document."""
    assignments = await cache_service.get_user_document_assignments("u1", "d1")
    assert assignments == [DocumentAssignment("d1", "u1", AssignmentType.EDITOR)]

    cached = await cache_service.get_user_document_assignments("u1", "d1")
    assert cached == assignments
    assert await cache_service.has_document_assignment("u1", "d1", AssignmentType.EDITOR)
    assert not await cache_service.has_document_assignment("u1", "d1", AssignmentType.APPROVER)


@pytest.mark.asyncio
async def test_user_document_assignments_unknown_user_raises(cache_service, counters) -> None:
    """Unknown user id raises ResourceNotFoundException and still counts the access."""
    with pytest.raises(ResourceNotFoundException) as exc_info:
        await cache_service.get_user_document_assignments("ghost", "d1")
    assert exc_info.value.details == {"resource_type": "user", "resource_id": "ghost"}
    assert counters.snapshot()[CacheType.USER_DOCUMENT_ASSIGNMENTS.value].misses == 1


@pytest.mark.asyncio
async def test_document_public_status(cache_service, store) -> None:
    """Public flag is cached with its TTL; missing documents read as not public."""
    assert await cache_service.is_document_public("d1") is True
    assert await cache_service.is_document_public("d2") is False
    assert await cache_service.is_document_public("gone") is False
    assert store.ttls["cache:document_public:d1"] == 600
    assert store.data["cache:document_public:d2"] is False


@pytest.mark.asyncio
async def test_document_assignments(cache_service) -> None:
    """Document assignments list every user; unknown documents raise."""
    assignments = await cache_service.get_document_assignments("d1")
    assert {a.user_id for a in assignments} == {"u1", "u2"}
    assert await cache_service.is_user_assigned_to_document("u2", "d1")
    assert await cache_service.is_user_assigned_to_document(
        "u2", "d1", AssignmentType.APPROVER
    )
    assert not await cache_service.is_user_assigned_to_document(
        "u2", "d1", AssignmentType.EDITOR
    )
    with pytest.raises(ResourceNotFoundException):
        await cache_service.get_document_assignments("gone")


@pytest.mark.asyncio
async def test_evict_document_cache_scope(cache_service, store, analyzer) -> None:
    """evict_document_cache removes every entry about the document and nothing else."""
    await cache_service.is_document_public("d1")
    await cache_service.get_document_assignments("d1")
    await cache_service.get_user_document_assignments("u1", "d1")
    await cache_service.get_user_document_assignments("u1", "d2")

    await cache_service.evict_document_cache("d1")

    assert "cache:document_public:d1" not in store.data
    assert "cache:document_assignments:d1" not in store.data
    assert "cache:user_document_assignments:u1:d1" not in store.data
    assert "cache:user_document_assignments:u1:d2" in store.data
    assert analyzer.get_performance_report().total_evictions == 3


@pytest.mark.asyncio
async def test_evict_user_document_assignments_pattern(cache_service, store) -> None:
    """Evicting a user's assignments removes user_id:* only."""
    await cache_service.get_user_document_assignments("u1", "d1")
    await cache_service.get_user_document_assignments("u2", "d1")

    await cache_service.evict_user_document_assignments("u1")

    assert "cache:user_document_assignments:u1:d1" not in store.data
    assert "cache:user_document_assignments:u2:d1" in store.data

    await cache_service.evict_all_user_document_assignments_for_document("d1")
    assert "cache:user_document_assignments:u2:d1" not in store.data


@pytest.mark.asyncio
async def test_evict_all_user_caches(cache_service, store) -> None:
    """evict_all_user_caches clears the permission set and every assignment of the user."""
    await cache_service.get_user_permissions("alice")
    await cache_service.get_user_document_assignments("u1", "d2")

    await cache_service.evict_all_user_caches("alice", "u1")

    assert USER_KEY not in store.data
    assert "cache:user_document_assignments:u1:d2" not in store.data


@pytest.mark.asyncio
async def test_evict_all_by_type_returns_count_and_records_eviction(
    cache_service, store, analyzer
) -> None:
    """Bulk evictions return deleted key counts and record one eviction each."""
    await cache_service.get_user_permissions("alice")
    await cache_service.get_user_permissions("bob")
    await cache_service.is_document_public("d1")

    assert await cache_service.evict_all_user_permissions() == 2
    assert await cache_service.evict_all_document_public_status() == 1
    assert await cache_service.evict_all_document_assignments() == 0
    assert await cache_service.evict_all_user_document_assignments() == 0
    assert "cache:document_public:d1" not in store.data
    assert analyzer.get_performance_report().total_evictions == 4


@pytest.mark.asyncio
async def test_get_cache_stats_counts_keys_and_counters(cache_service) -> None:
    """Stats report key counts per logical cache and the cumulative counters."""
    await cache_service.get_user_permissions("alice")
    await cache_service.get_user_permissions("alice")
    await cache_service.is_document_public("d1")
    await cache_service.get_user_document_assignments("u1", "d1")
    await cache_service.get_document_assignments("d2")

    stats = await cache_service.get_cache_stats()

    assert stats.user_permissions_cache_size == 1
    assert stats.document_public_cache_size == 1
    assert stats.user_document_assignments_cache_size == 1
    assert stats.document_assignments_cache_size == 1
    assert stats.total_cache_size == 4
    assert stats.total_hits == 1
    assert stats.total_misses == 4

    cache_service.reset_counters()
    assert (await cache_service.get_cache_stats()).total_hits == 0


@pytest.mark.asyncio
async def test_accesses_feed_tracker_and_analyzer(cache_service, tracker, analyzer) -> None:
    """Every lookup registers an access pattern and an analyzer event."""
    await cache_service.get_user_permissions("alice")
    await cache_service.get_user_permissions("alice")
    await cache_service.get_user_document_assignments("u1", "d1")

    patterns = tracker.snapshot()
    assert patterns[CacheType.USER_PERMISSIONS].key_access["alice"] == 2
    assert patterns[CacheType.USER_DOCUMENT_ASSIGNMENTS].get_popular_keys(1) == ["u1:d1"]

    history = analyzer.get_history()
    assert [e.operation_name for e in history] == [
        "user_permissions",
        "user_permissions",
        "user_document_assignments",
    ]
    assert [e.is_hit for e in history] == [False, True, False]


def test_cache_counters_snapshot_covers_every_type() -> None:
    """Snapshot has zeroed counters for types never accessed."""
    counters = CacheCounters()
    counters.record(CacheType.DOCUMENT_PUBLIC, True, 3)
    counters.record(CacheType.DOCUMENT_PUBLIC, False, 5)

    snapshot = counters.snapshot()

    assert set(snapshot) == set(CacheType.values())
    assert snapshot["document_public"].total == 2
    assert snapshot["user_permissions"].total == 0
    assert counters.total_latency_ms() == 8
    counters.reset()
    assert counters.total_latency_ms() == 0
