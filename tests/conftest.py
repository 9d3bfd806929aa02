"""Pytest configuration and fixtures for authz-cache.

Unit tests run against in-memory fakes of the key/value store and the
authorization source. DB-dependent fixtures skip when DATABASE_URL is unset.
"""

from __future__ import annotations

import fnmatch
import json
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from authz_cache.application.dtos.authorization import (
    DocumentAssignment,
    DocumentRecord,
    RoleRecord,
    UserRecord,
)
from authz_cache.application.services.access_patterns import AccessPatternTracker
from authz_cache.application.services.cache_performance_analyzer import (
    CachePerformanceAnalyzer,
)
from authz_cache.application.services.permission_cache_service import (
    CacheCounters,
    PermissionCacheService,
)
from authz_cache.core.config import Settings
from authz_cache.domain.enums import AssignmentType
from authz_cache.domain.exceptions import CacheUnavailableException


class FakeKeyValueStore:
    """In-memory IKeyValueStore with TTL/idle bookkeeping and an outage switch."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}
        self.idle: dict[str, int] = {}
        self.available = True
        self.calls: list[str] = []
        self.used_memory = 0
        self.max_memory = 0
        self.compactions = 0

    def _call(self, operation: str, key: str | None = None) -> None:
        self.calls.append(operation)
        if not self.available:
            raise CacheUnavailableException(operation, key)

    def seed(self, key: str, value: Any, ttl: int = -1, idle: int = 0) -> None:
        """Put a key directly (no call recorded)."""
        self.data[key] = value
        self.ttls[key] = ttl
        self.idle[key] = idle

    def is_available(self) -> bool:
        return self.available

    async def ping(self) -> bool:
        self._call("ping")
        return True

    async def get(self, key: str) -> Any | None:
        self._call("get", key)
        if key not in self.data:
            return None
        self.idle[key] = 0
        return json.loads(json.dumps(self.data[key]))

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self._call("set", key)
        self.data[key] = json.loads(json.dumps(value))
        self.ttls[key] = ttl if ttl is not None else -1
        self.idle[key] = 0

    async def delete(self, *keys: str) -> int:
        self._call("delete", ",".join(keys))
        removed = 0
        for key in keys:
            if key in self.data:
                removed += 1
                self.data.pop(key)
                self.ttls.pop(key, None)
                self.idle.pop(key, None)
        return removed

    async def scan_keys(self, pattern: str, count: int = 1000) -> list[str]:
        self._call("scan", pattern)
        return [k for k in self.data if fnmatch.fnmatchcase(k, pattern)]

    async def delete_pattern(self, pattern: str) -> int:
        self._call("delete_pattern", pattern)
        matched = [k for k in self.data if fnmatch.fnmatchcase(k, pattern)]
        for key in matched:
            self.data.pop(key)
            self.ttls.pop(key, None)
            self.idle.pop(key, None)
        return len(matched)

    async def ttl(self, key: str) -> int:
        self._call("ttl", key)
        if key not in self.data:
            return -2
        return self.ttls.get(key, -1)

    async def idle_time(self, key: str) -> int | None:
        self._call("idle_time", key)
        if key not in self.data:
            return None
        return self.idle.get(key, 0)

    async def memory_info(self) -> dict[str, Any]:
        self._call("info", "memory")
        return {"used_memory": self.used_memory, "maxmemory": self.max_memory}

    async def keyspace_info(self) -> dict[str, Any]:
        self._call("info", "keyspace")
        if not self.data:
            return {}
        return {"db0": {"keys": len(self.data), "expires": 0}}

    async def background_compact(self) -> None:
        self._call("bgrewriteaof")
        self.compactions += 1


class FakeAuthorizationSource:
    """In-memory IAuthorizationSource that counts lookups per method."""

    def __init__(self) -> None:
        self.users: dict[str, UserRecord] = {}
        self.documents: dict[str, DocumentRecord] = {}
        self.assignments: list[DocumentAssignment] = []
        self.calls: dict[str, int] = {}

    def _count(self, method: str) -> None:
        self.calls[method] = self.calls.get(method, 0) + 1

    def add_user(self, user_id: str, username: str, **roles: set[str]) -> UserRecord:
        user = UserRecord(
            id=user_id,
            username=username,
            roles=tuple(RoleRecord(code, frozenset(perms)) for code, perms in roles.items()),
        )
        self.users[username] = user
        return user

    def add_document(self, document_id: str, is_public: bool = False) -> None:
        self.documents[document_id] = DocumentRecord(id=document_id, is_public=is_public)

    def assign(self, document_id: str, user_id: str, assignment_type: AssignmentType) -> None:
        self.assignments.append(DocumentAssignment(document_id, user_id, assignment_type))

    async def find_user_by_username(self, username: str) -> UserRecord | None:
        self._count("find_user_by_username")
        return self.users.get(username)

    async def find_user_by_id(self, user_id: str) -> UserRecord | None:
        self._count("find_user_by_id")
        return next((u for u in self.users.values() if u.id == user_id), None)

    async def find_document_by_id(self, document_id: str) -> DocumentRecord | None:
        self._count("find_document_by_id")
        return self.documents.get(document_id)

    async def find_document_assignments_by_user_id(self, user_id: str) -> list[DocumentAssignment]:
        self._count("find_document_assignments_by_user_id")
        return [a for a in self.assignments if a.user_id == user_id]

    async def find_document_assignments_by_document_id(
        self, document_id: str
    ) -> list[DocumentAssignment]:
        self._count("find_document_assignments_by_document_id")
        return [a for a in self.assignments if a.document_id == document_id]

    async def exists_user_by_id(self, user_id: str) -> bool:
        self._count("exists_user_by_id")
        return any(u.id == user_id for u in self.users.values())

    async def exists_document_by_id(self, document_id: str) -> bool:
        self._count("exists_document_by_id")
        return document_id in self.documents

    async def list_usernames(self, limit: int | None = None) -> list[str]:
        names = list(self.users)
        return names[:limit] if limit is not None else names

    async def list_user_ids(self, limit: int | None = None) -> list[str]:
        ids = [u.id for u in self.users.values()]
        return ids[:limit] if limit is not None else ids

    async def list_document_ids(self, limit: int | None = None) -> list[str]:
        ids = list(self.documents)
        return ids[:limit] if limit is not None else ids


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only (no .env), Redis and scheduler off."""
    return Settings(_env_file=None, redis_enabled=False, scheduler_enabled=False)


@pytest.fixture
def store() -> FakeKeyValueStore:
    return FakeKeyValueStore()


@pytest.fixture
def source() -> FakeAuthorizationSource:
    """Two users, two documents (d1 public), three assignments."""
    src = FakeAuthorizationSource()
    src.add_user("u1", "alice", editor={"document:read", "document:write"})
    src.add_user("u2", "bob", viewer={"document:read"})
    src.add_document("d1", is_public=True)
    src.add_document("d2", is_public=False)
    src.assign("d1", "u1", AssignmentType.EDITOR)
    src.assign("d1", "u2", AssignmentType.APPROVER)
    src.assign("d2", "u1", AssignmentType.APPROVER)
    return src


@pytest.fixture
def counters() -> CacheCounters:
    return CacheCounters()


@pytest.fixture
def tracker() -> AccessPatternTracker:
    return AccessPatternTracker()


@pytest.fixture
def analyzer(counters: CacheCounters) -> CachePerformanceAnalyzer:
    return CachePerformanceAnalyzer(counters)


@pytest.fixture
def cache_service(
    store: FakeKeyValueStore,
    source: FakeAuthorizationSource,
    analyzer: CachePerformanceAnalyzer,
    counters: CacheCounters,
    tracker: AccessPatternTracker,
    settings: Settings,
) -> PermissionCacheService:
    return PermissionCacheService(
        store,
        source,
        analyzer=analyzer,
        counters=counters,
        access_tracker=tracker,
        settings=settings,
    )


@pytest.fixture
async def db_session() -> AsyncSession:
    """Database session for integration tests. Rolls back after test.

    Requires DATABASE_URL. Skips (pytest.skip) when it is not configured.
    Use @pytest.mark.requires_db to mark tests that need this fixture;
    run without DB via: pytest -m 'not requires_db'.
    """
    from authz_cache.infrastructure.persistence import database, models  # noqa: F401

    database._ensure_engine()
    if database.AsyncSessionLocal is None:
        pytest.skip("Postgres not configured: set DATABASE_URL")
    async with database.engine.begin() as conn:
        await conn.run_sync(database.Base.metadata.create_all)
    async with database.AsyncSessionLocal() as session:
        yield session
        await session.rollback()
