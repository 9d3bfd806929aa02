"""Read-only SQL authorization source (implements IAuthorizationSource).

Resolves users, roles, permission codes, documents and assignments.
Interface methods return application DTOs; ORM rows never leave this module.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from authz_cache.application.dtos.authorization import (
    DocumentAssignment,
    DocumentRecord,
    RoleRecord,
    UserRecord,
)
from authz_cache.domain.enums import AssignmentType
from authz_cache.infrastructure.persistence.models.document import (
    Document,
    DocumentAssignment as DocumentAssignmentModel,
)
from authz_cache.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
    UserRole,
)
from authz_cache.infrastructure.persistence.models.role import Role
from authz_cache.infrastructure.persistence.models.user import User


def _assignment_to_record(row: DocumentAssignmentModel) -> DocumentAssignment:
    """Map ORM DocumentAssignment to the application DTO."""
    return DocumentAssignment(
        document_id=row.document_id,
        user_id=row.user_id,
        assignment_type=AssignmentType(row.assignment_type),
    )


def _limited(query: Any, limit: int | None) -> Any:
    return query.limit(limit) if limit is not None else query


class SqlAuthorizationSource:
    """Authorization reads over SQLAlchemy; one short-lived session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _roles_for_user(self, db: AsyncSession, user_id: str) -> tuple[RoleRecord, ...]:
        """Active, unexpired roles of the user with their permission codes."""
        query = (
            select(Role.code, Permission.code)
            .select_from(UserRole)
            .join(Role, Role.id == UserRole.role_id)
            .outerjoin(RolePermission, RolePermission.role_id == UserRole.role_id)
            .outerjoin(Permission, Permission.id == RolePermission.permission_id)
            .where(
                UserRole.user_id == user_id,
                Role.is_active.is_(True),
                or_(
                    UserRole.expires_at.is_(None),
                    UserRole.expires_at > func.now(),
                ),
            )
            .order_by(Role.code)
        )
        result = await db.execute(query)
        grants: dict[str, set[str]] = {}
        for role_code, permission_code in result.all():
            codes = grants.setdefault(role_code, set())
            if permission_code is not None:
                codes.add(permission_code)
        return tuple(
            RoleRecord(code=code, permissions=frozenset(codes)) for code, codes in grants.items()
        )

    async def _user_record(self, db: AsyncSession, user: User | None) -> UserRecord | None:
        if user is None:
            return None
        return UserRecord(
            id=user.id,
            username=user.username,
            roles=await self._roles_for_user(db, user.id),
        )

    async def find_user_by_username(self, username: str) -> UserRecord | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(User).where(User.username == username, User.is_active.is_(True))
            )
            return await self._user_record(db, result.scalar_one_or_none())

    async def find_user_by_id(self, user_id: str) -> UserRecord | None:
        async with self._session_factory() as db:
            result = await db.execute(select(User).where(User.id == user_id))
            return await self._user_record(db, result.scalar_one_or_none())

    async def find_document_by_id(self, document_id: str) -> DocumentRecord | None:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Document.id, Document.is_public).where(
                    Document.id == document_id, Document.deleted_at.is_(None)
                )
            )
            row = result.one_or_none()
            if row is None:
                return None
            return DocumentRecord(id=row.id, is_public=row.is_public)

    async def _assignments(self, *criteria: Any) -> list[DocumentAssignment]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(DocumentAssignmentModel)
                .where(*criteria)
                .order_by(DocumentAssignmentModel.document_id, DocumentAssignmentModel.user_id)
            )
            rows: Sequence[DocumentAssignmentModel] = result.scalars().all()
            return [_assignment_to_record(r) for r in rows]

    async def find_document_assignments_by_user_id(
        self, user_id: str
    ) -> list[DocumentAssignment]:
        return await self._assignments(DocumentAssignmentModel.user_id == user_id)

    async def find_document_assignments_by_document_id(
        self, document_id: str
    ) -> list[DocumentAssignment]:
        return await self._assignments(DocumentAssignmentModel.document_id == document_id)

    async def exists_user_by_id(self, user_id: str) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(select(exists().where(User.id == user_id)))
            return bool(result.scalar())

    async def exists_document_by_id(self, document_id: str) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(
                select(
                    exists().where(Document.id == document_id, Document.deleted_at.is_(None))
                )
            )
            return bool(result.scalar())

    async def list_usernames(self, limit: int | None = None) -> list[str]:
        async with self._session_factory() as db:
            query = select(User.username).where(User.is_active.is_(True)).order_by(User.id)
            result = await db.execute(_limited(query, limit))
            return list(result.scalars().all())

    async def list_user_ids(self, limit: int | None = None) -> list[str]:
        async with self._session_factory() as db:
            query = select(User.id).where(User.is_active.is_(True)).order_by(User.id)
            result = await db.execute(_limited(query, limit))
            return list(result.scalars().all())

    async def list_document_ids(self, limit: int | None = None) -> list[str]:
        async with self._session_factory() as db:
            query = (
                select(Document.id)
                .where(Document.deleted_at.is_(None))
                .order_by(Document.updated_at.desc(), Document.id)
            )
            result = await db.execute(_limited(query, limit))
            return list(result.scalars().all())
