"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs only; no infrastructure imports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from authz_cache.application.dtos.authorization import (
        DocumentAssignment,
        DocumentRecord,
        UserRecord,
    )


# Authorization source interface (read-only source of truth)
class IAuthorizationSource(Protocol):
    """Protocol for read access to users, roles, permissions, documents and assignments."""

    async def find_user_by_username(self, username: str) -> UserRecord | None:
        """Return user with roles and permission codes, or None if not found."""

    async def find_user_by_id(self, user_id: str) -> UserRecord | None:
        """Return user by ID, or None if not found."""

    async def find_document_by_id(self, document_id: str) -> DocumentRecord | None:
        """Return document by ID, or None if not found."""

    async def find_document_assignments_by_user_id(
        self, user_id: str
    ) -> list[DocumentAssignment]:
        """Return all document assignments of a user."""

    async def find_document_assignments_by_document_id(
        self, document_id: str
    ) -> list[DocumentAssignment]:
        """Return all assignments on a document."""

    async def exists_user_by_id(self, user_id: str) -> bool:
        """Return True if the user exists."""

    async def exists_document_by_id(self, document_id: str) -> bool:
        """Return True if the document exists."""

    async def list_usernames(self, limit: int | None = None) -> list[str]:
        """Return usernames (stable order), optionally capped at limit."""

    async def list_user_ids(self, limit: int | None = None) -> list[str]:
        """Return user IDs (stable order), optionally capped at limit."""

    async def list_document_ids(self, limit: int | None = None) -> list[str]:
        """Return document IDs (stable order), optionally capped at limit."""
