"""DTOs for authorization source read-models (no dependency on ORM)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from authz_cache.domain.enums import AssignmentType


@dataclass(frozen=True)
class RoleRecord:
    """Role with the permission codes it grants."""

    code: str
    permissions: frozenset[str] = field(default_factory=frozenset)


@dataclass(frozen=True)
class UserRecord:
    """User read-model with assigned roles."""

    id: str
    username: str
    roles: tuple[RoleRecord, ...] = ()

    def permission_codes(self) -> set[str]:
        """Flatten roles to the set of permission codes."""
        return {code for role in self.roles for code in role.permissions}


@dataclass(frozen=True)
class DocumentRecord:
    """Document read-model (only what authorization needs)."""

    id: str
    is_public: bool


@dataclass(frozen=True)
class DocumentAssignment:
    """A user's assignment on one document."""

    document_id: str
    user_id: str
    assignment_type: AssignmentType

    def to_dict(self) -> dict[str, Any]:
        """Return JSON-serializable form (cache payload)."""
        return {
            "document_id": self.document_id,
            "user_id": self.user_id,
            "assignment_type": self.assignment_type.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocumentAssignment:
        """Rebuild from the cache payload produced by to_dict()."""
        return cls(
            document_id=str(data["document_id"]),
            user_id=str(data["user_id"]),
            assignment_type=AssignmentType(data["assignment_type"]),
        )
