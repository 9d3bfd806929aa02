"""ORM models for the authorization source (read-only mappings)."""

from authz_cache.infrastructure.persistence.models.document import (
    Document,
    DocumentAssignment,
)
from authz_cache.infrastructure.persistence.models.permission import (
    Permission,
    RolePermission,
    UserRole,
)
from authz_cache.infrastructure.persistence.models.role import Role
from authz_cache.infrastructure.persistence.models.user import User

__all__ = [
    "Document",
    "DocumentAssignment",
    "Permission",
    "Role",
    "RolePermission",
    "User",
    "UserRole",
]
