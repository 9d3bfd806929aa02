"""Persistence: lazy async engine, read-only ORM mappings and the SQL authorization source."""

from authz_cache.infrastructure.persistence.authorization_source import (
    SqlAuthorizationSource,
)
from authz_cache.infrastructure.persistence.database import (
    Base,
    dispose_engine,
    get_session_factory,
)

__all__ = [
    "Base",
    "SqlAuthorizationSource",
    "dispose_engine",
    "get_session_factory",
]
