"""Domain layer: enums and exceptions.

No dependencies on infrastructure. Used by application and
infrastructure layers.
"""

from authz_cache.domain.enums import AssignmentType, CacheType, WarmupStrategyType
from authz_cache.domain.exceptions import (
    AuthzCacheException,
    CacheUnavailableException,
    ResourceNotFoundException,
    SqlNotConfiguredException,
)

__all__ = [
    # Enums
    "AssignmentType",
    "CacheType",
    "WarmupStrategyType",
    # Exceptions
    "AuthzCacheException",
    "CacheUnavailableException",
    "ResourceNotFoundException",
    "SqlNotConfiguredException",
]
