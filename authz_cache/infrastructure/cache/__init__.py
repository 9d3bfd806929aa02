"""Cache: Redis key/value store and cache key utilities.

RedisKeyValueStore uses authz_cache.core.config; key format is in keys.py (DRY).
"""

from authz_cache.infrastructure.cache.keys import (
    cache_namespace_pattern,
    cache_type_pattern,
    document_assignments_key,
    document_public_key,
    document_user_assignments_pattern,
    performance_key,
    performance_namespace_pattern,
    stats_namespace_pattern,
    user_document_assignments_key,
    user_document_assignments_pattern,
    user_permissions_key,
)
from authz_cache.infrastructure.cache.redis_store import RedisKeyValueStore

__all__ = [
    "RedisKeyValueStore",
    "cache_namespace_pattern",
    "cache_type_pattern",
    "document_assignments_key",
    "document_public_key",
    "document_user_assignments_pattern",
    "performance_key",
    "performance_namespace_pattern",
    "stats_namespace_pattern",
    "user_document_assignments_key",
    "user_document_assignments_pattern",
    "user_permissions_key",
]
