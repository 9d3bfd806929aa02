"""Cache key builders. Single place for key format (DRY).

Key components (username, user_id, document_id) are percent-encoded, so
CACHE_KEY_SEP and the glob characters *?[] never appear raw inside a
component. Any string is a valid component, and pattern evictions such as
"all assignments of user 1" (user_id:*) cannot match a neighbouring user.
"""

from urllib.parse import quote, unquote

from authz_cache.core.constants import (
    CACHE_KEY_SEP,
    CACHE_NAMESPACE,
    PERFORMANCE_NAMESPACE,
    STATS_NAMESPACE,
)
from authz_cache.domain.enums import CacheType


def encode_key_component(value: str) -> str:
    """Percent-encode a key component; '%' itself is encoded so decoding is exact."""
    return quote(value, safe="")


def decode_key_component(value: str) -> str:
    return unquote(value)


def _cache_key(cache_type: CacheType, *parts: str) -> str:
    return CACHE_KEY_SEP.join((CACHE_NAMESPACE, cache_type.value, *parts))


def user_permissions_key(username: str) -> str:
    """Cache key for a user's permission set."""
    return _cache_key(CacheType.USER_PERMISSIONS, encode_key_component(username))


def user_document_assignments_key(user_id: str, document_id: str) -> str:
    """Cache key for a user's assignments on one document (user_id:document_id)."""
    return _cache_key(
        CacheType.USER_DOCUMENT_ASSIGNMENTS,
        encode_key_component(user_id),
        encode_key_component(document_id),
    )


def user_document_assignments_pattern(user_id: str) -> str:
    """Pattern matching every assignment key of one user (user_id:*)."""
    return _cache_key(
        CacheType.USER_DOCUMENT_ASSIGNMENTS, encode_key_component(user_id), "*"
    )


def document_user_assignments_pattern(document_id: str) -> str:
    """Pattern matching every user's assignment key on one document (*:document_id)."""
    return _cache_key(
        CacheType.USER_DOCUMENT_ASSIGNMENTS, "*", encode_key_component(document_id)
    )


def document_public_key(document_id: str) -> str:
    """Cache key for a document's public flag."""
    return _cache_key(CacheType.DOCUMENT_PUBLIC, encode_key_component(document_id))


def document_assignments_key(document_id: str) -> str:
    """Cache key for all assignments on a document."""
    return _cache_key(CacheType.DOCUMENT_ASSIGNMENTS, encode_key_component(document_id))


def assignment_access_key(user_id: str, document_id: str) -> str:
    """Access-pattern key for one user-document pair (user_id:document_id, encoded)."""
    return CACHE_KEY_SEP.join(
        (encode_key_component(user_id), encode_key_component(document_id))
    )


def split_assignment_access_key(key: str) -> tuple[str, str]:
    """Inverse of assignment_access_key."""
    user_id, document_id = key.split(CACHE_KEY_SEP, 1)
    return decode_key_component(user_id), decode_key_component(document_id)


def cache_type_pattern(cache_type: CacheType) -> str:
    """Pattern matching every key of one logical cache."""
    return _cache_key(cache_type, "*")


def cache_namespace_pattern() -> str:
    """Pattern matching every cached lookup (idle sweep scope)."""
    return f"{CACHE_NAMESPACE}{CACHE_KEY_SEP}*"


def performance_namespace_pattern() -> str:
    """Pattern matching every performance snapshot (stale sweep scope)."""
    return f"{PERFORMANCE_NAMESPACE}{CACHE_KEY_SEP}*"


def stats_namespace_pattern() -> str:
    """Pattern matching every statistics key."""
    return f"{STATS_NAMESPACE}{CACHE_KEY_SEP}*"


def performance_key(*parts: str) -> str:
    """Key under the performance namespace (e.g. weekly report snapshots)."""
    return CACHE_KEY_SEP.join(
        (PERFORMANCE_NAMESPACE, *(encode_key_component(p) for p in parts))
    )
