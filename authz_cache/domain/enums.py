"""Domain enumerations for the permission cache.

Enums represent fixed sets of domain values (cache types, warmup
strategies, assignment types).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class CacheType(_ValuesMixin, str, Enum):
    """Logical caches owned by the permission cache service.

    The value doubles as the key prefix under the cache namespace.
    """

    USER_PERMISSIONS = "user_permissions"
    USER_DOCUMENT_ASSIGNMENTS = "user_document_assignments"
    DOCUMENT_PUBLIC = "document_public"
    DOCUMENT_ASSIGNMENTS = "document_assignments"


class WarmupStrategyType(_ValuesMixin, str, Enum):
    """Warmup strategies, in the priority order they are considered."""

    MEMORY_PRESSURE_RELIEF = "MEMORY_PRESSURE_RELIEF"
    PEAK_HOUR_PREPARATION = "PEAK_HOUR_PREPARATION"
    LOW_HIT_RATE_RECOVERY = "LOW_HIT_RATE_RECOVERY"
    ADAPTIVE_LEARNING = "ADAPTIVE_LEARNING"
    SCHEDULED_MAINTENANCE = "SCHEDULED_MAINTENANCE"


class AssignmentType(_ValuesMixin, str, Enum):
    """Role a user holds on a single document."""

    EDITOR = "EDITOR"
    APPROVER = "APPROVER"
