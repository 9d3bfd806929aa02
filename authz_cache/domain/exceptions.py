"""Domain exceptions for the permission cache.

Defines the exceptions raised across the cache subsystem. Callers decide
how to surface them; the subsystem itself never maps them to transport
responses.
"""

from typing import Any


class AuthzCacheException(Exception):
    """Base exception for all permission cache errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. key, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return a serializable representation (error, message, details)."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ResourceNotFoundException(AuthzCacheException):
    """Raised when a requested user or document does not exist in the source."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'user', 'document').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class CacheUnavailableException(AuthzCacheException):
    """Raised when the backing key/value store cannot serve a command.

    Readers treat this as a miss; evictions triggered by mutations log it
    and carry on (the stale-entry risk is bounded by the entry TTL).
    """

    def __init__(self, operation: str, key: str | None = None) -> None:
        """Initialize with the failed operation and optional key or pattern.

        Args:
            operation: Store command that failed (e.g. 'get', 'scan').
            key: Key or pattern involved, when there is one.
        """
        details: dict[str, Any] = {"operation": operation}
        if key is not None:
            details["key"] = key
        message = f"Cache store unavailable during {operation}"
        if key is not None:
            message = f"{message} ({key})"
        super().__init__(message, "CACHE_UNAVAILABLE", details)


class SqlNotConfiguredException(AuthzCacheException):
    """Raised when the SQL authorization source is used without DATABASE_URL."""

    def __init__(self) -> None:
        super().__init__(
            message="The SQL authorization source requires DATABASE_URL to be set.",
            error_code="SERVICE_UNAVAILABLE",
        )
