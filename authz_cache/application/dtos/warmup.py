"""DTOs for cache warmup (bulk results and strategy executions)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from authz_cache.shared.utils.datetime import utc_now


@dataclass
class WarmupResult:
    """Result of one bulk warmup operation (success/failure counts)."""

    success: bool = False
    success_count: int = 0
    failure_count: int = 0
    total_count: int = 0
    started_at: datetime = field(default_factory=utc_now)
    finished_at: datetime | None = None
    error_message: str | None = None

    @property
    def duration_ms(self) -> int:
        if self.finished_at is None:
            return 0
        return int((self.finished_at - self.started_at).total_seconds() * 1000)


@dataclass
class CompleteWarmupResult:
    """Result of the full multi-cache warmup (three bulk operations)."""

    user_permissions: WarmupResult
    document_public: WarmupResult
    document_assignments: WarmupResult
    started_at: datetime = field(default_factory=utc_now)
    finished_at: datetime | None = None

    @property
    def total_success_count(self) -> int:
        return (
            self.user_permissions.success_count
            + self.document_public.success_count
            + self.document_assignments.success_count
        )

    @property
    def total_failure_count(self) -> int:
        return (
            self.user_permissions.failure_count
            + self.document_public.failure_count
            + self.document_assignments.failure_count
        )

    @property
    def success(self) -> bool:
        return self.total_failure_count == 0


@dataclass(frozen=True)
class WarmupExecution:
    """Record of one smart-warmup run (kept in the bounded history)."""

    strategy: str
    items_warmed: dict[str, int]
    duration_ms: int
    successful: bool
    reason: str
    execution_time: datetime = field(default_factory=utc_now)

    @property
    def total_items_warmed(self) -> int:
        return sum(self.items_warmed.values())
