"""Scheduling: periodic task registry and the cache optimization jobs."""

from authz_cache.infrastructure.scheduling.jobs import CacheOptimizationJobs
from authz_cache.infrastructure.scheduling.scheduler import (
    PeriodicTask,
    PeriodicTaskScheduler,
    seconds_until,
)

__all__ = [
    "CacheOptimizationJobs",
    "PeriodicTask",
    "PeriodicTaskScheduler",
    "seconds_until",
]
