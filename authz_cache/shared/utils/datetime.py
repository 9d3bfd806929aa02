"""
Datetime utilities for consistent timezone handling.

Recorded timestamps (events, executions, snapshots) are timezone-aware
UTC. Hour-of-day decisions (peak hours, business hours, nightly jobs)
use the host's local wall clock, since that is what operators configure.
"""

from datetime import UTC, datetime

HOUR_BUCKET_FORMAT = "%Y-%m-%d %H"


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Use this instead of:
        - datetime.utcnow() - naive, deprecated in Python 3.12
        - datetime.now(UTC) - correct but verbose

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)


def local_now() -> datetime:
    """Return the current local wall-clock time (timezone-aware)."""
    return datetime.now().astimezone()


def hour_bucket(dt: datetime) -> str:
    """
    Format a datetime as its hourly bucket label (yyyy-MM-dd HH).

    Labels sort lexicographically in chronological order.

    Args:
        dt: Datetime to bucket

    Returns:
        Bucket label, e.g. "2024-05-01 09"
    """
    return dt.strftime(HOUR_BUCKET_FORMAT)
