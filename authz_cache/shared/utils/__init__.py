"""Shared utilities (datetime helpers)."""

from authz_cache.shared.utils.datetime import hour_bucket, local_now, utc_now

__all__ = ["hour_bucket", "local_now", "utc_now"]
