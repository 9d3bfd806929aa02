"""Telemetry: logging setup."""

from authz_cache.shared.telemetry.logging import setup_logging

__all__ = ["setup_logging"]
