"""Core: config, constants, and subsystem bootstrap.

Single place for settings and shared constants.
"""

from authz_cache.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
