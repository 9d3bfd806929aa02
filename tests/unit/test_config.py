"""Tests for Settings defaults, derived values and validation."""

import pytest
from pydantic import ValidationError

from authz_cache.core.config import Settings, get_settings
from authz_cache.domain.enums import CacheType


def test_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.redis_enabled is True
    assert settings.memory_cleanup_threshold == 0.9
    assert settings.warmup_batch_size == 500
    assert settings.peak_hours == frozenset({9, 10, 11, 14, 15, 16})
    assert (settings.business_hours_start, settings.business_hours_end) == (9, 18)


def test_cache_ttl_per_type() -> None:
    settings = Settings(_env_file=None)
    assert settings.cache_ttl(CacheType.USER_PERMISSIONS) == 300
    assert settings.cache_ttl(CacheType.DOCUMENT_PUBLIC) == 600
    assert settings.cache_ttl(CacheType.DOCUMENT_ASSIGNMENTS) == 180
    assert settings.cache_ttl(CacheType.USER_DOCUMENT_ASSIGNMENTS) == 180


def test_environment_overrides(monkeypatch) -> None:
    """Environment variables override defaults; get_settings caches one instance."""
    monkeypatch.setenv("WARMUP_PEAK_HOURS", "8, 20")
    monkeypatch.setenv("CACHE_TTL_USER_PERMISSIONS", "60")
    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.peak_hours == frozenset({8, 20})
        assert settings.cache_ttl(CacheType.USER_PERMISSIONS) == 60
        assert get_settings() is settings
    finally:
        get_settings.cache_clear()


@pytest.mark.parametrize(
    "overrides",
    [
        {"memory_max_usage_ratio": 1.5},
        {"warmup_min_hit_rate": 0},
        {"warmup_peak_hours": "9,24"},
        {"warmup_peak_hours": "nine"},
        {"deep_optimization_hour": 25},
        {"weekly_report_weekday": 7},
        {"memory_batch_size": 0},
        {"memory_ttl_extension_factor": 0.5},
    ],
)
def test_invalid_values_fail_fast(overrides) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **overrides)
