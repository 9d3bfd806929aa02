"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Ratios, hours and batch sizes are validated at load
time so a bad value fails fast instead of skewing the optimizer.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from authz_cache.domain.enums import CacheType


class Settings(BaseSettings):
    """Settings for the permission cache and its optimization engine.

    Every field has a default; the subsystem runs against a local Redis
    with no environment at all.
    """

    # App
    app_name: str = "authz-cache"
    app_version: str = "1.0.0"
    debug: bool = False

    # Authorization source (read-only). Empty = caller supplies its own source.
    database_url: str = ""
    database_echo: bool = False

    # Redis (backing key/value store)
    redis_enabled: bool = True
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_command_timeout_seconds: float = 2.0

    # Entry TTLs (seconds)
    cache_ttl_user_permissions: int = 300
    cache_ttl_document_public: int = 600
    cache_ttl_document_assignments: int = 180

    # Memory optimizer
    memory_optimization_enabled: bool = True
    memory_max_usage_ratio: float = 0.8
    memory_cleanup_threshold: float = 0.9
    memory_batch_size: int = 1000
    memory_ttl_extension_factor: float = 1.5

    # Warmup strategy
    warmup_strategy_enabled: bool = True
    warmup_peak_hours: str = "9,10,11,14,15,16"
    warmup_min_hit_rate: float = 0.7
    warmup_max_memory_usage: float = 0.8
    warmup_batch_size: int = 500

    # Scheduler
    scheduler_enabled: bool = True
    memory_check_interval_seconds: int = 300
    health_check_interval_seconds: int = 1800
    smart_warmup_interval_seconds: int = 3600
    deep_optimization_hour: int = 2
    weekly_report_weekday: int = 6  # Monday=0 ... Sunday=6
    weekly_report_hour: int = 3
    business_hours_start: int = 9
    business_hours_end: int = 18

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @property
    def peak_hours(self) -> frozenset[int]:
        """Peak hours parsed from the comma-separated warmup_peak_hours."""
        return frozenset(
            int(h) for h in self.warmup_peak_hours.split(",") if h.strip()
        )

    def cache_ttl(self, cache_type: CacheType) -> int:
        """Entry TTL in seconds for a logical cache."""
        if cache_type == CacheType.USER_PERMISSIONS:
            return self.cache_ttl_user_permissions
        if cache_type == CacheType.DOCUMENT_PUBLIC:
            return self.cache_ttl_document_public
        return self.cache_ttl_document_assignments

    @model_validator(mode="after")
    def validate_tuning(self) -> "Settings":
        """Validate ratios, hours and batch sizes."""
        ratios = {
            "memory_max_usage_ratio": self.memory_max_usage_ratio,
            "memory_cleanup_threshold": self.memory_cleanup_threshold,
            "warmup_min_hit_rate": self.warmup_min_hit_rate,
            "warmup_max_memory_usage": self.warmup_max_memory_usage,
        }
        for name, value in ratios.items():
            if not 0 < value <= 1:
                raise ValueError(f"{name} must be in (0, 1], got: {value!r}")
        try:
            hours = self.peak_hours
        except ValueError as exc:
            raise ValueError(
                f"warmup_peak_hours must be comma-separated integers, got: {self.warmup_peak_hours!r}"
            ) from exc
        if any(h < 0 or h > 23 for h in hours):
            raise ValueError(
                f"warmup_peak_hours must be within 0..23, got: {self.warmup_peak_hours!r}"
            )
        for name in ("deep_optimization_hour", "weekly_report_hour", "business_hours_start", "business_hours_end"):
            if not 0 <= getattr(self, name) <= 23:
                raise ValueError(f"{name} must be within 0..23")
        if not 0 <= self.weekly_report_weekday <= 6:
            raise ValueError("weekly_report_weekday must be within 0..6 (Monday=0)")
        if self.memory_batch_size < 1 or self.warmup_batch_size < 1:
            raise ValueError("memory_batch_size and warmup_batch_size must be >= 1")
        if self.memory_ttl_extension_factor < 1:
            raise ValueError("memory_ttl_extension_factor must be >= 1")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    In tests, call get_settings.cache_clear() before overriding env vars so
    the next get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
