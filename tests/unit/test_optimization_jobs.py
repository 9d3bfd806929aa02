"""Unit tests for the cache optimization jobs and the subsystem wiring."""

import pytest

from authz_cache.core.config import Settings
from authz_cache.core.container import build_cache_subsystem
from authz_cache.domain.enums import CacheType
from authz_cache.shared.utils.datetime import local_now


@pytest.fixture
def subsystem(store, source, settings):
    return build_cache_subsystem(settings, store, source)


def test_register_adds_every_job(subsystem) -> None:
    names = [t.name for t in subsystem.scheduler.get_tasks()]
    assert names == [
        "memory_check",
        "health_check",
        "smart_warmup",
        "deep_optimization",
        "weekly_report",
    ]


@pytest.mark.asyncio
async def test_cache_service_and_strategy_share_access_tracker(subsystem) -> None:
    """Lookups through the cache service are visible to the warmup strategy."""
    await subsystem.cache_service.get_user_permissions("alice")
    patterns = subsystem.warmup_strategy.get_access_patterns()
    assert patterns[CacheType.USER_PERMISSIONS].key_access["alice"] == 1


@pytest.mark.asyncio
async def test_access_tracking_off_when_strategy_disabled(store, source) -> None:
    settings = Settings(_env_file=None, warmup_strategy_enabled=False)
    subsystem = build_cache_subsystem(settings, store, source)
    await subsystem.cache_service.get_user_permissions("alice")
    assert subsystem.warmup_strategy.get_access_patterns() == {}


def test_business_hours_are_inclusive(subsystem) -> None:
    jobs = subsystem.jobs
    assert jobs.is_business_hour(9)
    assert jobs.is_business_hour(18)
    assert not jobs.is_business_hour(8)
    assert not jobs.is_business_hour(19)


@pytest.mark.asyncio
async def test_sync_hit_rates_feeds_strategy(subsystem) -> None:
    """Per-type hit rates from the analyzer reach the tracker as fractions."""
    await subsystem.cache_service.get_user_permissions("alice")
    await subsystem.cache_service.get_user_permissions("alice")

    subsystem.jobs.sync_hit_rates()

    assert subsystem.access_tracker.hit_rates() == {CacheType.USER_PERMISSIONS: 0.5}


@pytest.mark.asyncio
async def test_smart_warmup_outside_business_hours_is_skipped(store, source) -> None:
    hour = local_now().hour
    start = (hour + 2) % 24
    settings = Settings(
        _env_file=None, business_hours_start=start, business_hours_end=start
    )
    subsystem = build_cache_subsystem(settings, store, source)
    assert await subsystem.jobs.perform_smart_warmup() is None


@pytest.mark.asyncio
async def test_smart_warmup_in_business_hours_runs(store, source) -> None:
    settings = Settings(_env_file=None, business_hours_start=0, business_hours_end=23)
    subsystem = build_cache_subsystem(settings, store, source)

    task = await subsystem.jobs.perform_smart_warmup()

    assert task is not None
    execution = await task
    assert execution.successful is True
    assert subsystem.warmup_strategy.get_warmup_history() == [execution]


@pytest.mark.asyncio
async def test_check_memory_usage_starts_cleanup(subsystem, store) -> None:
    store.used_memory = 950
    store.max_memory = 1000
    store.seed("cache:user_permissions:stale", [], idle=4000)

    task = await subsystem.jobs.check_memory_usage()

    assert task is not None
    result = await task
    assert result.keys_removed == 1


@pytest.mark.asyncio
async def test_health_check_triggers_warmup_on_poor_performance(subsystem) -> None:
    """With no traffic the hit rate is 0%, so the health job starts a smart warmup."""
    task = await subsystem.jobs.check_cache_health()

    assert task is not None
    execution = await task
    assert execution.successful is True


@pytest.mark.asyncio
async def test_health_check_healthy_does_nothing(subsystem) -> None:
    for _ in range(10):
        subsystem.analyzer.record_cache_operation("op", 1, True)
    assert await subsystem.jobs.check_cache_health() is None


@pytest.mark.asyncio
async def test_deep_optimization_resets_everything(subsystem, store) -> None:
    await subsystem.cache_service.get_user_permissions("alice")
    subsystem.analyzer.record_cache_operation("op", 3, True)
    store.seed("cache:document_public:idle", True, idle=9000)

    outcomes = await subsystem.jobs.perform_deep_optimization()

    assert outcomes == [None, None, None]
    assert subsystem.analyzer.get_performance_report().total_requests == 0
    assert subsystem.warmup_strategy.get_access_patterns() == {}
    assert "cache:document_public:idle" not in store.data


@pytest.mark.asyncio
async def test_deep_optimization_step_failure_does_not_abort_others(subsystem) -> None:
    def broken_cleanup():
        raise RuntimeError("cleanup exploded")

    subsystem.memory_optimizer.perform_cleanup = broken_cleanup
    subsystem.analyzer.record_cache_operation("op", 3, True)

    outcomes = await subsystem.jobs.perform_deep_optimization()

    assert isinstance(outcomes[0], RuntimeError)
    assert outcomes[1:] == [None, None]
    assert subsystem.analyzer.get_performance_report().total_requests == 0


@pytest.mark.asyncio
async def test_weekly_report_stored_for_30_days(subsystem, store) -> None:
    subsystem.analyzer.record_cache_operation("op", 3, True)

    snapshot = await subsystem.jobs.generate_weekly_report()

    year, week, _ = local_now().isocalendar()
    key = f"performance:weekly:{year}-W{week:02d}"
    assert store.data[key] == snapshot
    assert store.ttls[key] == 30 * 24 * 3600
    assert snapshot["performance"]["total_requests"] == 1
    assert snapshot["warmup"]["total_executions"] == 0


@pytest.mark.asyncio
async def test_weekly_report_survives_store_outage(subsystem, store) -> None:
    store.available = False
    snapshot = await subsystem.jobs.generate_weekly_report()
    assert snapshot["performance"]["total_requests"] == 0
