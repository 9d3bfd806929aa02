"""Subsystem lifespan: startup and shutdown.

Single place for all startup/shutdown logic (SRP). No business logic
here, only wiring of infrastructure (Redis store, authorization source,
scheduler, DB engine dispose).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from authz_cache.application.interfaces.repositories import IAuthorizationSource
from authz_cache.core.config import Settings, get_settings
from authz_cache.core.container import CacheSubsystem, build_cache_subsystem
from authz_cache.infrastructure.cache.redis_store import RedisKeyValueStore
from authz_cache.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(
    settings: Settings | None = None,
    authorization_source: IAuthorizationSource | None = None,
) -> AsyncIterator[CacheSubsystem]:
    """Start the cache subsystem, yield it, then shut it down.

    Startup order: Redis store (if enabled), authorization source (SQL
    unless one is supplied), subsystem wiring, scheduler (if enabled).
    Shutdown order: scheduler stop, Redis disconnect, SQL engine dispose.

    Raises:
        SqlNotConfiguredException: No source supplied and DATABASE_URL unset.
    """
    settings = settings or get_settings()

    # ---- Startup ----
    setup_logging(settings)
    store = RedisKeyValueStore(settings=settings)
    if settings.redis_enabled:
        await store.connect()
    else:
        logger.info("Redis disabled; every lookup reads the authorization source")

    owns_engine = authorization_source is None
    if authorization_source is None:
        from authz_cache.infrastructure.persistence import (
            SqlAuthorizationSource,
            get_session_factory,
        )

        authorization_source = SqlAuthorizationSource(get_session_factory(settings))

    subsystem = build_cache_subsystem(settings, store, authorization_source)
    if settings.scheduler_enabled:
        subsystem.scheduler.start()

    try:
        yield subsystem
    finally:
        # ---- Shutdown ----
        await subsystem.scheduler.stop()
        await store.disconnect()
        if owns_engine:
            from authz_cache.infrastructure.persistence import dispose_engine

            await dispose_engine()
