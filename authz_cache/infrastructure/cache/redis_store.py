"""Redis-backed key/value store for the permission cache.

Provides async Redis access with TTL support, pattern scans, idle-time
and memory introspection (implements IKeyValueStore). Values are stored
as JSON. Every command retries once after a reconnect; if it still
fails, CacheUnavailableException is raised so the caller can fall back.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import redis.asyncio as redis

from authz_cache.core.config import Settings, get_settings
from authz_cache.core.constants import STORE_SCAN_COUNT
from authz_cache.domain.exceptions import CacheUnavailableException

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DELETE_CHUNK_SIZE = 500


class RedisKeyValueStore:
    """Async Redis store with TTL, scan and introspection commands.

    Uses authz_cache.core.config for connection settings. Call connect()
    at startup and disconnect() at shutdown.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            redis_client: Optional Redis client for testing or DI.
            settings: Optional settings; defaults to get_settings().
        """
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on startup."""
        if self.redis is None:
            try:
                password = (
                    self.settings.redis_password.get_secret_value()
                    if self.settings.redis_password
                    else None
                )
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=password,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=self.settings.redis_command_timeout_seconds,
                    socket_keepalive=True,
                )
                await self.redis.ping()
                self._connected = True
                logger.info(
                    "Redis cache store connected: %s:%s",
                    self.settings.redis_host,
                    self.settings.redis_port,
                )
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis connection failed: %s. Cache disabled.", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on shutdown."""
        if self.redis:
            await self.redis.close()
            self.redis = None
            self._connected = False
            logger.info("Redis cache store disconnected")

    async def _reconnect(self) -> bool:
        """Attempt to reconnect after a dropped connection. Returns True if reconnected."""
        if self.redis is None:
            return False
        try:
            await self.redis.close()
        except redis.RedisError:
            pass
        self.redis = None
        self._connected = False
        await self.connect()
        return self._connected

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    async def _execute(
        self,
        operation: str,
        key: str | None,
        command: Callable[[redis.Redis], Awaitable[T]],
    ) -> T:
        """Run command against the client, reconnecting once on connection loss.

        Raises:
            CacheUnavailableException: Store not connected, or the command
                failed (also after one reconnect).
        """
        if not self.is_available() or self.redis is None:
            raise CacheUnavailableException(operation, key)
        try:
            return await command(self.redis)
        except (redis.ConnectionError, redis.TimeoutError) as e:
            if await self._reconnect() and self.redis is not None:
                try:
                    return await command(self.redis)
                except redis.RedisError as retry_error:
                    logger.exception(
                        "Cache %s error for %s after reconnect", operation, key
                    )
                    raise CacheUnavailableException(operation, key) from retry_error
            logger.warning(
                "Cache %s unavailable for %s (Redis disconnected)", operation, key
            )
            raise CacheUnavailableException(operation, key) from e
        except redis.RedisError as e:
            logger.exception("Cache %s error for %s", operation, key)
            raise CacheUnavailableException(operation, key) from e

    async def ping(self) -> bool:
        """Return True when Redis answers PING."""
        return bool(await self._execute("ping", None, lambda r: r.ping()))

    async def get(self, key: str) -> Any | None:
        """Return cached value (JSON-deserialized) or None if missing.

        Args:
            key: Cache key (use authz_cache.infrastructure.cache.keys builders).
        """
        value = await self._execute("get", key, lambda r: r.get(key))
        if value is None:
            logger.debug("Cache MISS: %s", key)
            return None
        logger.debug("Cache HIT: %s", key)
        return json.loads(value)

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store value (JSON-serialized), with TTL in seconds when given."""
        serialized = json.dumps(value)
        if ttl is not None:
            await self._execute("set", key, lambda r: r.setex(key, ttl, serialized))
            logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)
        else:
            await self._execute("set", key, lambda r: r.set(key, serialized))
            logger.debug("Cache SET: %s (no TTL)", key)

    async def delete(self, *keys: str) -> int:
        """Remove keys. Returns how many existed."""
        if not keys:
            return 0
        deleted = await self._execute(
            "delete", ",".join(keys), lambda r: r.delete(*keys)
        )
        logger.debug("Cache DELETE: %s (%s removed)", keys, deleted)
        return int(deleted or 0)

    async def scan_keys(self, pattern: str, count: int = STORE_SCAN_COUNT) -> list[str]:
        """Return all keys matching pattern using SCAN (never KEYS)."""

        async def _scan(client: redis.Redis) -> list[str]:
            return [key async for key in client.scan_iter(match=pattern, count=count)]

        return await self._execute("scan", pattern, _scan)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern using SCAN + batched UNLINK (non-blocking).

        Collects keys in chunks and UNLINKs each chunk to minimize round-trips
        and keep deletion async on the server.

        Args:
            pattern: Redis SCAN match pattern (e.g. cache:user_document_assignments:42:*).

        Returns:
            Number of keys deleted.
        """

        async def _delete(client: redis.Redis) -> int:
            deleted = 0
            chunk: list[str] = []
            async for key in client.scan_iter(match=pattern):
                chunk.append(key)
                if len(chunk) >= _DELETE_CHUNK_SIZE:
                    deleted += await _unlink(client, chunk)
                    chunk = []
            if chunk:
                deleted += await _unlink(client, chunk)
            return deleted

        deleted = await self._execute("delete_pattern", pattern, _delete)
        if deleted > 0:
            logger.info("Cache INVALIDATE: %s (%s keys)", pattern, deleted)
        return deleted

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds (-1 no TTL, -2 missing key)."""
        return int(await self._execute("ttl", key, lambda r: r.ttl(key)))

    async def idle_time(self, key: str) -> int | None:
        """Seconds since last access (OBJECT IDLETIME), None when the key is gone."""
        value = await self._execute(
            "idle_time", key, lambda r: r.object("idletime", key)
        )
        return int(value) if value is not None else None

    async def memory_info(self) -> dict[str, Any]:
        """INFO memory as a dict (used_memory, maxmemory, ...)."""
        return await self._execute("info", "memory", lambda r: r.info("memory"))

    async def keyspace_info(self) -> dict[str, Any]:
        """INFO keyspace as a dict ({'db0': {'keys': n, ...}, ...})."""
        return await self._execute("info", "keyspace", lambda r: r.info("keyspace"))

    async def background_compact(self) -> None:
        """Start a background AOF rewrite (BGREWRITEAOF)."""
        await self._execute("bgrewriteaof", None, lambda r: r.bgrewriteaof())
        logger.info("Initiated background AOF rewrite for memory compaction")


async def _unlink(client: redis.Redis, keys: list[str]) -> int:
    async with client.pipeline(transaction=False) as pipe:
        pipe.unlink(*keys)
        results = await pipe.execute()
    return sum(int(r or 0) for r in results)
