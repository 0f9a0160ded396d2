"""Idempotency window storage for emitted business events.

InMemoryIdempotencyStore keeps key -> monotonic timestamp and schedules a
cleanup when a record is written. RedisIdempotencyStore uses SET NX PX so
every instance shares one window; when Redis is unreachable it degrades to
the in-memory store of the current process.
"""

from __future__ import annotations

import asyncio
import logging
import time

import redis.asyncio as redis

from fieldflow.core.config import get_settings

logger = logging.getLogger(__name__)

# Cleanup runs this long after the window closes.
_CLEANUP_GRACE_SECONDS = 1.0


class InMemoryIdempotencyStore:
    """Per-process idempotency records."""

    def __init__(self, clock=time.monotonic) -> None:
        self._records: dict[str, float] = {}
        self._clock = clock

    async def claim(self, key: str, window_seconds: float) -> bool:
        now = self._clock()
        last = self._records.get(key)
        if last is not None and now - last < window_seconds:
            return False
        self._records[key] = now
        self._schedule_cleanup(key, window_seconds)
        return True

    def _schedule_cleanup(self, key: str, window_seconds: float) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.call_later(
            window_seconds + _CLEANUP_GRACE_SECONDS, self._expire, key, window_seconds
        )

    def _expire(self, key: str, window_seconds: float) -> None:
        recorded = self._records.get(key)
        # A newer claim for the same key keeps its own record.
        if recorded is not None and recorded <= self._clock() - window_seconds:
            del self._records[key]

    async def count(self) -> int:
        return len(self._records)

    async def clear(self) -> None:
        self._records.clear()
        logger.info("Cleared all idempotency records")


class RedisIdempotencyStore:
    """Idempotency records shared through Redis (SET key NX PX window).

    Call connect() at startup and disconnect() at shutdown.
    """

    def __init__(
        self,
        redis_client: redis.Redis | None = None,
        key_prefix: str | None = None,
        fallback: InMemoryIdempotencyStore | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            redis_client: Optional Redis client for testing or DI.
            key_prefix: Namespace for keys (defaults to settings.redis_key_prefix).
            fallback: Store used while Redis is unavailable.
        """
        self.settings = get_settings()
        self.redis = redis_client
        self.key_prefix = key_prefix if key_prefix is not None else self.settings.redis_key_prefix
        self.fallback = fallback or InMemoryIdempotencyStore()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on app startup."""
        if self.redis is not None:
            return
        try:
            self.redis = redis.Redis(
                host=self.settings.redis_host,
                port=self.settings.redis_port,
                db=self.settings.redis_db,
                password=self.settings.redis_password.get_secret_value()
                if self.settings.redis_password
                else None,
                max_connections=self.settings.redis_max_connections,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
            )
            await self.redis.ping()
            self._connected = True
            logger.info(
                "Redis idempotency store connected: %s:%s",
                self.settings.redis_host,
                self.settings.redis_port,
            )
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(
                "Redis connection failed: %s. Using in-process idempotency window.", e
            )
            self._connected = False
            self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on app shutdown."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self._connected = False
            logger.info("Redis idempotency store disconnected")

    def is_available(self) -> bool:
        return self._connected and self.redis is not None

    async def claim(self, key: str, window_seconds: float) -> bool:
        if not self.is_available() or self.redis is None:
            return await self.fallback.claim(key, window_seconds)
        window_ms = max(int(window_seconds * 1000), 1)
        try:
            created = await self.redis.set(
                f"{self.key_prefix}{key}", str(time.time()), nx=True, px=window_ms
            )
            return bool(created)
        except redis.RedisError as e:
            logger.warning("Idempotency claim via Redis failed for %s: %s", key, e)
            return await self.fallback.claim(key, window_seconds)

    async def count(self) -> int:
        if not self.is_available() or self.redis is None:
            return await self.fallback.count()
        total = 0
        try:
            async for _ in self.redis.scan_iter(match=f"{self.key_prefix}*"):
                total += 1
        except redis.RedisError:
            logger.exception("Idempotency count failed")
            return await self.fallback.count()
        return total

    async def clear(self) -> None:
        await self.fallback.clear()
        if not self.is_available() or self.redis is None:
            return
        try:
            chunk: list[str] = []
            async for key in self.redis.scan_iter(match=f"{self.key_prefix}*"):
                chunk.append(key)
                if len(chunk) >= 500:
                    await self.redis.unlink(*chunk)
                    chunk = []
            if chunk:
                await self.redis.unlink(*chunk)
            logger.info("Cleared all idempotency records in Redis")
        except redis.RedisError:
            logger.exception("Idempotency clear failed")
