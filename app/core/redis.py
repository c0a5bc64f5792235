"""
Redis connection management with an in-memory fallback backend
"""

import redis.asyncio as redis
from typing import Optional, Dict, Tuple
import logging
import time

from app.config import Settings

logger = logging.getLogger(__name__)


class InMemoryCache:
    """
    Process-local stand-in for Redis used when no Redis URL is configured

    Expired keys are dropped on read, and swept from the whole store on
    writes at most once per sweep interval.
    """

    def __init__(self, sweep_interval: float = 60.0):
        self._store: Dict[str, Tuple[str, Optional[float]]] = {}
        self.sweep_interval = sweep_interval
        self._next_sweep = time.monotonic() + sweep_interval

    def _sweep_expired(self) -> None:
        now = time.monotonic()
        if now < self._next_sweep:
            return
        self._next_sweep = now + self.sweep_interval
        expired = [
            key for key, (_, expires_at) in self._store.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._store[key]

    def _live_value(self, key: str) -> Optional[str]:
        item = self._store.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and time.monotonic() >= expires_at:
            del self._store[key]
            return None
        return value

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> Optional[str]:
        return self._live_value(key)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        self._sweep_expired()
        expires_at = time.monotonic() + ttl if ttl else None
        self._store[key] = (value, expires_at)
        return True

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self._live_value(key) is not None:
                deleted += 1
            self._store.pop(key, None)
        return deleted

    async def incr(self, key: str) -> int:
        self._sweep_expired()
        current = self._live_value(key)
        expires_at = self._store[key][1] if current is not None else None
        count = int(current or 0) + 1
        self._store[key] = (str(count), expires_at)
        return count

    async def expire(self, key: str, ttl: int) -> bool:
        current = self._live_value(key)
        if current is None:
            return False
        self._store[key] = (current, time.monotonic() + ttl)
        return True

    async def close(self) -> None:
        self._store.clear()


class RedisCache:
    """
    Thin async Redis wrapper exposing the same surface as InMemoryCache
    """

    def __init__(self, client: redis.Redis, key_prefix: str = ""):
        self.client = client
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def ping(self) -> bool:
        return await self.client.ping()

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(self._key(key))

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        if ttl:
            return bool(await self.client.setex(self._key(key), ttl, value))
        return bool(await self.client.set(self._key(key), value))

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return await self.client.delete(*(self._key(k) for k in keys))

    async def incr(self, key: str) -> int:
        return await self.client.incr(self._key(key))

    async def expire(self, key: str, ttl: int) -> bool:
        return bool(await self.client.expire(self._key(key), ttl))

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("Redis connection closed")


async def init_redis(settings: Settings):
    """
    Initialize the cache backend; falls back to memory when Redis is off or unreachable
    """
    if not settings.use_redis:
        logger.info("Redis disabled - using in-memory cache")
        return InMemoryCache()

    try:
        client = redis.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            decode_responses=True
        )
        await client.ping()
        logger.info("Redis connection established")
        return RedisCache(client, key_prefix=settings.REDIS_KEY_PREFIX)
    except Exception as e:
        logger.error(f"Failed to connect to Redis, using in-memory cache: {e}")
        return InMemoryCache()
