"""
JSON cache helpers, cache key conventions and the fixed-window rate limiter
"""

import json
import logging
import re
import time
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_search_query(query: str) -> str:
    """Lowercase, trim and collapse runs of whitespace"""
    return _WHITESPACE.sub(" ", query.strip().lower())


def search_cache_key(query: str) -> str:
    return f"search:{normalize_search_query(query)}"


def api_cache_key(path: str, query_string: str = "") -> str:
    return f"api:{path}?{query_string}" if query_string else f"api:{path}"


def listing_cache_keys(api_prefix: str) -> list[str]:
    """Keys holding the unfiltered venue listing"""
    path = f"{api_prefix}/venues"
    return [api_cache_key(path), api_cache_key(f"{path}/")]


def venue_search_keys(name: str, address: str) -> list[str]:
    """Search keys a new or removed venue would most likely appear under"""
    name = name or ""
    address = address or ""
    return [
        search_cache_key(name),
        search_cache_key(address),
        search_cache_key(f"{name} {address}"),
    ]


class CacheManager:
    """
    JSON-serializing cache facade over a Redis or in-memory backend

    Reads fail soft (a broken cache is a miss). Writes and deletes raise, so
    callers decide whether the failure matters.
    """

    def __init__(self, backend):
        self.backend = backend
        self.logger = logging.getLogger(__name__)

    async def get_json(self, key: str) -> Optional[Any]:
        try:
            cached = await self.backend.get(key)
        except Exception as e:
            self.logger.error(f"Cache get error for {key}: {e}")
            return None

        if cached is None:
            self.logger.debug(f"Cache MISS: {key}")
            return None

        try:
            value = json.loads(cached)
        except json.JSONDecodeError as e:
            self.logger.warning(f"Invalid JSON in cache key {key}: {e}")
            try:
                await self.backend.delete(key)
            except Exception:
                self.logger.warning(f"Could not drop corrupted cache key {key}")
            return None

        self.logger.debug(f"Cache HIT: {key}")
        return value

    async def set_json(self, key: str, value: Any, ttl: int) -> bool:
        await self.backend.set(key, json.dumps(value, default=str), ttl)
        self.logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
        return True

    async def delete(self, keys: Iterable[str]) -> int:
        keys = list(dict.fromkeys(keys))
        deleted = await self.backend.delete(*keys)
        self.logger.info(f"Cache DELETE: {', '.join(keys)} ({deleted} keys)")
        return deleted

    async def rate_limit(self, key: str, limit: int, window_seconds: int) -> tuple[bool, int, float]:
        """
        Fixed-window counter

        Returns (allowed, remaining, reset_at_epoch_seconds). Fails open.
        """
        now = time.time()
        window_start = int(now // window_seconds) * window_seconds
        reset_at = float(window_start + window_seconds)
        window_key = f"ratelimit:{key}:{window_start}"

        try:
            count = await self.backend.incr(window_key)
            if count == 1:
                await self.backend.expire(window_key, window_seconds)
        except Exception as e:
            self.logger.error(f"Rate limit error for {key}: {e}")
            return True, 0, reset_at

        if count > limit:
            return False, 0, reset_at
        return True, limit - count, reset_at

    async def health_check(self) -> bool:
        try:
            return bool(await self.backend.ping())
        except Exception as e:
            self.logger.warning(f"Cache health check failed: {e}")
            return False
