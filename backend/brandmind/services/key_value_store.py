"""
Expiring key-value store.

Backs refresh-token storage and the daily rate-limit counters. Two
implementations share one protocol:

- RedisKeyValueStore: redis-py asyncio client, used whenever REDIS_URL is set
- InMemoryKeyValueStore: process-local dict with monotonic expiry, for tests
  and single-process local development

Errors from the backing store propagate to the caller; whether to fail open
or closed is the caller's decision.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Operations used by token storage and rate limiting."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def incr(self, key: str, ttl_seconds: int) -> int:
        """Atomically add one to an integer value and (re)set its TTL."""
        ...

    async def close(self) -> None:
        ...


class RedisKeyValueStore:
    """Redis-backed store. The connection is created lazily on first use."""

    def __init__(self, redis_url: str, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self._redis: Optional[redis.Redis] = client

    def _get_redis(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(
                self.redis_url,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        return self._redis

    async def get(self, key: str) -> Optional[str]:
        return await self._get_redis().get(key)

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._get_redis().set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        await self._get_redis().delete(key)

    async def incr(self, key: str, ttl_seconds: int) -> int:
        pipe = self._get_redis().pipeline(transaction=True)
        pipe.incr(key)
        pipe.expire(key, ttl_seconds)
        results = await pipe.execute()
        return int(results[0])

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


@dataclass
class _Entry:
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class InMemoryKeyValueStore:
    """Simple in-memory store suitable for tests and local development."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, _Entry] = {}
        self._clock = clock

    def _live(self, key: str) -> Optional[_Entry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._entries.pop(key, None)
            return None
        return entry

    async def get(self, key: str) -> Optional[str]:
        entry = self._live(key)
        return entry.value if entry else None

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        self._entries[key] = _Entry(value=value, expires_at=self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def incr(self, key: str, ttl_seconds: int) -> int:
        entry = self._live(key)
        count = int(entry.value) + 1 if entry else 1
        await self.put(key, str(count), ttl_seconds)
        return count

    async def close(self) -> None:
        self._entries.clear()


def create_key_value_store(redis_url: Optional[str]) -> KeyValueStore:
    """Redis when a URL is configured, otherwise the in-process store."""
    if redis_url:
        return RedisKeyValueStore(redis_url)
    logger.warning("REDIS_URL not set; using in-process key-value store")
    return InMemoryKeyValueStore()
