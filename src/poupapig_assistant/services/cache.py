"""Key-value cache used for rate-limit counters and cached summaries."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Protocol

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


class Cache(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None: ...

    async def increment(self, key: str, amount: int = 1, ttl_seconds: int | None = None) -> int:
        """Add `amount` to an integer counter. `ttl_seconds` applies only when the key is created."""
        ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...


class InMemoryCache:
    """Process-local cache. Counters are not shared between workers."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._items: dict[str, tuple[Any, float | None]] = {}

    async def get(self, key: str) -> Any | None:
        item = self._items.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and expires_at <= self._clock():
            del self._items[key]
            return None
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        self._items[key] = (value, expires_at)

    async def increment(self, key: str, amount: int = 1, ttl_seconds: int | None = None) -> int:
        current = await self.get(key)
        if current is None:
            await self.set(key, amount, ttl_seconds)
            return amount
        value = int(current) + amount
        self._items[key] = (value, self._items[key][1])
        return value

    async def delete(self, key: str) -> None:
        self._items.pop(key, None)

    async def clear(self) -> None:
        self._items.clear()


class RedisCache:
    """Shared cache backed by Redis. Values are stored as JSON under a namespace."""

    def __init__(self, redis_client: Redis, namespace: str = "poupapig") -> None:
        self._redis = redis_client
        self._prefix = f"{namespace}:"

    @classmethod
    def from_url(cls, url: str, namespace: str = "poupapig") -> RedisCache:
        from redis.asyncio import Redis

        return cls(Redis.from_url(url, decode_responses=True), namespace=namespace)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Any | None:
        raw = await self._redis.get(self._key(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        await self._redis.set(self._key(key), json.dumps(value), ex=ttl_seconds or None)

    async def increment(self, key: str, amount: int = 1, ttl_seconds: int | None = None) -> int:
        name = self._key(key)
        value = await self._redis.incrby(name, amount)
        if ttl_seconds:
            # NX keeps the expiry set by the first increment of the window.
            await self._redis.expire(name, ttl_seconds, nx=True)
        return int(value)

    async def delete(self, key: str) -> None:
        await self._redis.delete(self._key(key))

    async def clear(self) -> None:
        keys = [key async for key in self._redis.scan_iter(match=f"{self._prefix}*")]
        if keys:
            await self._redis.delete(*keys)

    async def close(self) -> None:
        await self._redis.aclose()
