"""Fixed-window request counters over the shared cache.

A window opens with the first counted request for a key and expires
`window_ms` later no matter how many requests follow. Rejected requests stay
counted until the window closes.
"""

from __future__ import annotations

import logging
import math
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

from poupapig_assistant.config import Settings
from poupapig_assistant.errors import RateLimitExceeded
from poupapig_assistant.services.cache import Cache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitPolicy:
    window_ms: int
    max_requests: int
    skip_successful: bool = False
    skip_failed: bool = False

    @property
    def ttl_seconds(self) -> int:
        return math.ceil(self.window_ms / 1000)


def webhook_policy(settings: Settings) -> RateLimitPolicy:
    return RateLimitPolicy(
        window_ms=settings.webhook_rate_limit_window_ms,
        max_requests=settings.webhook_rate_limit_max_requests,
        skip_failed=True,
    )


def api_policy(settings: Settings) -> RateLimitPolicy:
    return RateLimitPolicy(
        window_ms=settings.api_rate_limit_window_ms,
        max_requests=settings.api_rate_limit_max_requests,
    )


def webhook_rate_key(payload: Any) -> str:
    sender = None
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, dict) and isinstance(data.get("key"), dict):
            sender = data["key"].get("remoteJid")
    return f"rate_limit:webhook:{sender or 'unknown'}"


def api_rate_key(client_address: str | None, route: str) -> str:
    return f"rate_limit:{client_address or 'unknown'}:{route}"


class RateLimiter:
    def __init__(self, cache: Cache, policy: RateLimitPolicy) -> None:
        self._cache = cache
        self.policy = policy

    async def _count(self, key: str) -> int:
        value = await self._cache.get(key)
        try:
            return int(value or 0)
        except (TypeError, ValueError):
            return 0

    async def check(self, key: str) -> None:
        count = await self._cache.increment(key, 1, self.policy.ttl_seconds)
        if count > self.policy.max_requests:
            logger.warning("Rate limit exceeded for %s (%s requests)", key, count)
            raise RateLimitExceeded(
                f"Too many requests. Limit is {self.policy.max_requests} "
                f"per {self.policy.ttl_seconds} seconds",
                retry_after=self.policy.ttl_seconds,
            )

    async def release(self, key: str) -> None:
        # No TTL here: uncounting must not move the end of the window.
        if await self._count(key) > 0:
            await self._cache.increment(key, -1)

    @asynccontextmanager
    async def limit(self, key: str) -> AsyncIterator[None]:
        """Count a request for `key` and uncount it afterwards if the policy says so."""
        await self.check(key)
        try:
            yield
        except BaseException:
            if self.policy.skip_failed:
                await self.release(key)
            raise
        if self.policy.skip_successful:
            await self.release(key)
