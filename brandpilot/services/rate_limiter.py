"""
Local admission control for Twitter search calls.

Twitter enforces the real quota; this limiter only avoids round trips that
are certain to be refused. The default backend is a per-process dictionary;
the Redis backend shares windows between processes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Protocol

import redis.asyncio as redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    reset_at: datetime


@dataclass
class RateLimitWindow:
    count: int
    reset_at: datetime


class RateLimitBackend(Protocol):
    async def check_and_consume(
        self, key: str, *, quota: int, window: timedelta
    ) -> RateLimitDecision:
        ...

    async def mark_exhausted(self, key: str, *, quota: int, window: timedelta) -> None:
        ...


class InMemoryRateLimitBackend:
    """Fixed windows kept in a dict; lost on restart."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._windows: Dict[str, RateLimitWindow] = {}

    async def check_and_consume(
        self, key: str, *, quota: int, window: timedelta
    ) -> RateLimitDecision:
        now = self._clock()
        current = self._windows.get(key)
        if current is None or now > current.reset_at:
            self._evict_expired(now)
            current = RateLimitWindow(count=1, reset_at=now + window)
            self._windows[key] = current
            return RateLimitDecision(True, current.count, current.reset_at)
        if current.count < quota:
            current.count += 1
            return RateLimitDecision(True, current.count, current.reset_at)
        return RateLimitDecision(False, current.count, current.reset_at)

    async def mark_exhausted(self, key: str, *, quota: int, window: timedelta) -> None:
        now = self._clock()
        self._evict_expired(now)
        self._windows[key] = RateLimitWindow(count=quota, reset_at=now + window)

    def _evict_expired(self, now: datetime) -> None:
        expired = [key for key, current in self._windows.items() if now > current.reset_at]
        for key in expired:
            del self._windows[key]

    def __len__(self) -> int:
        return len(self._windows)


# KEYS[1] = window key; ARGV[1] = quota; ARGV[2] = window length in ms.
# Returns {allowed, count, remaining ttl in ms}.
_CHECK_AND_CONSUME = """
local count = tonumber(redis.call('GET', KEYS[1]) or '0')
local quota = tonumber(ARGV[1])
if count >= quota then
    return {0, count, redis.call('PTTL', KEYS[1])}
end
count = redis.call('INCR', KEYS[1])
if count == 1 then
    redis.call('PEXPIRE', KEYS[1], ARGV[2])
end
return {1, count, redis.call('PTTL', KEYS[1])}
"""


class RedisRateLimitBackend:
    """Windows shared across processes through an atomic Lua script."""

    def __init__(
        self,
        client: redis.Redis,
        *,
        prefix: str = "brandpilot:ratelimit",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @classmethod
    def from_url(cls, url: str) -> "RedisRateLimitBackend":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def check_and_consume(
        self, key: str, *, quota: int, window: timedelta
    ) -> RateLimitDecision:
        window_ms = int(window.total_seconds() * 1000)
        allowed, count, ttl_ms = await self._client.eval(
            _CHECK_AND_CONSUME, 1, self._key(key), quota, window_ms
        )
        ttl_ms = int(ttl_ms) if int(ttl_ms) > 0 else window_ms
        reset_at = self._clock() + timedelta(milliseconds=ttl_ms)
        return RateLimitDecision(bool(int(allowed)), int(count), reset_at)

    async def mark_exhausted(self, key: str, *, quota: int, window: timedelta) -> None:
        await self._client.set(
            self._key(key), quota, px=int(window.total_seconds() * 1000)
        )


class RateLimiter:
    """Per-user quota Q within a window W in front of Twitter search."""

    def __init__(
        self,
        backend: RateLimitBackend,
        *,
        quota: int = 300,
        window_seconds: int = 900,
        scope: str = "twitter_search",
    ) -> None:
        self._backend = backend
        self._quota = quota
        self._window = timedelta(seconds=window_seconds)
        self._scope = scope

    @property
    def quota(self) -> int:
        return self._quota

    def _key(self, user_id: str) -> str:
        return f"{self._scope}:{user_id}"

    async def check_and_consume(self, user_id: str) -> RateLimitDecision:
        decision = await self._backend.check_and_consume(
            self._key(user_id), quota=self._quota, window=self._window
        )
        if not decision.allowed:
            logger.info(
                "Search rate limit reached for user %s until %s",
                user_id,
                decision.reset_at.isoformat(),
            )
        return decision

    async def mark_exhausted(self, user_id: str) -> None:
        """Force the user's window to the exhausted state after a provider 429."""
        await self._backend.mark_exhausted(
            self._key(user_id), quota=self._quota, window=self._window
        )


__all__ = [
    "InMemoryRateLimitBackend",
    "RateLimitBackend",
    "RateLimitDecision",
    "RateLimitWindow",
    "RateLimiter",
    "RedisRateLimitBackend",
]
