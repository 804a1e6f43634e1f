from __future__ import annotations

import logging
import math
import time
import uuid
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, DefaultDict, Deque, Mapping, Protocol

from subscribe_api.core.config import Settings
from subscribe_api.core.redis_client import get_redis

if TYPE_CHECKING:
    from redis.asyncio import Redis as RedisClient

WindowBucket = Deque[float]
Clock = Callable[[], float]

UNKNOWN_CLIENT = "unknown"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


class RateLimiter(Protocol):
    async def check_and_increment(self, identifier: str) -> RateLimitDecision: ...


def client_identifier(headers: Mapping[str, str]) -> str:
    """Derive a coarse client key from proxy headers.

    ``X-Real-IP`` is set by the edge proxy and wins over ``X-Forwarded-For``,
    which clients can prepend to.
    """
    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    forwarded = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
    if forwarded:
        return forwarded
    return UNKNOWN_CLIENT


def _prune(bucket: WindowBucket, now: float, window_seconds: int) -> None:
    while bucket and now - bucket[0] >= window_seconds:
        bucket.popleft()


def _retry_after(oldest: float | None, now: float, window_seconds: int) -> int:
    if oldest is None:
        return 1
    return max(1, int(math.ceil(oldest + window_seconds - now)))


class InMemoryRateLimiter:
    """Sliding-window limiter shared per-process; resets when the process restarts."""

    def __init__(self, limit: int, window_seconds: int, *, clock: Clock = time.time) -> None:
        self.limit = int(limit)
        self.window_seconds = int(window_seconds)
        self.buckets: DefaultDict[str, WindowBucket] = defaultdict(deque)
        self._clock = clock
        self._last_sweep = clock()

    async def check_and_increment(self, identifier: str) -> RateLimitDecision:
        return self.hit(identifier)

    def hit(self, identifier: str) -> RateLimitDecision:
        now = self._clock()
        if now - self._last_sweep >= self.window_seconds:
            self.sweep(now)
        bucket = self.buckets[identifier]
        _prune(bucket, now, self.window_seconds)
        if len(bucket) >= self.limit:
            oldest = bucket[0] if bucket else None
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                retry_after=_retry_after(oldest, now, self.window_seconds),
            )
        bucket.append(now)
        return RateLimitDecision(allowed=True, remaining=max(0, self.limit - len(bucket)))

    def sweep(self, now: float | None = None) -> None:
        """Drop identifiers whose whole window has expired."""
        now = self._clock() if now is None else now
        for identifier in list(self.buckets):
            bucket = self.buckets[identifier]
            _prune(bucket, now, self.window_seconds)
            if not bucket:
                del self.buckets[identifier]
        self._last_sweep = now

    def reset(self) -> None:
        """Helper for tests to clear limiter state."""
        self.buckets.clear()


class RedisRateLimiter:
    """Sliding-window limiter backed by a Redis sorted set per identifier.

    Falls back to the in-process limiter whenever Redis errors, so an outage
    degrades to per-instance throttling instead of failing requests.
    """

    def __init__(
        self,
        client: "RedisClient",
        limit: int,
        window_seconds: int,
        *,
        key_prefix: str = "rate_limit:subscribe",
        clock: Clock = time.time,
        fallback: InMemoryRateLimiter | None = None,
    ) -> None:
        self.client = client
        self.limit = int(limit)
        self.window_seconds = int(window_seconds)
        self.key_prefix = key_prefix
        self._clock = clock
        self.fallback = fallback or InMemoryRateLimiter(limit, window_seconds, clock=clock)

    async def check_and_increment(self, identifier: str) -> RateLimitDecision:
        now = self._clock()
        key = f"{self.key_prefix}:{identifier}"
        member = f"{now:.6f}:{uuid.uuid4().hex}"
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(key, "-inf", now - self.window_seconds)
                pipe.zadd(key, {member: now})
                pipe.zcard(key)
                pipe.expire(key, self.window_seconds)
                results = await pipe.execute()
            count = int(results[2])
            if count <= self.limit:
                return RateLimitDecision(allowed=True, remaining=max(0, self.limit - count))

            await self.client.zrem(key, member)
            oldest_entries = await self.client.zrange(key, 0, 0, withscores=True)
            oldest = float(oldest_entries[0][1]) if oldest_entries else None
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                retry_after=_retry_after(oldest, now, self.window_seconds),
            )
        except Exception as exc:
            logger.warning("redis_rate_limit_failed", extra={"error": str(exc)})
            return self.fallback.hit(identifier)


def build_rate_limiter(config: Settings) -> RateLimiter:
    client = get_redis()
    if client is None:
        return InMemoryRateLimiter(config.rate_limit_max_requests, config.rate_limit_window_seconds)
    return RedisRateLimiter(client, config.rate_limit_max_requests, config.rate_limit_window_seconds)
