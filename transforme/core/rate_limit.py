"""Fixed-window rate limiting backed by Redis or process memory."""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from functools import lru_cache

import structlog
from fastapi import HTTPException, status
from redis import Redis
from redis.exceptions import RedisError

from .config import get_settings

LOGGER = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class RateLimit:
    """Maximum number of requests allowed per window."""

    max_requests: int
    window_seconds: int


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float

    @property
    def retry_after(self) -> int:
        return max(0, math.ceil(self.reset_at - time.time()))


RATE_LIMITS: dict[str, RateLimit] = {
    "upload": RateLimit(max_requests=100, window_seconds=60 * 60),
    "ai_analysis": RateLimit(max_requests=30, window_seconds=60 * 60),
    "bank_sync": RateLimit(max_requests=5, window_seconds=60 * 60),
    "otp_send": RateLimit(max_requests=5, window_seconds=15 * 60),
    "otp_verify": RateLimit(max_requests=10, window_seconds=15 * 60),
}


class MemoryRateLimiter:
    """In-process counters; each worker process keeps its own windows."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str, limit: RateLimit) -> RateLimitResult:
        now = time.time()
        with self._lock:
            self._purge(now)
            count, reset_at = self._entries.get(key, (0, 0.0))
            if now > reset_at:
                count, reset_at = 0, now + limit.window_seconds
            count += 1
            self._entries[key] = (count, reset_at)
        if count > limit.max_requests:
            return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at)
        return RateLimitResult(
            allowed=True, remaining=limit.max_requests - count, reset_at=reset_at
        )

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def _purge(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._entries.items() if now > reset_at]
        for key in expired:
            del self._entries[key]


class RedisRateLimiter:
    """Counters shared by every worker through ``INCR`` and ``EXPIRE``."""

    def __init__(self, client: Redis, *, key_prefix: str = "rate_limit") -> None:
        self.client = client
        self.key_prefix = key_prefix

    def hit(self, key: str, limit: RateLimit) -> RateLimitResult:
        redis_key = f"{self.key_prefix}:{key}"
        pipeline = self.client.pipeline()
        pipeline.incr(redis_key)
        pipeline.ttl(redis_key)
        count, ttl = pipeline.execute()
        if ttl is None or ttl < 0:
            self.client.expire(redis_key, limit.window_seconds)
            ttl = limit.window_seconds
        reset_at = time.time() + ttl
        if count > limit.max_requests:
            return RateLimitResult(allowed=False, remaining=0, reset_at=reset_at)
        return RateLimitResult(
            allowed=True, remaining=limit.max_requests - count, reset_at=reset_at
        )


_memory_limiter = MemoryRateLimiter()


@lru_cache()
def _redis_limiter() -> RedisRateLimiter:
    return RedisRateLimiter(Redis.from_url(get_settings().redis_url))


def check_rate_limit(purpose: str, subject: str | int) -> RateLimitResult:
    """Record a hit for ``subject`` under ``purpose`` and return the outcome."""

    limit = RATE_LIMITS[purpose]
    key = f"{purpose}:{subject}"
    if get_settings().redis_enabled:
        try:
            return _redis_limiter().hit(key, limit)
        except RedisError as exc:
            LOGGER.warning("rate_limit_redis_unavailable", key=key, error=str(exc))
    return _memory_limiter.hit(key, limit)


def enforce_rate_limit(purpose: str, subject: str | int, detail: str) -> None:
    """Raise HTTP 429 with ``Retry-After`` once ``subject`` exceeds its window."""

    result = check_rate_limit(purpose, subject)
    if not result.allowed:
        LOGGER.info("rate_limit_exceeded", purpose=purpose, subject=str(subject))
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            headers={"Retry-After": str(result.retry_after)},
        )


def reset_rate_limits() -> None:
    """Clear in-process counters."""

    _memory_limiter.reset()


__all__ = [
    "RATE_LIMITS",
    "RateLimit",
    "RateLimitResult",
    "check_rate_limit",
    "enforce_rate_limit",
    "reset_rate_limits",
]
