"""
Per-user sliding-window rate limiting for LLM calls.

InMemoryRateLimiter is process-local. Deployments with more than one engine
instance should use RedisRateLimiter so the window is shared.
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

from ..errors import RateLimitError

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 60
DEFAULT_WINDOW_SECONDS = 60.0


class RateLimiter(ABC):
    """Admission check keyed by user id"""

    @abstractmethod
    async def acquire(self, key: str) -> None:
        """Record one request for `key` or raise RateLimitError if the window is full"""
        raise NotImplementedError


class InMemoryRateLimiter(RateLimiter):
    """Keeps request timestamps per key; entries older than the window are dropped"""

    def __init__(
        self,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, List[float]] = {}

    async def acquire(self, key: str) -> None:
        now = self._clock()
        self._drop_idle_keys(now)
        recent = [ts for ts in self._requests.get(key, []) if now - ts < self.window_seconds]

        if len(recent) >= self.max_requests:
            self._requests[key] = recent
            retry_after = self.window_seconds - (now - recent[0])
            logger.warning(f"Rate limit exceeded for user '{key}' ({len(recent)} requests in window)")
            raise RateLimitError(retry_after=retry_after)

        recent.append(now)
        self._requests[key] = recent

    def remaining(self, key: str) -> int:
        now = self._clock()
        recent = [ts for ts in self._requests.get(key, []) if now - ts < self.window_seconds]
        return max(self.max_requests - len(recent), 0)

    def _drop_idle_keys(self, now: float) -> None:
        """Forget keys whose newest request has left the window"""
        idle = [key for key, stamps in self._requests.items() if not stamps or now - stamps[-1] >= self.window_seconds]
        for key in idle:
            del self._requests[key]

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._requests.clear()
        else:
            self._requests.pop(key, None)


class RedisRateLimiter(RateLimiter):
    """
    Sliding window on a Redis sorted set (score = request time).

    The add happens inside the same MULTI as the count; an over-limit member
    is removed again before raising.
    """

    def __init__(
        self,
        redis,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        prefix: str = "agentflow:ratelimit",
        clock: Callable[[], float] = time.time,
    ):
        self.redis = redis
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.prefix = prefix
        self._clock = clock

    async def acquire(self, key: str) -> None:
        redis_key = f"{self.prefix}:{key}"
        now = self._clock()
        member = f"{now}-{uuid.uuid4().hex}"

        pipe = self.redis.pipeline(transaction=True)
        pipe.zremrangebyscore(redis_key, 0, now - self.window_seconds)
        pipe.zadd(redis_key, {member: now})
        pipe.zcard(redis_key)
        pipe.expire(redis_key, int(self.window_seconds) + 1)
        results = await pipe.execute()

        count = results[2]
        if count > self.max_requests:
            await self.redis.zrem(redis_key, member)
            logger.warning(f"Rate limit exceeded for user '{key}' ({count - 1} requests in window)")
            raise RateLimitError()
