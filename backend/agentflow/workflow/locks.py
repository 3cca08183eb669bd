"""
Single-flight lock managers

`acquire` never waits: it returns False when the key is already held.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Set

logger = logging.getLogger(__name__)

# Delete the key only if it still holds our token
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class LockManager(ABC):
    @abstractmethod
    async def acquire(self, key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def release(self, key: str) -> None:
        raise NotImplementedError


class InMemoryLockManager(LockManager):
    """Process-local locks; check-and-set happens without yielding to the event loop"""

    def __init__(self):
        self._held: Set[str] = set()

    async def acquire(self, key: str) -> bool:
        if key in self._held:
            return False
        self._held.add(key)
        return True

    async def release(self, key: str) -> None:
        self._held.discard(key)

    def is_locked(self, key: str) -> bool:
        return key in self._held


class RedisLockManager(LockManager):
    """
    Locks shared across service instances.

    Each lock is a `SET NX` key with an expiry so a crashed instance cannot
    hold a key forever. Release deletes the key only when it still carries the
    token written by this instance.
    """

    def __init__(self, redis, ttl_seconds: int = 600, prefix: str = "agentflow:lock:"):
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        self.prefix = prefix
        self._tokens: Dict[str, str] = {}

    async def acquire(self, key: str) -> bool:
        token = uuid.uuid4().hex
        acquired = await self.redis.set(self.prefix + key, token, nx=True, ex=self.ttl_seconds)
        if acquired:
            self._tokens[key] = token
            return True
        return False

    async def release(self, key: str) -> None:
        token = self._tokens.pop(key, None)
        if token is None:
            return
        released = await self.redis.eval(RELEASE_SCRIPT, 1, self.prefix + key, token)
        if not released:
            logger.warning(f"Lock {key} expired before release")
