# app/utils/locks.py
from __future__ import annotations
from typing import Optional
from redis.asyncio import Redis
import uuid, asyncio

class RedisLock:
    """
    Simple, single-instance lock using SET NX EX.
    Serializes writers on the same key (e.g. two sale attempts on one product).
    The TTL bounds how long a crashed holder can block others.
    """
    def __init__(self, redis: Redis, key: str, ttl: int = 10):
        self.redis = redis
        self.key = f"lock:{key}"
        self.ttl = ttl
        self._token: Optional[str] = None

    async def acquire(self) -> bool:
        token = uuid.uuid4().hex
        ok = await self.redis.set(self.key, token, nx=True, ex=self.ttl)
        if ok:
            self._token = token
            return True
        return False

    async def acquire_wait(self, timeout: float) -> bool:
        """Retry acquire every 100ms until `timeout` seconds have passed."""
        for _ in range(max(1, int(timeout * 10))):
            if await self.acquire():
                return True
            await asyncio.sleep(0.1)
        return False

    async def release(self) -> None:
        # Only drop the key if we still own it (TTL may have expired meanwhile)
        if self._token is None:
            return
        current = await self.redis.get(self.key)
        if current == self._token:
            await self.redis.delete(self.key)
        self._token = None
