"""
Owner-checked Redis lock for the completed-pool cleanup sweep.

Every dashboard load triggers a sweep; the lock lets one caller through
and turns the rest away with ``LockNotAcquired``.  The key carries a
TTL so a crashed sweeper cannot wedge it, and release only deletes the
key while it still holds this holder's token.
"""

from __future__ import annotations

import secrets

import redis.asyncio as aioredis

# Compare-and-delete so an expired-then-retaken lock is left alone.
_COMPARE_AND_DELETE = """
if redis.call("get", KEYS[1]) ~= ARGV[1] then
    return 0
end
return redis.call("del", KEYS[1])
"""


class LockNotAcquired(RuntimeError):
    def __init__(self, key: str):
        super().__init__(f"Could not acquire lock: {key}")
        self.key = key


class DistributedLock:
    def __init__(self, client: aioredis.Redis, name: str, ttl_seconds: int = 30):
        self.redis = client
        self.key = f"lock:{name}"
        self.ttl = ttl_seconds
        self.token = secrets.token_hex(16)

    async def acquire(self) -> bool:
        """SET NX with expiry; False when somebody else holds the key."""
        acquired = await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        return bool(acquired)

    async def release(self) -> bool:
        """Delete the key if it is still ours.  Returns whether it was."""
        removed = await self.redis.eval(_COMPARE_AND_DELETE, 1, self.key, self.token)
        return bool(removed)

    async def __aenter__(self) -> "DistributedLock":
        if not await self.acquire():
            raise LockNotAcquired(self.key)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.release()
        return False
