"""
Token revocation set.

Access tokens are stateless; logging out records the token id in Redis
until the token would have expired anyway, and the auth dependency
rejects any token found there.
"""

from __future__ import annotations

from datetime import datetime

import redis.asyncio as aioredis


class RevokedTokenStore:
    def __init__(self, client: aioredis.Redis, prefix: str = "revoked"):
        self.redis = client
        self.prefix = prefix

    def _key(self, token_id: str) -> str:
        return f"{self.prefix}:{token_id}"

    async def revoke(self, token_id: str, expires_at: datetime, now: datetime) -> None:
        ttl = max(1, int((expires_at - now).total_seconds()))
        await self.redis.set(self._key(token_id), "1", ex=ttl)

    async def is_revoked(self, token_id: str) -> bool:
        return bool(await self.redis.exists(self._key(token_id)))
