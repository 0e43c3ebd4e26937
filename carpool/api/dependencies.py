"""FastAPI dependency injection helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import jwt
import redis.asyncio as aioredis
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.infrastructure.database import async_session_factory
from carpool.infrastructure.redis_client import get_redis
from carpool.infrastructure.repositories import UserRepository
from carpool.infrastructure.security import decode_access_token
from carpool.infrastructure.sessions import RevokedTokenStore
from carpool.services.auth import AuthSession

Clock = Callable[[], datetime]

_bearer = HTTPBearer(auto_error=False)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_clock() -> Clock:
    """Server clock; overridden in tests to pin departure-relative rules."""
    return _utcnow


async def get_token_store(
    redis: aioredis.Redis = Depends(get_redis),
) -> RevokedTokenStore:
    return RevokedTokenStore(redis)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: AsyncSession = Depends(get_db),
    store: RevokedTokenStore = Depends(get_token_store),
) -> AuthSession:
    """Resolve the bearer token into an ``AuthSession`` or fail with 401."""
    if credentials is None:
        raise _unauthorized("Not authorized to access this route")
    try:
        claims = decode_access_token(credentials.credentials)
        user_id = int(claims["sub"])
    except (jwt.InvalidTokenError, ValueError):
        raise _unauthorized("Not authorized to access this route")

    if await store.is_revoked(claims["jti"]):
        raise _unauthorized("Session has been logged out")

    user = await UserRepository(db).get_by_id(user_id)
    if user is None:
        raise _unauthorized("No user found with this token")

    return AuthSession(
        user=user,
        token_id=claims["jti"],
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    )
