"""
Credential helpers: Argon2id password hashing and HS256 access tokens.

Tokens carry ``sub`` (user id as string), ``jti`` (session id used for
revocation), ``iat``/``exp`` and fixed issuer/audience claims.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from argon2 import PasswordHasher
from argon2 import exceptions as argon_exc

from carpool.config import settings

PASSWORD_HASHER = PasswordHasher()


def hash_password(password: str) -> str:
    return PASSWORD_HASHER.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    try:
        return PASSWORD_HASHER.verify(password_hash, password)
    except (argon_exc.VerificationError, argon_exc.InvalidHashError):
        return False


@dataclass(frozen=True)
class IssuedToken:
    token: str
    token_id: str
    expires_at: datetime


def issue_access_token(user_id: int, now: datetime | None = None) -> IssuedToken:
    issued = now or datetime.now(timezone.utc)
    expires = issued + timedelta(days=settings.jwt_expire_days)
    token_id = uuid.uuid4().hex
    payload = {
        "sub": str(user_id),
        "jti": token_id,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": int(issued.timestamp()),
        "exp": int(expires.timestamp()),
    }
    token = jwt.encode(payload, settings.jwt_secret, algorithm="HS256")
    return IssuedToken(token=token, token_id=token_id, expires_at=expires)


def decode_access_token(token: str) -> dict:
    """Decode and validate; raises ``jwt.InvalidTokenError`` on failure."""
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        audience=settings.jwt_audience,
        issuer=settings.jwt_issuer,
        options={"require": ["sub", "jti", "exp", "iat"]},
    )
    return payload
