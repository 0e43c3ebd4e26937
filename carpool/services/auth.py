"""
Auth Service

Signup, login, profile updates and logout.  Credential handling is
delegated to ``infrastructure.security``; the authenticated caller is
represented by an explicit ``AuthSession`` built per request.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from carpool.config import settings
from carpool.domain.entities import Rider
from carpool.domain.enums import Gender
from carpool.domain.errors import NotFound, NotPermitted, ValidationFailed
from carpool.domain.schedule import as_utc
from carpool.infrastructure.models import UserModel
from carpool.infrastructure.repositories import UserRepository, to_rider
from carpool.infrastructure.security import (
    IssuedToken,
    hash_password,
    issue_access_token,
    verify_password,
)
from carpool.infrastructure.sessions import RevokedTokenStore

logger = logging.getLogger(__name__)


class InvalidCredentials(Exception):
    """Raised when an email/password pair does not match."""


@dataclass
class AuthSession:
    """The authenticated caller for the lifetime of one request."""

    user: UserModel
    token_id: str
    expires_at: datetime

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def rider(self) -> Rider:
        return to_rider(self.user)


def normalize_communities(tags: Optional[list[str]]) -> list[str]:
    """Trim, drop empties and de-duplicate while keeping order."""
    seen: dict[str, None] = {}
    for tag in tags or []:
        cleaned = tag.strip()
        if cleaned:
            seen.setdefault(cleaned, None)
    return list(seen)


class AuthService:
    def __init__(self, session: AsyncSession):
        self.users = UserRepository(session)

    async def signup(
        self,
        *,
        name: str,
        email: str,
        password: str,
        phone: str,
        gender: Gender = Gender.OTHER,
        community: Optional[list[str]] = None,
        now: datetime,
    ) -> tuple[UserModel, IssuedToken]:
        if await self.users.get_by_email(email):
            raise ValidationFailed("User already exists with this email")

        stamp = as_utc(now)
        user = await self.users.create(
            UserModel(
                name=name.strip(),
                email=email.lower(),
                password_hash=hash_password(password),
                phone=phone,
                gender=gender,
                community=normalize_communities(community),
                trust_score=settings.default_trust_score,
                is_verified=False,
                last_login=stamp,
                created_at=stamp,
                updated_at=stamp,
            )
        )
        logger.info("User %s signed up", user.id)
        return user, issue_access_token(user.id)

    async def login(
        self, email: str, password: str, now: datetime
    ) -> tuple[UserModel, IssuedToken]:
        user = await self.users.get_by_email(email)
        if user is None or not verify_password(user.password_hash, password):
            raise InvalidCredentials("Invalid credentials")
        user.last_login = as_utc(now)
        user.updated_at = as_utc(now)
        return user, issue_access_token(user.id)

    async def update_profile(
        self,
        session: AuthSession,
        user_id: int,
        changes: dict[str, Any],
        now: datetime,
    ) -> UserModel:
        if session.user_id != user_id:
            raise NotPermitted("Not authorized to update this profile")
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found")

        if "name" in changes:
            user.name = changes["name"].strip()
        if "phone" in changes:
            user.phone = changes["phone"]
        if "gender" in changes:
            user.gender = changes["gender"]
        if "community" in changes:
            user.community = normalize_communities(changes["community"])
        user.updated_at = as_utc(now)
        return user

    async def logout(
        self, session: AuthSession, store: RevokedTokenStore, now: datetime
    ) -> None:
        await store.revoke(session.token_id, session.expires_at, now)
        logger.info("User %s logged out", session.user_id)
