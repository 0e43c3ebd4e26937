"""
Pool Service

Orchestrates one lifecycle request: load the pool (row-locked for
mutations), run the domain guard, persist the entity, then apply any
trust penalty the transition reported.

Penalty failures are logged and swallowed; the transition that earned the
penalty has already been written and stays committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.config import settings
from carpool.domain.eligibility import PoolFilters, visible_pools
from carpool.domain.entities import Pool, Rider, TrustPenalty
from carpool.domain.enums import PenaltyReason, PoolStatus, PoolType
from carpool.domain.errors import InvalidState, NotFound
from carpool.domain.lifecycle import LifecyclePolicy, TransitionOutcome
from carpool.domain.trust import TrustScoreEngine
from carpool.infrastructure.repositories import (
    PoolRepository,
    TrustPenaltyRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


def default_policy() -> LifecyclePolicy:
    return LifecyclePolicy(
        tz_name=settings.timezone,
        late_cancel_window_minutes=settings.late_cancel_window_minutes,
        creation_grace_minutes=settings.creation_grace_minutes,
    )


def default_trust_engine() -> TrustScoreEngine:
    return TrustScoreEngine(
        default_score=settings.default_trust_score,
        penalty_points=settings.penalty_points,
    )


@dataclass
class PoolActionResult:
    pool: Pool
    message: str
    penalty_applied: bool = False


class PoolService:
    """Service for pool lifecycle operations."""

    def __init__(
        self,
        session: AsyncSession,
        policy: Optional[LifecyclePolicy] = None,
        trust: Optional[TrustScoreEngine] = None,
    ):
        self.session = session
        self.pools = PoolRepository(session)
        self.users = UserRepository(session)
        self.penalties = TrustPenaltyRepository(session)
        self.policy = policy or default_policy()
        self.trust = trust or default_trust_engine()

    # ── reads ─────────────────────────────────────────────────────

    async def get(self, pool_id: int, *, for_update: bool = False) -> Pool:
        pool = await self.pools.get_by_id(pool_id, for_update=for_update)
        if pool is None:
            raise NotFound("Pool not found")
        return pool

    async def list_pools(
        self,
        status: PoolStatus = PoolStatus.UPCOMING,
        pool_type: Optional[PoolType] = None,
        on_date: Optional[date] = None,
    ) -> list[Pool]:
        return await self.pools.list_pools(
            status=status, pool_type=pool_type, on_date=on_date
        )

    async def available_for(
        self, viewer: Rider, filters: Optional[PoolFilters] = None
    ) -> list[Pool]:
        """Upcoming pools the viewer could join right now."""
        upcoming = await self.pools.list_pools(status=PoolStatus.UPCOMING)
        return visible_pools(upcoming, viewer, filters)

    async def mine(self, user_id: int) -> list[Pool]:
        created = await self.pools.created_by(user_id)
        joined = await self.pools.joined_by(user_id)
        return created + joined

    # ── mutations ─────────────────────────────────────────────────

    async def create(self, creator: Rider, draft: Pool, now: datetime) -> Pool:
        self.policy.ensure_can_create(
            creator, draft.type, draft.date, draft.time, now
        )
        self.policy.open_pool(draft, creator, now)
        pool = await self.pools.add(draft, now)
        logger.info("Pool %s created by user %s", pool.id, creator.id)
        return pool

    async def join(self, pool_id: int, rider: Rider, now: datetime) -> PoolActionResult:
        pool = await self.get(pool_id, for_update=True)
        self.policy.join(pool, rider, now)
        try:
            async with self.session.begin_nested():
                pool = await self.pools.save(pool, now)
        except IntegrityError:
            raise InvalidState("You are already a participant in this pool")
        logger.info("User %s joined pool %s", rider.id, pool_id)
        return PoolActionResult(pool=pool, message="Successfully joined the pool")

    async def leave(self, pool_id: int, user_id: int, now: datetime) -> PoolActionResult:
        pool = await self.get(pool_id, for_update=True)
        outcome = self.policy.leave(pool, user_id, now)
        pool = await self.pools.save(pool, now)
        logger.info("User %s left pool %s", user_id, pool_id)

        applied = await self._settle(pool_id, outcome, now)
        if applied:
            pool = await self.get(pool_id)
        message = "Successfully left the pool"
        if applied:
            message += (
                f". Leaving less than {self.policy.late_cancel_window_minutes} "
                f"minutes before departure cost {self.trust.penalty_points} "
                "trust points."
            )
        return PoolActionResult(pool=pool, message=message, penalty_applied=applied)

    async def change_status(
        self, pool_id: int, user_id: int, status: PoolStatus, now: datetime
    ) -> PoolActionResult:
        pool = await self.get(pool_id, for_update=True)
        outcome = self.policy.change_status(pool, user_id, status, now)
        pool = await self.pools.save(pool, now)
        logger.info("Pool %s moved to %s by user %s", pool_id, status.value, user_id)

        applied = await self._settle(pool_id, outcome, now)
        if applied:
            pool = await self.get(pool_id)
        if status == PoolStatus.CANCELLED:
            message = "Pool cancelled successfully"
            if outcome.removed_user_ids:
                message += f"; {len(outcome.removed_user_ids)} co-rider(s) removed"
            if applied:
                message += (
                    f". {self.trust.penalty_points} trust points were deducted "
                    "for cancelling with co-riders on board."
                )
        else:
            message = "Pool status updated successfully"
        return PoolActionResult(pool=pool, message=message, penalty_applied=applied)

    async def delete(self, pool_id: int, user_id: int) -> None:
        pool = await self.get(pool_id, for_update=True)
        self.policy.ensure_can_delete(pool, user_id)
        await self.pools.delete(pool_id)
        logger.info("Pool %s deleted by user %s", pool_id, user_id)

    # ── penalties ─────────────────────────────────────────────────

    async def _settle(
        self, pool_id: int, outcome: TransitionOutcome, now: datetime
    ) -> bool:
        if not outcome.penalty_due:
            return False
        return await self.apply_penalty(
            outcome.penalized_user_id, pool_id, outcome.penalty_reason, now
        )

    async def apply_penalty(
        self,
        user_id: int,
        pool_id: Optional[int],
        reason: PenaltyReason,
        now: datetime,
    ) -> bool:
        """Deduct the flat penalty; returns False (and logs) on any failure."""
        try:
            async with self.session.begin_nested():
                user = await self.users.get_by_id(user_id)
                if user is None:
                    logger.warning(
                        "Trust penalty skipped: user %s no longer exists", user_id
                    )
                    return False
                await self.penalties.add(
                    TrustPenalty(
                        user_id=user_id,
                        points=self.trust.penalty_points,
                        reason=reason,
                        pool_id=pool_id,
                        created_at=now,
                    )
                )
                score = self.trust.apply_penalty(user.trust_score)
                await self.users.set_trust_score(user_id, score, now)
        except SQLAlchemyError:
            logger.exception("Failed to apply trust penalty to user %s", user_id)
            return False

        logger.info(
            "User %s penalised %d points (%s), trust now %d",
            user_id,
            self.trust.penalty_points,
            reason.value,
            score,
        )
        return True
