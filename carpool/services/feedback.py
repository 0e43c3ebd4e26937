"""
Feedback Service

Handles feedback submission and trust score recomputation.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carpool.domain.entities import Feedback
from carpool.domain.errors import InvalidState, NotFound
from carpool.domain.feedback import FeedbackSummary, ensure_can_rate, summarize
from carpool.domain.trust import TrustScoreEngine
from carpool.infrastructure.models import FeedbackModel
from carpool.infrastructure.repositories import (
    FeedbackRepository,
    PoolRepository,
    TrustPenaltyRepository,
    UserRepository,
    to_feedback,
)
from carpool.services.pools import default_trust_engine

logger = logging.getLogger(__name__)


class FeedbackService:
    """Service for post-ride feedback and the trust scores derived from it."""

    def __init__(
        self, session: AsyncSession, trust: Optional[TrustScoreEngine] = None
    ):
        self.session = session
        self.feedback = FeedbackRepository(session)
        self.pools = PoolRepository(session)
        self.users = UserRepository(session)
        self.penalties = TrustPenaltyRepository(session)
        self.trust = trust or default_trust_engine()

    async def submit(
        self, rater_id: int, draft: Feedback, now: datetime
    ) -> FeedbackModel:
        """
        Submit feedback for another rider of a completed ride.

        Validates:
        - The ride exists and is completed
        - Rater and rated user both rode in it, and are different people
        - The rater hasn't already rated this user for this ride
        """
        pool = await self.pools.get_by_id(draft.ride_id)
        if pool is None:
            raise NotFound("Ride not found")

        already = await self.feedback.exists(
            draft.ride_id, rater_id, draft.rated_user_id
        )
        ensure_can_rate(pool, rater_id, draft.rated_user_id, already)

        draft.rater_id = rater_id
        draft.created_at = now
        try:
            async with self.session.begin_nested():
                model = await self.feedback.add(draft)
        except IntegrityError:
            raise InvalidState(
                "Feedback already submitted for this user in this ride"
            )

        score = await self.recompute_trust(draft.rated_user_id, now)
        logger.info(
            "Feedback %s on ride %s: user %s rated %s (%d), trust now %s",
            model.id,
            draft.ride_id,
            rater_id,
            draft.rated_user_id,
            draft.score,
            score,
        )
        return model

    async def recompute_trust(self, user_id: int, now: datetime) -> Optional[int]:
        records = [to_feedback(m) for m in await self.feedback.for_rated_user(user_id)]
        penalties = await self.penalties.for_user(user_id)
        score = self.trust.recompute(records, penalties, now)
        user = await self.users.set_trust_score(user_id, score, now)
        return user.trust_score if user else None

    async def for_user(
        self, user_id: int
    ) -> tuple[list[FeedbackModel], FeedbackSummary]:
        records = await self.feedback.for_rated_user(user_id)
        return records, summarize([to_feedback(m) for m in records])

    async def for_ride(self, ride_id: int) -> list[FeedbackModel]:
        return await self.feedback.for_ride(ride_id)

    async def by_rater(self, user_id: int) -> list[FeedbackModel]:
        return await self.feedback.by_rater(user_id)
