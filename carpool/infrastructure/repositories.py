"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  ``PoolRepository`` hands out ``Pool``
entities and writes them back, so the lifecycle rules never touch ORM
rows directly.

Relationships are always either eager-loaded (``selectin``) or assigned
explicitly before a flush; nothing here may trigger a lazy load under
asyncio.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    FeedbackModel,
    ParticipantModel,
    PoolModel,
    TrustPenaltyModel,
    UserModel,
)
from carpool.domain.entities import (
    Feedback,
    Location,
    Participant,
    Pool,
    Rider,
    TrustPenalty,
)
from carpool.domain.enums import ParticipantStatus, PoolStatus, PoolType
from carpool.domain.schedule import as_utc


# ── Row -> entity mapping ─────────────────────────────────────────────


def to_rider(user: UserModel) -> Rider:
    return Rider(
        id=user.id,
        name=user.name,
        gender=user.gender,
        community=list(user.community or []),
        trust_score=user.trust_score,
    )


def to_pool(model: PoolModel) -> Pool:
    return Pool(
        id=model.id,
        source=model.source,
        destination=model.destination,
        source_location=Location(model.source_lat, model.source_lng),
        destination_location=Location(model.dest_lat, model.dest_lng),
        date=model.date,
        time=model.time,
        max_seats=model.max_seats,
        fare=model.fare,
        type=PoolType(model.type),
        status=PoolStatus(model.status),
        created_by=model.created_by,
        creator=to_rider(model.creator) if model.creator else None,
        participants=[
            Participant(
                user_id=p.user_id,
                joined_at=as_utc(p.joined_at),
                status=ParticipantStatus(p.status),
                rider=to_rider(p.user) if p.user else None,
            )
            for p in model.participants
        ],
        created_at=as_utc(model.created_at) if model.created_at else None,
        updated_at=as_utc(model.updated_at) if model.updated_at else None,
    )


def to_feedback(model: FeedbackModel) -> Feedback:
    return Feedback(
        id=model.id,
        ride_id=model.ride_id,
        rater_id=model.rater_id,
        rated_user_id=model.rated_user_id,
        score=model.score,
        comment=model.comment or "",
        safety_flag=bool(model.safety_flag),
        categories=dict(model.categories or {}),
        created_at=as_utc(model.created_at),
    )


# ── Repositories ──────────────────────────────────────────────────────


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)

    async def get_by_email(self, email: str) -> Optional[UserModel]:
        result = await self.session.execute(
            select(UserModel).where(UserModel.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def create(self, user: UserModel) -> UserModel:
        self.session.add(user)
        await self.session.flush()
        return user

    async def set_trust_score(
        self, user_id: int, score: int, now: datetime
    ) -> Optional[UserModel]:
        user = await self.get_by_id(user_id)
        if user is None:
            return None
        user.trust_score = score
        user.updated_at = as_utc(now)
        await self.session.flush()
        return user


class PoolRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(
        self, pool_id: int, *, for_update: bool = False
    ) -> Optional[Pool]:
        """Load a pool; ``for_update`` takes a row lock (SELECT ... FOR UPDATE)."""
        query = select(PoolModel).where(PoolModel.id == pool_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        model = result.scalar_one_or_none()
        return to_pool(model) if model else None

    async def add(self, pool: Pool, now: datetime) -> Pool:
        stamp = as_utc(now)
        creator = await self.session.get(UserModel, pool.created_by)
        participants = []
        for p in pool.participants:
            user = creator
            if p.user_id != pool.created_by:
                user = await self.session.get(UserModel, p.user_id)
            participants.append(
                ParticipantModel(
                    user_id=p.user_id,
                    user=user,
                    joined_at=as_utc(p.joined_at),
                    status=p.status,
                )
            )
        model = PoolModel(
            source=pool.source,
            destination=pool.destination,
            source_lat=pool.source_location.latitude,
            source_lng=pool.source_location.longitude,
            dest_lat=pool.destination_location.latitude,
            dest_lng=pool.destination_location.longitude,
            date=pool.date,
            time=pool.time,
            max_seats=pool.max_seats,
            fare=pool.fare,
            type=pool.type,
            status=pool.status,
            created_by=pool.created_by,
            creator=creator,
            created_at=stamp,
            updated_at=stamp,
            participants=participants,
        )
        self.session.add(model)
        await self.session.flush()
        return to_pool(model)

    async def save(self, pool: Pool, now: datetime) -> Pool:
        """Write status and participant entries of *pool* back to its row."""
        model = await self.session.get(PoolModel, pool.id)
        model.status = pool.status
        model.updated_at = as_utc(now)

        rows = {row.user_id: row for row in model.participants}
        for participant in pool.participants:
            row = rows.get(participant.user_id)
            if row is None:
                user = await self.session.get(UserModel, participant.user_id)
                model.participants.append(
                    ParticipantModel(
                        user_id=participant.user_id,
                        user=user,
                        joined_at=as_utc(participant.joined_at),
                        status=participant.status,
                    )
                )
            else:
                row.status = participant.status
                row.joined_at = as_utc(participant.joined_at)

        await self.session.flush()
        return to_pool(model)

    async def delete(self, pool_id: int) -> None:
        model = await self.session.get(PoolModel, pool_id)
        if model is None:
            return
        await self._detach_history([pool_id])
        await self.session.delete(model)
        await self.session.flush()

    async def list_pools(
        self,
        *,
        status: PoolStatus = PoolStatus.UPCOMING,
        pool_type: Optional[PoolType] = None,
        on_date: Optional[date] = None,
    ) -> list[Pool]:
        query = select(PoolModel).where(PoolModel.status == status)
        if pool_type is not None:
            query = query.where(PoolModel.type == pool_type)
        if on_date is not None:
            query = query.where(PoolModel.date == on_date)
        query = query.order_by(PoolModel.date, PoolModel.time)
        result = await self.session.execute(query)
        return [to_pool(m) for m in result.scalars().all()]

    async def created_by(self, user_id: int) -> list[Pool]:
        result = await self.session.execute(
            select(PoolModel)
            .where(PoolModel.created_by == user_id)
            .order_by(PoolModel.date.desc(), PoolModel.time.desc())
        )
        return [to_pool(m) for m in result.scalars().all()]

    async def joined_by(self, user_id: int) -> list[Pool]:
        """Pools the user rides in without having created them."""
        result = await self.session.execute(
            select(PoolModel)
            .join(ParticipantModel, ParticipantModel.pool_id == PoolModel.id)
            .where(
                ParticipantModel.user_id == user_id,
                ParticipantModel.status == ParticipantStatus.JOINED,
                PoolModel.created_by != user_id,
            )
            .order_by(PoolModel.date.desc(), PoolModel.time.desc())
        )
        return [to_pool(m) for m in result.scalars().unique().all()]

    async def delete_completed_before(self, cutoff: datetime) -> int:
        """Hard-delete completed pools last updated before *cutoff*."""
        result = await self.session.execute(
            select(PoolModel).where(
                PoolModel.status == PoolStatus.COMPLETED,
                PoolModel.updated_at < as_utc(cutoff),
            )
        )
        stale = list(result.scalars().all())
        if not stale:
            return 0
        await self._detach_history([m.id for m in stale])
        for model in stale:
            await self.session.delete(model)
        await self.session.flush()
        return len(stale)

    async def _detach_history(self, pool_ids: list[int]) -> None:
        """Keep feedback and penalties of deleted pools, minus the ride link."""
        await self.session.execute(
            update(FeedbackModel)
            .where(FeedbackModel.ride_id.in_(pool_ids))
            .values(ride_id=None)
        )
        await self.session.execute(
            update(TrustPenaltyModel)
            .where(TrustPenaltyModel.pool_id.in_(pool_ids))
            .values(pool_id=None)
        )


class FeedbackRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists(self, ride_id: int, rater_id: int, rated_user_id: int) -> bool:
        result = await self.session.execute(
            select(FeedbackModel.id).where(
                FeedbackModel.ride_id == ride_id,
                FeedbackModel.rater_id == rater_id,
                FeedbackModel.rated_user_id == rated_user_id,
            )
        )
        return result.first() is not None

    async def add(self, feedback: Feedback) -> FeedbackModel:
        model = FeedbackModel(
            ride_id=feedback.ride_id,
            rater_id=feedback.rater_id,
            rater=await self.session.get(UserModel, feedback.rater_id),
            rated_user_id=feedback.rated_user_id,
            rated_user=await self.session.get(UserModel, feedback.rated_user_id),
            score=feedback.score,
            comment=feedback.comment,
            safety_flag=feedback.safety_flag,
            categories=feedback.categories,
            created_at=as_utc(feedback.created_at),
        )
        self.session.add(model)
        await self.session.flush()
        return model

    async def _list(self, *criteria) -> list[FeedbackModel]:
        result = await self.session.execute(
            select(FeedbackModel)
            .where(*criteria)
            .order_by(FeedbackModel.created_at.desc(), FeedbackModel.id.desc())
        )
        return list(result.scalars().all())

    async def for_rated_user(self, user_id: int) -> list[FeedbackModel]:
        return await self._list(FeedbackModel.rated_user_id == user_id)

    async def for_ride(self, ride_id: int) -> list[FeedbackModel]:
        return await self._list(FeedbackModel.ride_id == ride_id)

    async def by_rater(self, user_id: int) -> list[FeedbackModel]:
        return await self._list(FeedbackModel.rater_id == user_id)


class TrustPenaltyRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, penalty: TrustPenalty) -> TrustPenaltyModel:
        model = TrustPenaltyModel(
            user_id=penalty.user_id,
            pool_id=penalty.pool_id,
            points=penalty.points,
            reason=penalty.reason,
            created_at=as_utc(penalty.created_at),
        )
        self.session.add(model)
        await self.session.flush()
        return model

    async def for_user(self, user_id: int) -> list[TrustPenalty]:
        result = await self.session.execute(
            select(TrustPenaltyModel).where(TrustPenaltyModel.user_id == user_id)
        )
        return [
            TrustPenalty(
                user_id=m.user_id,
                points=m.points,
                reason=m.reason,
                pool_id=m.pool_id,
                created_at=as_utc(m.created_at),
            )
            for m in result.scalars().all()
        ]
