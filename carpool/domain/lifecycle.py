"""
Pool Lifecycle State Machine
============================

States
------
upcoming (initial) -> ongoing -> completed (terminal)
upcoming | ongoing -> cancelled (terminal)
upcoming -> completed is allowed once the departure time has passed.

Guards
------
* create   -- women-only needs a non-male creator, community needs at least
  one community tag, departure may not lie in the past (5 min grace).
* join     -- see ``eligibility.check_join``.
* leave    -- non-creator with a ``joined`` entry, upcoming pools only.
  Leaving less than 60 min before departure earns a penalty.
* cancel   -- creator only; with co-riders on board every other ``joined``
  entry becomes ``removed`` and the creator is penalised.
* complete -- creator only, departure must have passed.
* delete   -- creator only, and only while the creator rides alone.

Every function here mutates the ``Pool`` entity in place and reports side
effects (penalties, removals) through a ``TransitionOutcome``; persisting
the entity and applying penalties is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from .eligibility import check_join
from .entities import Participant, Pool, Rider
from .enums import (
    POOL_TRANSITIONS,
    ErrorKind,
    Gender,
    ParticipantStatus,
    PenaltyReason,
    PoolStatus,
    PoolType,
)
from .errors import (
    InvalidState,
    InvalidStateTransition,
    NotPermitted,
    PolicyViolation,
    ValidationFailed,
)
from .schedule import departure_at, minutes_until

_ERRORS_BY_KIND: dict[ErrorKind, type[PolicyViolation]] = {
    ErrorKind.VALIDATION: ValidationFailed,
    ErrorKind.AUTHORIZATION: NotPermitted,
    ErrorKind.STATE: InvalidState,
}


@dataclass
class TransitionOutcome:
    penalized_user_id: Optional[int] = None
    penalty_reason: Optional[PenaltyReason] = None
    removed_user_ids: list[int] = field(default_factory=list)

    @property
    def penalty_due(self) -> bool:
        return self.penalized_user_id is not None


@dataclass
class LifecyclePolicy:
    tz_name: str = "Asia/Kolkata"
    late_cancel_window_minutes: int = 60
    creation_grace_minutes: int = 5

    def departure(self, pool: Pool) -> datetime:
        return departure_at(pool.date, pool.time, self.tz_name)

    # ── create ────────────────────────────────────────────────────

    def ensure_can_create(
        self,
        creator: Rider,
        pool_type: PoolType,
        day: date,
        hhmm: str,
        now: datetime,
    ) -> None:
        if pool_type == PoolType.WOMEN_ONLY and creator.gender == Gender.MALE:
            raise NotPermitted('Male users cannot create "Women Only" pools.')
        if pool_type == PoolType.COMMUNITY and not creator.community:
            raise ValidationFailed(
                "You must belong to at least one community to create a "
                '"Community Members Only" pool.'
            )

        departure = departure_at(day, hhmm, self.tz_name)
        local_now = now.astimezone(departure.tzinfo)
        if day < local_now.date():
            raise ValidationFailed("Ride date cannot be in the past")
        if day == local_now.date():
            grace = timedelta(minutes=self.creation_grace_minutes)
            if departure < local_now - grace:
                raise ValidationFailed("Ride time has already passed for today")

    def open_pool(self, pool: Pool, creator: Rider, now: datetime) -> Pool:
        """Initialise a freshly created pool with its creator on board."""
        pool.status = PoolStatus.UPCOMING
        pool.created_by = creator.id
        pool.creator = creator
        pool.participants = [
            Participant(
                user_id=creator.id,
                joined_at=now,
                status=ParticipantStatus.JOINED,
                rider=creator,
            )
        ]
        return pool

    # ── join / leave ──────────────────────────────────────────────

    def join(self, pool: Pool, rider: Rider, now: datetime) -> Participant:
        verdict = check_join(pool, rider)
        if not verdict:
            raise _ERRORS_BY_KIND[verdict.kind](verdict.reason)

        entry = pool.entry_for(rider.id)
        if entry is not None:
            entry.status = ParticipantStatus.JOINED
            entry.joined_at = now
            entry.rider = rider
        else:
            entry = Participant(
                user_id=rider.id,
                joined_at=now,
                status=ParticipantStatus.JOINED,
                rider=rider,
            )
            pool.participants.append(entry)
        return entry

    def is_late(self, pool: Pool, now: datetime) -> bool:
        remaining = minutes_until(self.departure(pool), now)
        return 0 < remaining < self.late_cancel_window_minutes

    def leave(self, pool: Pool, user_id: int, now: datetime) -> TransitionOutcome:
        if pool.status != PoolStatus.UPCOMING:
            raise InvalidState("Cannot leave a pool that is not upcoming")
        if pool.is_creator(user_id):
            raise ValidationFailed(
                "Pool creator cannot leave the pool. Cancel the pool instead."
            )
        entry = pool.entry_for(user_id)
        if entry is None or not entry.is_active:
            raise InvalidState("You are not a participant in this pool")

        entry.status = ParticipantStatus.LEFT
        if self.is_late(pool, now):
            return TransitionOutcome(
                penalized_user_id=user_id,
                penalty_reason=PenaltyReason.LATE_LEAVE,
            )
        return TransitionOutcome()

    # ── status changes ────────────────────────────────────────────

    def change_status(
        self,
        pool: Pool,
        user_id: int,
        new_status: PoolStatus,
        now: datetime,
    ) -> TransitionOutcome:
        if not pool.is_creator(user_id):
            raise NotPermitted("Only pool creator can update pool status")
        if new_status not in POOL_TRANSITIONS.get(pool.status, set()):
            raise InvalidStateTransition(
                f"Cannot change pool status from {pool.status.value} "
                f"to {new_status.value}"
            )

        if new_status == PoolStatus.CANCELLED:
            return self._cancel(pool)
        if new_status == PoolStatus.COMPLETED:
            if self.departure(pool) > now:
                raise InvalidState(
                    "Cannot complete a ride before its scheduled time"
                )
        pool.transition_to(new_status)
        return TransitionOutcome()

    def _cancel(self, pool: Pool) -> TransitionOutcome:
        co_riders = [
            p for p in pool.active_participants if p.user_id != pool.created_by
        ]
        pool.transition_to(PoolStatus.CANCELLED)
        if not co_riders:
            return TransitionOutcome()

        for participant in co_riders:
            participant.status = ParticipantStatus.REMOVED
        return TransitionOutcome(
            penalized_user_id=pool.created_by,
            penalty_reason=PenaltyReason.CANCEL_WITH_RIDERS,
            removed_user_ids=[p.user_id for p in co_riders],
        )

    # ── delete ────────────────────────────────────────────────────

    def ensure_can_delete(self, pool: Pool, user_id: int) -> None:
        if not pool.is_creator(user_id):
            raise NotPermitted("Only pool creator can delete the pool")
        if pool.joined_count > 1:
            raise InvalidState(
                "Cannot delete pool with active participants. "
                "Cancel the pool instead."
            )
