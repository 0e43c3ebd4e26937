"""Unit tests for pool lifecycle transitions and guards (State Pattern)."""

from datetime import date, datetime, timezone

import pytest

from carpool.domain.entities import Participant, Pool, Rider
from carpool.domain.enums import (
    Gender,
    ParticipantStatus,
    PenaltyReason,
    PoolStatus,
    PoolType,
)
from carpool.domain.errors import (
    InvalidState,
    InvalidStateTransition,
    NotPermitted,
    ValidationFailed,
)
from carpool.domain.lifecycle import LifecyclePolicy

# 2026-03-10 10:00 Asia/Kolkata
NOW = datetime(2026, 3, 10, 4, 30, tzinfo=timezone.utc)
TODAY = date(2026, 3, 10)
TOMORROW = date(2026, 3, 11)

ALICE = Rider(id=1, name="Alice", gender=Gender.FEMALE, community=["IITB"])
BOB = Rider(id=2, name="Bob", gender=Gender.MALE)
CARA = Rider(id=3, name="Cara", gender=Gender.FEMALE)


@pytest.fixture
def policy() -> LifecyclePolicy:
    return LifecyclePolicy(tz_name="Asia/Kolkata")


def _pool(policy, *riders, day=TOMORROW, time="08:30", **kwargs) -> Pool:
    pool = Pool(id=10, date=day, time=time, **kwargs)
    policy.open_pool(pool, ALICE, NOW)
    for rider in riders:
        policy.join(pool, rider, NOW)
    return pool


class TestPoolStateMachine:
    def test_initial_status_is_upcoming(self):
        assert Pool().status == PoolStatus.UPCOMING

    # ── Valid transitions ─────────────────────────────────────────

    def test_upcoming_to_ongoing(self):
        pool = Pool(status=PoolStatus.UPCOMING)
        pool.transition_to(PoolStatus.ONGOING)
        assert pool.status == PoolStatus.ONGOING

    def test_upcoming_to_cancelled(self):
        pool = Pool(status=PoolStatus.UPCOMING)
        pool.transition_to(PoolStatus.CANCELLED)
        assert pool.status == PoolStatus.CANCELLED

    def test_ongoing_to_completed(self):
        pool = Pool(status=PoolStatus.ONGOING)
        pool.transition_to(PoolStatus.COMPLETED)
        assert pool.status == PoolStatus.COMPLETED

    def test_ongoing_to_cancelled(self):
        pool = Pool(status=PoolStatus.ONGOING)
        pool.transition_to(PoolStatus.CANCELLED)
        assert pool.status == PoolStatus.CANCELLED

    # ── Invalid transitions ───────────────────────────────────────

    def test_completed_is_terminal(self):
        pool = Pool(status=PoolStatus.COMPLETED)
        with pytest.raises(InvalidStateTransition):
            pool.transition_to(PoolStatus.UPCOMING)

    def test_cancelled_is_terminal(self):
        pool = Pool(status=PoolStatus.CANCELLED)
        with pytest.raises(InvalidStateTransition):
            pool.transition_to(PoolStatus.ONGOING)

    def test_ongoing_cannot_go_back(self):
        pool = Pool(status=PoolStatus.ONGOING)
        with pytest.raises(InvalidStateTransition):
            pool.transition_to(PoolStatus.UPCOMING)


class TestCreate:
    def test_creator_is_first_participant(self, policy):
        pool = _pool(policy)
        assert pool.created_by == ALICE.id
        assert [p.user_id for p in pool.participants] == [ALICE.id]
        assert pool.available_seats == 3

    def test_male_cannot_create_women_only(self, policy):
        with pytest.raises(NotPermitted):
            policy.ensure_can_create(BOB, PoolType.WOMEN_ONLY, TOMORROW, "08:30", NOW)

    def test_community_pool_needs_a_tag(self, policy):
        with pytest.raises(ValidationFailed):
            policy.ensure_can_create(BOB, PoolType.COMMUNITY, TOMORROW, "08:30", NOW)

    def test_past_date_rejected(self, policy):
        with pytest.raises(ValidationFailed, match="past"):
            policy.ensure_can_create(
                ALICE, PoolType.OPEN, date(2026, 3, 9), "08:30", NOW
            )

    def test_earlier_today_rejected(self, policy):
        with pytest.raises(ValidationFailed, match="already passed"):
            policy.ensure_can_create(ALICE, PoolType.OPEN, TODAY, "09:00", NOW)

    def test_within_grace_minutes_accepted(self, policy):
        policy.ensure_can_create(ALICE, PoolType.OPEN, TODAY, "09:57", NOW)


class TestJoinAndLeave:
    def test_join_reduces_available_seats(self, policy):
        pool = _pool(policy, BOB)
        assert pool.available_seats == 2
        assert pool.is_joined(BOB.id)

    def test_join_full_pool_rejected_without_mutation(self, policy):
        pool = _pool(policy, BOB, max_seats=2)
        before = list(pool.participants)
        with pytest.raises(InvalidState, match="Pool is full"):
            policy.join(pool, CARA, NOW)
        assert pool.participants == before
        assert pool.available_seats == 0

    def test_join_twice_rejected(self, policy):
        pool = _pool(policy, BOB)
        with pytest.raises(InvalidState, match="already a participant"):
            policy.join(pool, BOB, NOW)

    def test_women_only_refuses_male(self, policy):
        pool = _pool(policy, type=PoolType.WOMEN_ONLY)
        with pytest.raises(NotPermitted):
            policy.join(pool, BOB, NOW)

    def test_rejoin_reuses_entry(self, policy):
        pool = _pool(policy, BOB)
        policy.leave(pool, BOB.id, NOW)
        policy.join(pool, BOB, NOW)
        assert len(pool.participants) == 2
        assert pool.entry_for(BOB.id).status == ParticipantStatus.JOINED

    def test_leave_early_has_no_penalty(self, policy):
        pool = _pool(policy, BOB, day=TODAY, time="13:00")
        outcome = policy.leave(pool, BOB.id, NOW)
        assert not outcome.penalty_due
        assert pool.entry_for(BOB.id).status == ParticipantStatus.LEFT
        assert pool.available_seats == 3

    def test_leave_inside_window_is_penalised(self, policy):
        pool = _pool(policy, BOB, day=TODAY, time="10:30")
        outcome = policy.leave(pool, BOB.id, NOW)
        assert outcome.penalized_user_id == BOB.id
        assert outcome.penalty_reason == PenaltyReason.LATE_LEAVE

    def test_creator_cannot_leave(self, policy):
        pool = _pool(policy, BOB)
        with pytest.raises(ValidationFailed):
            policy.leave(pool, ALICE.id, NOW)

    def test_non_participant_cannot_leave(self, policy):
        pool = _pool(policy)
        with pytest.raises(InvalidState):
            policy.leave(pool, CARA.id, NOW)


class TestStatusChanges:
    def test_only_creator_changes_status(self, policy):
        pool = _pool(policy, BOB)
        with pytest.raises(NotPermitted):
            policy.change_status(pool, BOB.id, PoolStatus.ONGOING, NOW)

    def test_cancel_with_riders_removes_and_penalises(self, policy):
        pool = _pool(policy, BOB, CARA)
        outcome = policy.change_status(pool, ALICE.id, PoolStatus.CANCELLED, NOW)
        assert pool.status == PoolStatus.CANCELLED
        assert sorted(outcome.removed_user_ids) == [BOB.id, CARA.id]
        assert outcome.penalized_user_id == ALICE.id
        assert outcome.penalty_reason == PenaltyReason.CANCEL_WITH_RIDERS
        assert pool.entry_for(BOB.id).status == ParticipantStatus.REMOVED
        assert pool.entry_for(ALICE.id).status == ParticipantStatus.JOINED

    def test_cancel_alone_is_free(self, policy):
        pool = _pool(policy)
        outcome = policy.change_status(pool, ALICE.id, PoolStatus.CANCELLED, NOW)
        assert pool.status == PoolStatus.CANCELLED
        assert not outcome.penalty_due

    def test_complete_before_departure_rejected(self, policy):
        pool = _pool(policy)
        with pytest.raises(InvalidState):
            policy.change_status(pool, ALICE.id, PoolStatus.COMPLETED, NOW)

    def test_complete_after_departure(self, policy):
        pool = _pool(policy, day=TODAY, time="09:30")
        policy.change_status(pool, ALICE.id, PoolStatus.COMPLETED, NOW)
        assert pool.status == PoolStatus.COMPLETED

    def test_cancelled_pool_cannot_restart(self, policy):
        pool = _pool(policy)
        policy.change_status(pool, ALICE.id, PoolStatus.CANCELLED, NOW)
        with pytest.raises(InvalidStateTransition):
            policy.change_status(pool, ALICE.id, PoolStatus.ONGOING, NOW)


class TestDelete:
    def test_creator_alone_may_delete(self, policy):
        policy.ensure_can_delete(_pool(policy), ALICE.id)

    def test_delete_with_riders_rejected(self, policy):
        with pytest.raises(InvalidState):
            policy.ensure_can_delete(_pool(policy, BOB), ALICE.id)

    def test_non_creator_cannot_delete(self, policy):
        with pytest.raises(NotPermitted):
            policy.ensure_can_delete(_pool(policy), BOB.id)

    def test_seats_never_negative(self):
        pool = Pool(
            max_seats=2,
            participants=[Participant(user_id=i, joined_at=NOW) for i in range(3)],
        )
        assert pool.available_seats == 0
