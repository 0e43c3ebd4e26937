"""Unit tests for who may rate whom, and the per-user feedback summary."""

from datetime import datetime, timezone

import pytest

from carpool.domain.entities import Feedback, Participant, Pool
from carpool.domain.enums import ParticipantStatus, PoolStatus
from carpool.domain.errors import InvalidState, NotPermitted, ValidationFailed
from carpool.domain.feedback import ensure_can_rate, summarize

NOW = datetime(2026, 3, 10, 4, 30, tzinfo=timezone.utc)


def _ride(status=PoolStatus.COMPLETED) -> Pool:
    return Pool(
        id=7,
        status=status,
        created_by=1,
        participants=[
            Participant(user_id=1, joined_at=NOW),
            Participant(user_id=2, joined_at=NOW),
            Participant(user_id=3, joined_at=NOW, status=ParticipantStatus.LEFT),
        ],
    )


def test_co_riders_may_rate_each_other():
    ensure_can_rate(_ride(), 1, 2, already_rated=False)
    ensure_can_rate(_ride(), 2, 1, already_rated=False)


def test_ride_must_be_completed():
    with pytest.raises(InvalidState):
        ensure_can_rate(_ride(PoolStatus.ONGOING), 1, 2, already_rated=False)


def test_rater_must_have_ridden():
    with pytest.raises(NotPermitted):
        ensure_can_rate(_ride(), 3, 2, already_rated=False)


def test_rated_user_must_have_ridden():
    with pytest.raises(ValidationFailed):
        ensure_can_rate(_ride(), 1, 3, already_rated=False)


def test_cannot_rate_yourself():
    with pytest.raises(ValidationFailed, match="yourself"):
        ensure_can_rate(_ride(), 1, 1, already_rated=False)


def test_duplicate_rejected():
    with pytest.raises(InvalidState, match="already submitted"):
        ensure_can_rate(_ride(), 1, 2, already_rated=True)


def test_summary_average_is_rounded():
    summary = summarize([Feedback(score=4), Feedback(score=5), Feedback(score=5)])
    assert summary.total_feedbacks == 3
    assert summary.average_rating == 4.7


def test_empty_summary():
    summary = summarize([])
    assert summary.total_feedbacks == 0
    assert summary.average_rating == 0.0
