"""Feedback Aggregator rules: who may rate whom, and the per-user summary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .entities import Feedback, Pool
from .enums import PoolStatus
from .errors import InvalidState, NotPermitted, ValidationFailed

def ensure_can_rate(
    pool: Pool, rater_id: int, rated_user_id: int, already_rated: bool
) -> None:
    if pool.status != PoolStatus.COMPLETED:
        raise InvalidState("Can only submit feedback for completed rides")
    if not pool.is_joined(rater_id):
        raise NotPermitted("Only ride participants can submit feedback")
    if not pool.is_joined(rated_user_id):
        raise ValidationFailed("Rated user was not a participant in this ride")
    if rater_id == rated_user_id:
        raise ValidationFailed("Cannot submit feedback for yourself")
    if already_rated:
        raise InvalidState(
            "Feedback already submitted for this user in this ride"
        )


@dataclass(frozen=True)
class FeedbackSummary:
    total_feedbacks: int
    average_rating: float


def summarize(feedback: Sequence[Feedback]) -> FeedbackSummary:
    if not feedback:
        return FeedbackSummary(total_feedbacks=0, average_rating=0.0)
    average = sum(f.score for f in feedback) / len(feedback)
    return FeedbackSummary(
        total_feedbacks=len(feedback), average_rating=round(average, 1)
    )
