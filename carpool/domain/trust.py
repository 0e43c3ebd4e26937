"""
Trust Score Calculator
======================

Formula
-------
weight_i   = 1 / max(1, age_in_days_i)
mean       = sum(score_i x weight_i) / sum(weight_i)        (1-5 scale)
baseline   = round(clamp(mean / 5 x 100, 0, 100))            (0-100 scale)
trust      = clamp(baseline - sum(penalty_points), 0, 100)

Feedback younger than a day carries full weight; older feedback decays
hyperbolically.  Penalties (late leave, cancelling on committed co-riders)
are an additive ledger layered on the feedback baseline, so a recompute
after new feedback never erases an earlier penalty.  A user without
feedback starts from the default baseline.

Complexity: O(n) in the number of feedback records.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, Optional

from .entities import Feedback, TrustPenalty
from .schedule import as_utc

MIN_SCORE = 0
MAX_SCORE = 100
SECONDS_PER_DAY = 86_400


def clamp(score: float) -> float:
    return min(MAX_SCORE, max(MIN_SCORE, score))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def recency_weight(created_at: datetime, now: datetime) -> float:
    age_days = (as_utc(now) - as_utc(created_at)).total_seconds() / SECONDS_PER_DAY
    return 1 / max(1.0, age_days)


def trust_level(score: int) -> str:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    return "low"


class TrustScoreEngine:
    """High-level API used by the pool and feedback services."""

    def __init__(self, default_score: int = 50, penalty_points: int = 5):
        self.default_score = default_score
        self.penalty_points = penalty_points

    def feedback_score(
        self, feedback: Iterable[Feedback], now: datetime
    ) -> Optional[int]:
        """Recency-weighted score on the 0-100 scale, ``None`` without feedback."""
        total_score = 0.0
        total_weight = 0.0
        for record in feedback:
            weight = recency_weight(record.created_at or now, now)
            total_score += record.score * weight
            total_weight += weight

        if total_weight == 0:
            return None
        mean = total_score / total_weight
        return round_half_up(clamp(mean / 5 * 100))

    def apply_penalty(self, current: int, points: Optional[int] = None) -> int:
        deduction = self.penalty_points if points is None else points
        return int(clamp(current - deduction))

    def recompute(
        self,
        feedback: Iterable[Feedback],
        penalties: Iterable[TrustPenalty],
        now: datetime,
    ) -> int:
        baseline = self.feedback_score(feedback, now)
        if baseline is None:
            baseline = self.default_score
        deducted = sum(p.points for p in penalties)
        return int(clamp(baseline - deducted))
