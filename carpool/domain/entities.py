"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Pool``: enforces valid lifecycle transitions
  (upcoming -> ongoing -> completed, upcoming | ongoing -> cancelled).
- ``Pool.available_seats`` derives capacity from participant entries, so
  the seat count can never drift from the roster.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date as date_type
from datetime import datetime
from typing import Optional

from .distance import trip_length_km
from .enums import (
    POOL_TRANSITIONS,
    Gender,
    ParticipantStatus,
    PenaltyReason,
    PoolStatus,
    PoolType,
)
from .errors import InvalidStateTransition


# ── Value Object ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Rider:
    """The policy-relevant slice of a user."""

    id: Optional[int] = None
    name: str = ""
    gender: Gender = Gender.OTHER
    community: list[str] = field(default_factory=list)
    trust_score: int = 50

    @property
    def communities(self) -> frozenset[str]:
        return frozenset(self.community)


@dataclass
class Participant:
    user_id: int
    joined_at: datetime
    status: ParticipantStatus = ParticipantStatus.JOINED
    rider: Optional[Rider] = None

    @property
    def is_active(self) -> bool:
        return self.status == ParticipantStatus.JOINED


@dataclass
class Pool:
    id: Optional[int] = None
    source: str = ""
    destination: str = ""
    source_location: Location = field(default_factory=lambda: Location(0, 0))
    destination_location: Location = field(default_factory=lambda: Location(0, 0))
    date: Optional[date_type] = None
    time: str = "00:00"
    max_seats: int = 4
    fare: float = 1.0
    type: PoolType = PoolType.OPEN
    status: PoolStatus = PoolStatus.UPCOMING
    created_by: int = 0
    creator: Optional[Rider] = None
    participants: list[Participant] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def active_participants(self) -> list[Participant]:
        return [p for p in self.participants if p.is_active]

    @property
    def joined_count(self) -> int:
        return len(self.active_participants)

    @property
    def available_seats(self) -> int:
        return max(0, self.max_seats - self.joined_count)

    @property
    def is_full(self) -> bool:
        return self.joined_count >= self.max_seats

    @property
    def distance_km(self) -> float:
        return round(trip_length_km(self.source_location, self.destination_location), 2)

    def entry_for(self, user_id: int) -> Optional[Participant]:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def is_joined(self, user_id: int) -> bool:
        entry = self.entry_for(user_id)
        return entry is not None and entry.is_active

    def is_creator(self, user_id: int) -> bool:
        return self.created_by == user_id

    def transition_to(self, new_status: PoolStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = POOL_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot change pool status from {self.status.value} "
                f"to {new_status.value}"
            )
        self.status = new_status


@dataclass
class Feedback:
    id: Optional[int] = None
    ride_id: Optional[int] = None
    rater_id: int = 0
    rated_user_id: int = 0
    score: int = 5
    comment: str = ""
    safety_flag: bool = False
    categories: dict[str, Optional[int]] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass
class TrustPenalty:
    user_id: int
    points: int
    reason: PenaltyReason
    pool_id: Optional[int] = None
    created_at: Optional[datetime] = None
