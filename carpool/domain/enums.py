"""Domain enumerations and state-transition rules."""

import enum


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class PoolType(str, enum.Enum):
    OPEN = "open"
    WOMEN_ONLY = "women-only"
    COMMUNITY = "community"


class PoolStatus(str, enum.Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
POOL_TRANSITIONS: dict[PoolStatus, set[PoolStatus]] = {
    PoolStatus.UPCOMING: {
        PoolStatus.ONGOING,
        PoolStatus.COMPLETED,
        PoolStatus.CANCELLED,
    },
    PoolStatus.ONGOING: {PoolStatus.COMPLETED, PoolStatus.CANCELLED},
    PoolStatus.COMPLETED: set(),
    PoolStatus.CANCELLED: set(),
}


class ParticipantStatus(str, enum.Enum):
    JOINED = "joined"
    LEFT = "left"
    REMOVED = "removed"


class PenaltyReason(str, enum.Enum):
    LATE_LEAVE = "late_leave"
    CANCEL_WITH_RIDERS = "cancel_with_riders"


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    STATE = "state"
    NOT_FOUND = "not_found"
