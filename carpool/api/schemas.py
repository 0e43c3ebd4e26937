"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date as date_type
from datetime import datetime
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from carpool.domain.eligibility import Eligibility
from carpool.domain.entities import Pool, Rider
from carpool.domain.enums import Gender, ParticipantStatus, PoolStatus, PoolType
from carpool.domain.trust import trust_level

PROTECTED_PROFILE_FIELDS = ("password", "email", "trust_score", "is_verified")

CommunityTag = Annotated[str, Field(max_length=100)]


# ── Requests ──────────────────────────────────────────────────────────


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: str = Field(..., pattern=r"^\d{10}$")
    gender: Gender = Gender.OTHER
    community: list[CommunityTag] = Field(default_factory=list)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = Field(None, pattern=r"^\d{10}$")
    gender: Optional[Gender] = None
    community: Optional[list[CommunityTag]] = None

    @model_validator(mode="before")
    @classmethod
    def reject_protected_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            blocked = [f for f in PROTECTED_PROFILE_FIELDS if f in data]
            if blocked:
                raise ValueError(
                    "These fields cannot be changed through a profile update: "
                    + ", ".join(blocked)
                )
        return data


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class PoolCreateRequest(BaseModel):
    source: str = Field(..., min_length=1, max_length=255)
    destination: str = Field(..., min_length=1, max_length=255)
    source_coords: Coordinates
    dest_coords: Coordinates
    date: date_type
    time: str = Field(
        ...,
        pattern=r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$",
        description="Departure time, HH:MM (24h).",
    )
    max_seats: int = Field(..., ge=2, le=6)
    fare: float = Field(..., ge=1)
    type: PoolType = PoolType.OPEN

    @field_validator("time")
    @classmethod
    def zero_pad_time(cls, value: str) -> str:
        hours, minutes = value.split(":")
        return f"{int(hours):02d}:{minutes}"


class PoolStatusUpdateRequest(BaseModel):
    status: PoolStatus


class FeedbackCategories(BaseModel):
    punctuality: Optional[int] = Field(None, ge=1, le=5)
    safety: Optional[int] = Field(None, ge=1, le=5)
    communication: Optional[int] = Field(None, ge=1, le=5)
    vehicle: Optional[int] = Field(None, ge=1, le=5)


class FeedbackCreateRequest(BaseModel):
    ride_id: int
    rated_user_id: int
    score: int = Field(..., ge=1, le=5)
    comment: str = Field("", max_length=500)
    safety_flag: bool = False
    categories: FeedbackCategories = Field(default_factory=FeedbackCategories)


PoolTypeFilter = Literal["all", "open", "women-only", "community"]


# ── Responses ─────────────────────────────────────────────────────────


class UserSummary(BaseModel):
    id: int
    name: str
    trust_score: int

    model_config = {"from_attributes": True}


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    gender: Gender
    community: list[str]
    trust_score: int
    trust_level: str
    is_verified: bool

    @classmethod
    def from_model(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            gender=user.gender,
            community=list(user.community or []),
            trust_score=user.trust_score,
            trust_level=trust_level(user.trust_score),
            is_verified=bool(user.is_verified),
        )


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserResponse


class ProfileResponse(BaseModel):
    message: str
    user: UserResponse


class ParticipantResponse(BaseModel):
    user: Optional[UserSummary] = None
    user_id: int
    joined_at: datetime
    status: ParticipantStatus


def _summary(rider: Optional[Rider]) -> Optional[UserSummary]:
    if rider is None:
        return None
    return UserSummary(id=rider.id, name=rider.name, trust_score=rider.trust_score)


class PoolResponse(BaseModel):
    id: int
    source: str
    destination: str
    source_coords: Coordinates
    dest_coords: Coordinates
    date: date_type
    time: str
    max_seats: int
    fare: float
    type: PoolType
    status: PoolStatus
    created_by: int
    creator: Optional[UserSummary] = None
    participants: list[ParticipantResponse] = []
    available_seats: int
    total_participants: int
    distance_km: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    can_join: Optional[bool] = None
    ineligible_reason: Optional[str] = None

    @classmethod
    def from_entity(
        cls, pool: Pool, eligibility: Optional[Eligibility] = None
    ) -> "PoolResponse":
        return cls(
            id=pool.id,
            source=pool.source,
            destination=pool.destination,
            source_coords=Coordinates(
                lat=pool.source_location.latitude,
                lng=pool.source_location.longitude,
            ),
            dest_coords=Coordinates(
                lat=pool.destination_location.latitude,
                lng=pool.destination_location.longitude,
            ),
            date=pool.date,
            time=pool.time,
            max_seats=pool.max_seats,
            fare=pool.fare,
            type=pool.type,
            status=pool.status,
            created_by=pool.created_by,
            creator=_summary(pool.creator),
            participants=[
                ParticipantResponse(
                    user=_summary(p.rider),
                    user_id=p.user_id,
                    joined_at=p.joined_at,
                    status=p.status,
                )
                for p in pool.participants
            ],
            available_seats=pool.available_seats,
            total_participants=pool.joined_count,
            distance_km=pool.distance_km,
            created_at=pool.created_at,
            updated_at=pool.updated_at,
            can_join=eligibility.allowed if eligibility is not None else None,
            ineligible_reason=eligibility.reason if eligibility is not None else None,
        )


class PoolListResponse(BaseModel):
    pools: list[PoolResponse]
    count: int


class PoolActionResponse(BaseModel):
    message: str
    pool: PoolResponse
    penalty_applied: bool = False


class MessageResponse(BaseModel):
    message: str


class CleanupResponse(BaseModel):
    message: str
    deleted_count: int
    skipped: bool = False


class FeedbackResponse(BaseModel):
    id: int
    ride_id: Optional[int] = None
    rater: UserSummary
    rated_user: UserSummary
    score: int
    comment: str
    safety_flag: bool
    categories: dict[str, Optional[int]]
    created_at: datetime

    model_config = {"from_attributes": True}


class FeedbackCreatedResponse(BaseModel):
    message: str
    feedback: FeedbackResponse


class FeedbackSummaryResponse(BaseModel):
    total_feedbacks: int
    average_rating: float


class UserFeedbackResponse(BaseModel):
    feedbacks: list[FeedbackResponse]
    summary: FeedbackSummaryResponse


class FeedbackListResponse(BaseModel):
    feedbacks: list[FeedbackResponse]


class HealthResponse(BaseModel):
    status: str = "ok"
