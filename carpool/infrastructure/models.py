"""
SQLAlchemy ORM models.

Tables
------
* ``users``              -- registered riders with profile and trust score
* ``pools``              -- shared-ride offerings
* ``pool_participants``  -- one membership row per (pool, user)
* ``feedback``           -- post-ride ratings, one per (ride, rater, rated)
* ``trust_penalties``    -- ledger of penalty deductions

Indexes
-------
* **B-Tree** on ``(date, status)``, ``created_by``, participant ``user_id``
  and the feedback foreign keys, matching the listing and feedback queries.
* **Unique** on ``(pool_id, user_id)`` and ``(ride_id, rater_id,
  rated_user_id)`` backing the one-entry-per-user and one-rating-per-triple
  invariants.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from carpool.domain.enums import (
    Gender,
    ParticipantStatus,
    PenaltyReason,
    PoolStatus,
    PoolType,
)


def _enum(enum_cls, name: str) -> Enum:
    """Persist enum *values* (``women-only``), not member names."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(50), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    phone = Column(String(10), nullable=False)
    gender = Column(_enum(Gender, "gender"), default=Gender.OTHER, nullable=False)
    community = Column(JSON, default=list, nullable=False)
    trust_score = Column(Integer, default=50, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class PoolModel(Base):
    __tablename__ = "pools"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    source_lat = Column(Float, nullable=False)
    source_lng = Column(Float, nullable=False)
    dest_lat = Column(Float, nullable=False)
    dest_lng = Column(Float, nullable=False)

    date = Column(Date, nullable=False)
    time = Column(String(5), nullable=False)
    max_seats = Column(Integer, nullable=False)
    fare = Column(Float, nullable=False)
    type = Column(_enum(PoolType, "pooltype"), default=PoolType.OPEN, nullable=False)
    status = Column(
        _enum(PoolStatus, "poolstatus"), default=PoolStatus.UPCOMING, nullable=False
    )
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    creator = relationship("UserModel", lazy="selectin")
    participants = relationship(
        "ParticipantModel",
        back_populates="pool",
        order_by="ParticipantModel.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_pools_date_status", "date", "status"),
        Index("idx_pools_created_by", "created_by"),
    )


class ParticipantModel(Base):
    __tablename__ = "pool_participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pool_id = Column(
        Integer, ForeignKey("pools.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    joined_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        _enum(ParticipantStatus, "participantstatus"),
        default=ParticipantStatus.JOINED,
        nullable=False,
    )

    pool = relationship("PoolModel", back_populates="participants")
    user = relationship("UserModel", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("pool_id", "user_id", name="uq_participant_pool_user"),
        Index("idx_participants_user", "user_id"),
    )


class FeedbackModel(Base):
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ride_id = Column(
        Integer, ForeignKey("pools.id", ondelete="SET NULL"), nullable=True
    )
    rater_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    rated_user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    score = Column(Integer, nullable=False)
    comment = Column(String(500), default="", nullable=False)
    safety_flag = Column(Boolean, default=False, nullable=False)
    categories = Column(JSON, default=dict, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    rater = relationship("UserModel", foreign_keys=[rater_id], lazy="selectin")
    rated_user = relationship(
        "UserModel", foreign_keys=[rated_user_id], lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint(
            "ride_id", "rater_id", "rated_user_id", name="uq_feedback_triple"
        ),
        Index("idx_feedback_rated", "rated_user_id"),
        Index("idx_feedback_rater", "rater_id"),
        Index("idx_feedback_ride", "ride_id"),
    )


class TrustPenaltyModel(Base):
    __tablename__ = "trust_penalties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    pool_id = Column(
        Integer, ForeignKey("pools.id", ondelete="SET NULL"), nullable=True
    )
    points = Column(Integer, nullable=False)
    reason = Column(_enum(PenaltyReason, "penaltyreason"), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_penalties_user", "user_id"),)
