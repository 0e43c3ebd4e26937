"""Initial schema: users, pools, participants, feedback and trust penalties.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(10), nullable=False),
        sa.Column(
            "gender",
            sa.Enum("male", "female", "other", name="gender"),
            nullable=False,
        ),
        sa.Column("community", sa.JSON, nullable=False),
        sa.Column("trust_score", sa.Integer, nullable=False, server_default="50"),
        sa.Column(
            "is_verified", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── pools ─────────────────────────────────────────────────────────
    op.create_table(
        "pools",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("source", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("source_lat", sa.Float, nullable=False),
        sa.Column("source_lng", sa.Float, nullable=False),
        sa.Column("dest_lat", sa.Float, nullable=False),
        sa.Column("dest_lng", sa.Float, nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("time", sa.String(5), nullable=False),
        sa.Column("max_seats", sa.Integer, nullable=False),
        sa.Column("fare", sa.Float, nullable=False),
        sa.Column(
            "type",
            sa.Enum("open", "women-only", "community", name="pooltype"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(
                "upcoming",
                "ongoing",
                "completed",
                "cancelled",
                name="poolstatus",
            ),
            nullable=False,
        ),
        sa.Column(
            "created_by", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_pools_date_status", "pools", ["date", "status"])
    op.create_index("idx_pools_created_by", "pools", ["created_by"])

    # ── pool_participants ─────────────────────────────────────────────
    op.create_table(
        "pool_participants",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "pool_id",
            sa.Integer,
            sa.ForeignKey("pools.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            sa.Enum("joined", "left", "removed", name="participantstatus"),
            nullable=False,
        ),
        sa.UniqueConstraint("pool_id", "user_id", name="uq_participant_pool_user"),
    )
    op.create_index("idx_participants_user", "pool_participants", ["user_id"])

    # ── feedback ──────────────────────────────────────────────────────
    op.create_table(
        "feedback",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "ride_id",
            sa.Integer,
            sa.ForeignKey("pools.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "rater_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "rated_user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column("score", sa.Integer, nullable=False),
        sa.Column("comment", sa.String(500), nullable=False, server_default=""),
        sa.Column(
            "safety_flag", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column("categories", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint(
            "ride_id", "rater_id", "rated_user_id", name="uq_feedback_triple"
        ),
        sa.CheckConstraint("score BETWEEN 1 AND 5", name="ck_feedback_score"),
    )
    op.create_index("idx_feedback_rated", "feedback", ["rated_user_id"])
    op.create_index("idx_feedback_rater", "feedback", ["rater_id"])
    op.create_index("idx_feedback_ride", "feedback", ["ride_id"])

    # ── trust_penalties ───────────────────────────────────────────────
    op.create_table(
        "trust_penalties",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "pool_id",
            sa.Integer,
            sa.ForeignKey("pools.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("points", sa.Integer, nullable=False),
        sa.Column(
            "reason",
            sa.Enum("late_leave", "cancel_with_riders", name="penaltyreason"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("idx_penalties_user", "trust_penalties", ["user_id"])


def downgrade() -> None:
    op.drop_table("trust_penalties")
    op.drop_table("feedback")
    op.drop_table("pool_participants")
    op.drop_table("pools")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS penaltyreason")
    op.execute("DROP TYPE IF EXISTS participantstatus")
    op.execute("DROP TYPE IF EXISTS poolstatus")
    op.execute("DROP TYPE IF EXISTS pooltype")
    op.execute("DROP TYPE IF EXISTS gender")
