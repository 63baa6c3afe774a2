"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Profiles, habits + completions, routines + segments, evening reviews,
pending adaptations and the behavior event log.

(user_id, date) is unique for routines and reviews; (habit_id, date) for
completions; (user_id, target_date) for pending adaptations.
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True) -> list[sa.Column]:
    cols = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]
    if updated:
        cols.append(sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ))
    return cols


def upgrade() -> None:
    habit_frequency = sa.Enum("daily", "weekly", name="habit_frequency_enum")
    completion_quality = sa.Enum("excellent", "good", "poor", name="completion_quality_enum")
    focus_quality = sa.Enum("high", "medium", "low", name="focus_quality_enum")

    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("wake_up_time", sa.String(5), nullable=True),
        sa.Column("sleep_time", sa.String(5), nullable=True),
        sa.Column("available_hours", sa.Float(), nullable=True),
        sa.Column("academic_goals", sa.Text(), nullable=True),
        sa.Column("skill_goals", sa.Text(), nullable=True),
        sa.Column("energy_pattern", sa.String(64), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_user_profiles_user_id", "user_profiles", ["user_id"], unique=True)

    op.create_table(
        "habits",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("frequency", habit_frequency, nullable=False),
        sa.Column("cue", sa.Text(), nullable=True),
        sa.Column("reward", sa.Text(), nullable=True),
        sa.Column("stacked_after", sa.Integer(), sa.ForeignKey("habits.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_habits_user_id", "habits", ["user_id"])
    op.create_index("ix_habits_stacked_after", "habits", ["stacked_after"])

    op.create_table(
        "habit_completions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "habit_id", sa.Integer(),
            sa.ForeignKey("habits.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("quality", completion_quality, nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("habit_id", "date", name="uq_habit_completion_habit_date"),
    )
    op.create_index("ix_habit_completions_habit_id", "habit_completions", ["habit_id"])
    op.create_index("ix_habit_completions_user_id", "habit_completions", ["user_id"])
    op.create_index("ix_habit_completions_date", "habit_completions", ["date"])

    op.create_table(
        "daily_routines",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("complexity_level", sa.String(16), nullable=False),
        sa.Column("complexity", sa.Text(), nullable=True),
        sa.Column("adaptations", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "date", name="uq_daily_routine_user_date"),
    )
    op.create_index("ix_daily_routines_user_id", "daily_routines", ["user_id"])
    op.create_index("ix_daily_routines_date", "daily_routines", ["date"])

    op.create_table(
        "routine_segments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "routine_id", sa.Integer(),
            sa.ForeignKey("daily_routines.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("end_time", sa.String(5), nullable=False),
        sa.Column("segment_type", sa.String(32), nullable=False),
        sa.Column("activity", sa.Text(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("priority", sa.String(16), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("focus_quality", focus_quality, nullable=True),
        sa.Column("actual_duration", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_routine_segments_routine_id", "routine_segments", ["routine_id"])

    op.create_table(
        "evening_reviews",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("accomplished", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("missed", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("reasons", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("tomorrow_tasks", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("mood", sa.Integer(), nullable=False),
        sa.Column("energy_level", sa.Integer(), nullable=False),
        sa.Column("insights", sa.Text(), nullable=False, server_default=""),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "date", name="uq_evening_review_user_date"),
        sa.CheckConstraint("mood >= 1 AND mood <= 10", name="ck_evening_review_mood"),
        sa.CheckConstraint(
            "energy_level >= 1 AND energy_level <= 10", name="ck_evening_review_energy"
        ),
    )
    op.create_index("ix_evening_reviews_user_id", "evening_reviews", ["user_id"])
    op.create_index("ix_evening_reviews_date", "evening_reviews", ["date"])

    op.create_table(
        "pending_adaptations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("target_date", sa.Date(), nullable=False),
        sa.Column("source_date", sa.Date(), nullable=False),
        sa.Column("adaptations", sa.Text(), nullable=False),
        sa.Column("consumed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint("user_id", "target_date", name="uq_pending_adaptation_user_date"),
    )
    op.create_index("ix_pending_adaptations_user_id", "pending_adaptations", ["user_id"])
    op.create_index("ix_pending_adaptations_target_date", "pending_adaptations", ["target_date"])

    op.create_table(
        "behavior_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("reference_date", sa.Date(), nullable=False),
        sa.Column("event_metadata", sa.Text(), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_behavior_events_user_id", "behavior_events", ["user_id"])
    op.create_index("ix_behavior_events_event_type", "behavior_events", ["event_type"])
    op.create_index("ix_behavior_events_reference_date", "behavior_events", ["reference_date"])


def downgrade() -> None:
    op.drop_table("behavior_events")
    op.drop_table("pending_adaptations")
    op.drop_table("evening_reviews")
    op.drop_table("routine_segments")
    op.drop_table("daily_routines")
    op.drop_table("habit_completions")
    op.drop_table("habits")
    op.drop_table("user_profiles")
    sa.Enum(name="focus_quality_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="completion_quality_enum").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="habit_frequency_enum").drop(op.get_bind(), checkfirst=True)
