"""Initial schema: users, programs, participants, registrations, expenses, feedback

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create every table with its constraints."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(100), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("token_version", sa.Integer(), server_default="0", nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "programs",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(100), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("budget", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("file_url", sa.String(500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_programs"),
        sa.CheckConstraint("budget >= 0", name="ck_programs_budget_non_negative"),
    )
    op.create_index("ix_programs_date", "programs", ["date"])

    op.create_table(
        "participants",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("contact", sa.String(30), nullable=False),
        sa.Column("email", sa.String(100), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_participants"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_participants_user_id_users",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("user_id", name="uq_participants_user_id"),
        sa.CheckConstraint(
            "age IS NULL OR (age >= 1 AND age <= 120)", name="ck_participants_age_range"
        ),
    )

    op.create_table(
        "program_participants",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("program_id", sa.String(36), nullable=False),
        sa.Column("participant_id", sa.String(36), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_program_participants"),
        sa.ForeignKeyConstraint(
            ["program_id"], ["programs.id"],
            name="fk_program_participants_program_id_programs",
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"], ["participants.id"],
            name="fk_program_participants_participant_id_participants",
        ),
        sa.UniqueConstraint(
            "program_id", "participant_id", name="uq_program_participants_pair"
        ),
    )
    op.create_index(
        "ix_program_participants_program_id", "program_participants", ["program_id"]
    )
    op.create_index(
        "ix_program_participants_participant_id", "program_participants", ["participant_id"]
    )

    op.create_table(
        "registrations",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("program_id", sa.String(36), nullable=False),
        sa.Column("participant_id", sa.String(36), nullable=False),
        sa.Column("registration_status", sa.String(20), nullable=False),
        sa.Column("registration_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_registrations"),
        sa.ForeignKeyConstraint(
            ["program_id"], ["programs.id"],
            name="fk_registrations_program_id_programs",
        ),
        sa.ForeignKeyConstraint(
            ["participant_id"], ["participants.id"],
            name="fk_registrations_participant_id_participants",
        ),
        sa.UniqueConstraint("program_id", "participant_id", name="uq_registrations_pair"),
    )
    op.create_index("ix_registrations_program_id", "registrations", ["program_id"])
    op.create_index("ix_registrations_participant_id", "registrations", ["participant_id"])
    op.create_index(
        "ix_registrations_registration_status", "registrations", ["registration_status"]
    )

    op.create_table(
        "expenses",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("program_id", sa.String(36), nullable=True),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_expenses"),
        sa.ForeignKeyConstraint(
            ["program_id"], ["programs.id"],
            name="fk_expenses_program_id_programs",
        ),
        sa.CheckConstraint("amount >= 0", name="ck_expenses_amount_non_negative"),
    )
    op.create_index("ix_expenses_program_id", "expenses", ["program_id"])
    op.create_index("ix_expenses_date", "expenses", ["date"])

    op.create_table(
        "feedback",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_feedback"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_feedback_user_id_users",
            ondelete="SET NULL",
        ),
        sa.CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_feedback_rating_range"
        ),
    )
    op.create_index("ix_feedback_user_id", "feedback", ["user_id"])
    op.create_index("ix_feedback_status", "feedback", ["status"])


def downgrade() -> None:
    """Drop every table, dependents first."""
    op.drop_table("feedback")
    op.drop_table("expenses")
    op.drop_table("registrations")
    op.drop_table("program_participants")
    op.drop_table("participants")
    op.drop_table("programs")
    op.drop_table("users")
