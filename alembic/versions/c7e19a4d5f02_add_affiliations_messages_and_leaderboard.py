"""add_affiliations_messages_and_leaderboard

Revision ID: c7e19a4d5f02
Revises: 8b41e6f2c3a5
Create Date: 2026-10-17 15:05:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "c7e19a4d5f02"
down_revision = "8b41e6f2c3a5"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "users",
        sa.Column("group_label", sa.String(), nullable=False, server_default=""),
    )
    op.add_column(
        "users",
        sa.Column("section_label", sa.String(), nullable=False, server_default=""),
    )

    op.create_table(
        "coach_messages",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("sender_id", sa.Uuid(), nullable=False),
        sa.Column("group_label", sa.String(), nullable=False),
        sa.Column("section_label", sa.String(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["sender_id"], ["users.id"], name=op.f("fk_coach_messages_sender_id_users")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_coach_messages")),
    )
    op.create_index(
        "ix_coach_messages_group_section",
        "coach_messages",
        ["group_label", "section_label"],
    )

    op.create_table(
        "student_profiles",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_student_profiles_user_id_users")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_student_profiles")),
        sa.UniqueConstraint("user_id", name=op.f("uq_student_profiles_user_id")),
    )
    op.create_table(
        "student_profile_badges",
        sa.Column("student_profile_id", sa.Uuid(), nullable=False),
        sa.Column("badge_id", sa.Uuid(), nullable=False),
        sa.ForeignKeyConstraint(
            ["badge_id"],
            ["badges.id"],
            name=op.f("fk_student_profile_badges_badge_id_badges"),
        ),
        sa.ForeignKeyConstraint(
            ["student_profile_id"],
            ["student_profiles.id"],
            name=op.f("fk_student_profile_badges_student_profile_id_student_profiles"),
        ),
        sa.PrimaryKeyConstraint(
            "student_profile_id", "badge_id", name=op.f("pk_student_profile_badges")
        ),
    )


def downgrade() -> None:
    op.drop_table("student_profile_badges")
    op.drop_table("student_profiles")
    op.drop_index("ix_coach_messages_group_section", table_name="coach_messages")
    op.drop_table("coach_messages")
    op.drop_column("users", "section_label")
    op.drop_column("users", "group_label")
