"""create learning service tables

Revision ID: 3f2a9c1d7b10
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role_enum = sa.Enum("student", "coach", name="user_role_enum")
task_content_type_enum = sa.Enum("video", "pdf", "text", name="task_content_type_enum")
approval_status_enum = sa.Enum(
    "pending", "approved", "rejected", name="approval_status_enum"
)
badge_threshold_kind_enum = sa.Enum("completed_tasks", name="badge_threshold_kind_enum")
invitation_status_enum = sa.Enum(
    "pending", "accepted", "declined", name="invitation_status_enum"
)


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema - users, catalog, progress, badges, groups."""

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("password_salt", sa.String(), nullable=False),
        sa.Column("reset_token_hash", sa.String(), nullable=True),
        sa.Column("reset_token_expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    # Catalog
    op.create_table(
        "courses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("coach_id", sa.Uuid(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["coach_id"], ["users.id"], name=op.f("fk_courses_coach_id_users")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_courses")),
    )
    op.create_index(op.f("ix_courses_coach_id"), "courses", ["coach_id"])

    op.create_table(
        "course_enrollments",
        sa.Column("course_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["course_id"],
            ["courses.id"],
            name=op.f("fk_course_enrollments_course_id_courses"),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_course_enrollments_user_id_users")
        ),
        sa.PrimaryKeyConstraint("course_id", "user_id", name=op.f("pk_course_enrollments")),
    )

    op.create_table(
        "skills",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("course_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["course_id"], ["courses.id"], name=op.f("fk_skills_course_id_courses")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_skills")),
    )
    op.create_index(op.f("ix_skills_course_id"), "skills", ["course_id"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("skill_id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("content_type", task_content_type_enum, nullable=False),
        sa.Column("content_urls", sa.JSON(), nullable=False),
        sa.Column("deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("position", sa.Integer(), server_default="0", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["skill_id"], ["skills.id"], name=op.f("fk_tasks_skill_id_skills")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_tasks")),
    )
    op.create_index(op.f("ix_tasks_skill_id"), "tasks", ["skill_id"])

    # Progress
    op.create_table(
        "progress_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("course_id", sa.Uuid(), nullable=False),
        sa.Column("completed_tasks_count", sa.Integer(), server_default="0", nullable=False),
        sa.Column("total_tasks", sa.Integer(), server_default="0", nullable=False),
        sa.Column("average_rating", sa.Float(), server_default="0", nullable=False),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["course_id"],
            ["courses.id"],
            name=op.f("fk_progress_records_course_id_courses"),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_progress_records_user_id_users")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_progress_records")),
        sa.UniqueConstraint(
            "user_id", "course_id", name="uq_progress_records_user_course"
        ),
    )
    op.create_index(op.f("ix_progress_records_user_id"), "progress_records", ["user_id"])
    op.create_index(
        op.f("ix_progress_records_course_id"), "progress_records", ["course_id"]
    )

    op.create_table(
        "progress_completed_tasks",
        sa.Column("progress_id", sa.Uuid(), nullable=False),
        sa.Column("task_id", sa.Uuid(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["progress_id"],
            ["progress_records.id"],
            name=op.f("fk_progress_completed_tasks_progress_id_progress_records"),
        ),
        sa.ForeignKeyConstraint(
            ["task_id"],
            ["tasks.id"],
            name=op.f("fk_progress_completed_tasks_task_id_tasks"),
        ),
        sa.PrimaryKeyConstraint(
            "progress_id", "task_id", name=op.f("pk_progress_completed_tasks")
        ),
    )
    op.create_index(
        op.f("ix_progress_completed_tasks_task_id"),
        "progress_completed_tasks",
        ["task_id"],
    )

    op.create_table(
        "task_progress",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("progress_id", sa.Uuid(), nullable=False),
        sa.Column("task_id", sa.Uuid(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submitted_for_review", sa.Boolean(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("coach_rating", sa.Integer(), nullable=True),
        sa.Column("coach_feedback", sa.Text(), nullable=True),
        sa.Column("coach_rated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed", sa.Boolean(), nullable=True),
        sa.Column("approval", approval_status_enum, nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("review_feedback", sa.Text(), nullable=True),
        sa.Column("seen_by_student", sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["progress_id"],
            ["progress_records.id"],
            name=op.f("fk_task_progress_progress_id_progress_records"),
        ),
        sa.ForeignKeyConstraint(
            ["task_id"], ["tasks.id"], name=op.f("fk_task_progress_task_id_tasks")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_task_progress")),
        sa.UniqueConstraint(
            "progress_id", "task_id", name="uq_task_progress_progress_task"
        ),
    )
    op.create_index(op.f("ix_task_progress_progress_id"), "task_progress", ["progress_id"])
    op.create_index(op.f("ix_task_progress_task_id"), "task_progress", ["task_id"])

    op.create_table(
        "task_uploads",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("task_progress_id", sa.Uuid(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("original_name", sa.String(), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["task_progress_id"],
            ["task_progress.id"],
            name=op.f("fk_task_uploads_task_progress_id_task_progress"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_task_uploads")),
    )
    op.create_index(
        op.f("ix_task_uploads_task_progress_id"), "task_uploads", ["task_progress_id"]
    )

    # Badges
    op.create_table(
        "badges",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("icon", sa.String(), nullable=False),
        sa.Column("criteria", sa.String(), nullable=False),
        sa.Column("badge_type", sa.String(), server_default="general", nullable=False),
        sa.Column("threshold_kind", badge_threshold_kind_enum, nullable=True),
        sa.Column("threshold_target", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_badges")),
    )

    op.create_table(
        "user_badges",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("badge_id", sa.Uuid(), nullable=False),
        sa.Column("awarded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["badge_id"], ["badges.id"], name=op.f("fk_user_badges_badge_id_badges")
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_user_badges_user_id_users")
        ),
        sa.PrimaryKeyConstraint("user_id", "badge_id", name=op.f("pk_user_badges")),
    )

    # Groups
    op.create_table(
        "groups",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("creator_id", sa.Uuid(), nullable=False),
        sa.Column("coach_id", sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["coach_id"], ["users.id"], name=op.f("fk_groups_coach_id_users")
        ),
        sa.ForeignKeyConstraint(
            ["creator_id"], ["users.id"], name=op.f("fk_groups_creator_id_users")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_groups")),
        sa.UniqueConstraint("name", name=op.f("uq_groups_name")),
    )

    op.create_table(
        "group_members",
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["group_id"], ["groups.id"], name=op.f("fk_group_members_group_id_groups")
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_group_members_user_id_users")
        ),
        sa.PrimaryKeyConstraint("group_id", "user_id", name=op.f("pk_group_members")),
    )
    op.create_index(op.f("ix_group_members_user_id"), "group_members", ["user_id"])

    op.create_table(
        "group_invitations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("invited_by_id", sa.Uuid(), nullable=False),
        sa.Column("status", invitation_status_enum, nullable=True),
        sa.Column("invited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["groups.id"],
            name=op.f("fk_group_invitations_group_id_groups"),
        ),
        sa.ForeignKeyConstraint(
            ["invited_by_id"],
            ["users.id"],
            name=op.f("fk_group_invitations_invited_by_id_users"),
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name=op.f("fk_group_invitations_user_id_users")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_group_invitations")),
    )
    op.create_index(
        op.f("ix_group_invitations_group_id"), "group_invitations", ["group_id"]
    )
    op.create_index(op.f("ix_group_invitations_user_id"), "group_invitations", ["user_id"])

    op.create_table(
        "group_videos",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("group_id", sa.Uuid(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("uploaded_by_id", sa.Uuid(), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["group_id"], ["groups.id"], name=op.f("fk_group_videos_group_id_groups")
        ),
        sa.ForeignKeyConstraint(
            ["uploaded_by_id"],
            ["users.id"],
            name=op.f("fk_group_videos_uploaded_by_id_users"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_group_videos")),
    )
    op.create_index(op.f("ix_group_videos_group_id"), "group_videos", ["group_id"])


def downgrade() -> None:
    """Downgrade schema - drop every learning service table."""
    for table in (
        "group_videos",
        "group_invitations",
        "group_members",
        "groups",
        "user_badges",
        "badges",
        "task_uploads",
        "task_progress",
        "progress_completed_tasks",
        "progress_records",
        "tasks",
        "skills",
        "course_enrollments",
        "courses",
        "users",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum in (
        invitation_status_enum,
        badge_threshold_kind_enum,
        approval_status_enum,
        task_content_type_enum,
        user_role_enum,
    ):
        enum.drop(bind, checkfirst=True)
