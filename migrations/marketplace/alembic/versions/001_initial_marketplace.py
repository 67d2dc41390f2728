"""initial marketplace schema

Revision ID: 001_initial_marketplace
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001_initial_marketplace"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    user_role = postgresql.ENUM("student", "instructor", "admin", name="user_role", create_type=False)
    course_status = postgresql.ENUM("DRAFT", "PUBLISHED", "ARCHIVED", name="course_status", create_type=False)
    op.execute("CREATE TYPE user_role AS ENUM ('student', 'instructor', 'admin')")
    op.execute("CREATE TYPE course_status AS ENUM ('DRAFT', 'PUBLISHED', 'ARCHIVED')")

    # ── users ────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("user_id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("role", user_role, nullable=False, server_default="student"),
        sa.Column("stripe_customer_id", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_stripe_customer_id", "users", ["stripe_customer_id"])

    # ── courses ──────────────────────────────────────────────────────────
    op.create_table(
        "courses",
        sa.Column("course_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "instructor_id", sa.Uuid(),
            sa.ForeignKey("users.user_id", ondelete="RESTRICT"), nullable=False,
        ),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("slug", sa.String(length=300), nullable=False),
        sa.Column("short_description", sa.String(length=500), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("thumbnail_url", sa.String(length=500), nullable=True),
        sa.Column("price", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"),
        sa.Column("discount_price", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("status", course_status, nullable=False, server_default="DRAFT"),
        sa.Column("enrollment_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("slug", name="uq_courses_slug"),
    )
    op.create_index("ix_courses_instructor_id", "courses", ["instructor_id"])
    op.create_index("ix_courses_status", "courses", ["status"])

    # ── course_sections ──────────────────────────────────────────────────
    op.create_table(
        "course_sections",
        sa.Column("section_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "course_id", sa.Uuid(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_course_sections_course_id", "course_sections", ["course_id"])

    # ── lectures ─────────────────────────────────────────────────────────
    op.create_table(
        "lectures",
        sa.Column("lecture_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "section_id", sa.Uuid(),
            sa.ForeignKey("course_sections.section_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("video_url", sa.String(length=500), nullable=True),
        sa.Column("video_duration", sa.Integer(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("is_preview", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_lectures_section_id", "lectures", ["section_id"])

    # ── enrollments ──────────────────────────────────────────────────────
    op.create_table(
        "enrollments",
        sa.Column("enrollment_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id", sa.Uuid(),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "course_id", sa.Uuid(),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("checkout_session_id", sa.String(length=255), nullable=True),
        sa.Column("payment_intent_id", sa.String(length=255), nullable=True),
        sa.Column("amount_paid", sa.Numeric(precision=10, scale=2), nullable=False, server_default="0"),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
    )
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])
    op.create_index("ix_enrollments_enrolled_at", "enrollments", ["enrolled_at"])

    # ── progress ─────────────────────────────────────────────────────────
    op.create_table(
        "progress",
        sa.Column("progress_id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id", sa.Uuid(),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column(
            "lecture_id", sa.Uuid(),
            sa.ForeignKey("lectures.lecture_id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("position_secs", sa.Float(), nullable=False, server_default="0"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_watched", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("user_id", "lecture_id", name="uq_progress_user_lecture"),
    )
    op.create_index("ix_progress_user_last_watched", "progress", ["user_id", "last_watched"])
    op.create_index("ix_progress_lecture_id", "progress", ["lecture_id"])


def downgrade() -> None:
    op.drop_table("progress")
    op.drop_table("enrollments")
    op.drop_table("lectures")
    op.drop_table("course_sections")
    op.drop_table("courses")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS course_status")
    op.execute("DROP TYPE IF EXISTS user_role")
