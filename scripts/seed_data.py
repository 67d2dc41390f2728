#!/usr/bin/env python3
"""
Seed the marketplace database with a demo instructor, student and one
published course (two sections, four lectures).

Run from repo root after `alembic upgrade head`:
    python scripts/seed_data.py
Uses DATABASE_URL from env or .env. Re-running is a no-op.
"""
from __future__ import annotations

import asyncio
import sys
from decimal import Decimal
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root / "shared"))
sys.path.insert(0, str(repo_root / "services" / "marketplace"))

from sqlalchemy import select  # noqa: E402

from shared.constants import Role  # noqa: E402
from shared.database.postgres import get_async_session_factory  # noqa: E402

from marketplace.auth.passwords import hash_password  # noqa: E402
from marketplace.config import get_settings  # noqa: E402
from marketplace.models import Course, CourseSection, Lecture, User  # noqa: E402
from marketplace.models.enums import CourseStatus  # noqa: E402

SEED_SLUG = "python-for-data-analysis"

CURRICULUM = [
    ("Getting started", ["Installing Python", "Your first notebook"]),
    ("Working with data", ["Loading CSV files", "Grouping and aggregation"]),
]


async def seed() -> None:
    session_factory = get_async_session_factory(get_settings().database_url)
    async with session_factory() as session:
        existing = await session.scalar(select(Course).where(Course.slug == SEED_SLUG))
        if existing is not None:
            print(f"Course {SEED_SLUG} already seeded (id={existing.course_id}).")
            return

        instructor = User(
            email="instructor@coursemart.local",
            password_hash=hash_password("seedpassword"),
            first_name="Ada",
            last_name="Instructor",
            role=Role.INSTRUCTOR,
        )
        student = User(
            email="student@coursemart.local",
            password_hash=hash_password("seedpassword"),
            first_name="Sam",
            last_name="Student",
            role=Role.STUDENT,
        )
        session.add_all([instructor, student])
        await session.flush()

        course = Course(
            instructor_id=instructor.user_id,
            title="Python for Data Analysis",
            slug=SEED_SLUG,
            short_description="Hands-on pandas from zero to reports.",
            price=Decimal("49.99"),
            discount_price=Decimal("19.99"),
            status=CourseStatus.PUBLISHED,
        )
        session.add(course)
        await session.flush()

        for s_idx, (section_title, lectures) in enumerate(CURRICULUM):
            section = CourseSection(course_id=course.course_id, title=section_title, sort_order=s_idx)
            session.add(section)
            await session.flush()
            for l_idx, lecture_title in enumerate(lectures):
                session.add(
                    Lecture(
                        section_id=section.section_id,
                        title=lecture_title,
                        sort_order=l_idx,
                        video_duration=600,
                        is_preview=(s_idx == 0 and l_idx == 0),
                    )
                )
        await session.commit()
        print(f"Seeded course {SEED_SLUG} (id={course.course_id}), student id={student.user_id}")


def main() -> None:
    asyncio.run(seed())
    print("Seed done.")


if __name__ == "__main__":
    main()
