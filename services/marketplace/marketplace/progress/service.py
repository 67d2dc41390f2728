"""Progress service. Pure business logic, no FastAPI imports.

Every write re-checks the enrollment for the lecture's course; an existing
Progress row never grants access on its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shared.database.upsert import dialect_insert

from marketplace.exceptions import (
    CourseNotFoundError,
    LectureNotFoundError,
    NotEnrolledError,
)
from marketplace.models.course import Course
from marketplace.models.course_section import CourseSection
from marketplace.models.enrollment import Enrollment
from marketplace.models.lecture import Lecture
from marketplace.models.progress import Progress

CONTINUE_WATCHING_LIMIT = 5


@dataclass
class LectureProgress:
    lecture_id: UUID
    title: str
    sort_order: int
    completed: bool = False
    current_time: float = 0.0
    last_watched: datetime | None = None


@dataclass
class SectionProgress:
    section_id: UUID
    title: str
    sort_order: int
    lectures: list[LectureProgress] = field(default_factory=list)


@dataclass
class CourseProgress:
    course_id: UUID
    total_lectures: int
    completed_lectures: int
    progress_percentage: int
    sections: list[SectionProgress] = field(default_factory=list)


def progress_percentage(completed: int, total: int) -> int:
    """Whole-number percentage, rounded down. 0 when the course has no lectures."""
    if total <= 0:
        return 0
    return completed * 100 // total


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------


async def _resolve_enrolled_lecture(
    db: AsyncSession, user_id: UUID, lecture_id: UUID,
) -> UUID:
    """Return the lecture's course id after checking the caller is enrolled."""
    row = (
        await db.execute(
            select(CourseSection.course_id)
            .join(Lecture, Lecture.section_id == CourseSection.section_id)
            .where(Lecture.lecture_id == lecture_id)
        )
    ).first()
    if row is None:
        raise LectureNotFoundError(str(lecture_id))
    course_id = row[0]

    enrolled = await db.scalar(
        select(Enrollment.enrollment_id).where(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
        )
    )
    if enrolled is None:
        raise NotEnrolledError()
    return course_id


async def _upsert(db: AsyncSession, stmt: Any, set_: dict[str, Any]) -> Progress:
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "lecture_id"],
        set_=set_,
    ).returning(Progress)
    # populate_existing refreshes a Progress already held in the identity map
    return await db.scalar(stmt, execution_options={"populate_existing": True})


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


async def save_progress(
    db: AsyncSession,
    user_id: UUID,
    lecture_id: UUID,
    *,
    current_time: float,
    completed: bool | None = None,
    now: datetime | None = None,
) -> Progress:
    """Record the playback position with a single upsert.

    ``completed=None`` leaves the completion state untouched, ``True`` keeps
    the first completion timestamp and ``False`` clears it.
    """
    await _resolve_enrolled_lecture(db, user_id, lecture_id)
    now = now or datetime.now(timezone.utc)

    stmt = dialect_insert(db, Progress).values(
        progress_id=uuid4(),
        user_id=user_id,
        lecture_id=lecture_id,
        position_secs=current_time,
        last_watched=now,
        completed=bool(completed),
        completed_at=now if completed else None,
    )
    set_: dict[str, Any] = {
        "position_secs": stmt.excluded.position_secs,
        "last_watched": stmt.excluded.last_watched,
    }
    if completed is True:
        set_["completed"] = True
        set_["completed_at"] = func.coalesce(Progress.completed_at, stmt.excluded.completed_at)
    elif completed is False:
        set_["completed"] = False
        set_["completed_at"] = None

    return await _upsert(db, stmt, set_)


async def mark_lecture_complete(
    db: AsyncSession,
    user_id: UUID,
    lecture_id: UUID,
    *,
    now: datetime | None = None,
) -> Progress:
    await _resolve_enrolled_lecture(db, user_id, lecture_id)
    now = now or datetime.now(timezone.utc)

    stmt = dialect_insert(db, Progress).values(
        progress_id=uuid4(),
        user_id=user_id,
        lecture_id=lecture_id,
        position_secs=0.0,
        last_watched=now,
        completed=True,
        completed_at=now,
    )
    return await _upsert(
        db, stmt, {"completed": True, "completed_at": stmt.excluded.completed_at},
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def get_course_progress(
    db: AsyncSession, user_id: UUID, course_id: UUID,
) -> CourseProgress:
    course_exists = await db.scalar(select(Course.course_id).where(Course.course_id == course_id))
    if course_exists is None:
        raise CourseNotFoundError(str(course_id))

    sections = (
        await db.execute(
            select(CourseSection)
            .where(CourseSection.course_id == course_id)
            .options(selectinload(CourseSection.lectures))
            .order_by(CourseSection.sort_order)
        )
    ).scalars().all()

    lecture_ids = [lec.lecture_id for s in sections for lec in s.lectures]
    by_lecture: dict[UUID, Progress] = {}
    if lecture_ids:
        rows = (
            await db.execute(
                select(Progress).where(
                    Progress.user_id == user_id,
                    Progress.lecture_id.in_(lecture_ids),
                )
            )
        ).scalars().all()
        by_lecture = {p.lecture_id: p for p in rows}

    result_sections: list[SectionProgress] = []
    completed_count = 0
    for section in sections:
        lectures: list[LectureProgress] = []
        for lecture in sorted(section.lectures, key=lambda lec: lec.sort_order):
            p = by_lecture.get(lecture.lecture_id)
            done = bool(p and p.completed)
            if done:
                completed_count += 1
            lectures.append(
                LectureProgress(
                    lecture_id=lecture.lecture_id,
                    title=lecture.title,
                    sort_order=lecture.sort_order,
                    completed=done,
                    current_time=p.position_secs if p else 0.0,
                    last_watched=p.last_watched if p else None,
                )
            )
        result_sections.append(
            SectionProgress(
                section_id=section.section_id,
                title=section.title,
                sort_order=section.sort_order,
                lectures=lectures,
            )
        )

    total = len(lecture_ids)
    return CourseProgress(
        course_id=course_id,
        total_lectures=total,
        completed_lectures=completed_count,
        progress_percentage=progress_percentage(completed_count, total),
        sections=result_sections,
    )


async def get_continue_watching(
    db: AsyncSession, user_id: UUID, limit: int = CONTINUE_WATCHING_LIMIT,
) -> list[Progress]:
    result = await db.execute(
        select(Progress)
        .where(Progress.user_id == user_id, Progress.completed.is_(False))
        .options(
            selectinload(Progress.lecture)
            .selectinload(Lecture.section)
            .selectinload(CourseSection.course)
        )
        .order_by(Progress.last_watched.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
