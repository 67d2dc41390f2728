"""Progress controller: maps service results to HTTP responses, catches domain exceptions."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.exceptions import (
    CourseNotFoundError,
    LectureNotFoundError,
    NotEnrolledError,
)
from marketplace.models.progress import Progress
from marketplace.progress import service
from marketplace.progress.schemas import (
    ContinueWatchingItem,
    CourseProgressResponse,
    CourseSummary,
    ProgressResponse,
    SaveProgressRequest,
)

logger = logging.getLogger(__name__)


def _handle_domain_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (CourseNotFoundError, LectureNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, NotEnrolledError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not enrolled in this course.")
    logger.exception("Unhandled error in progress controller")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error.")


def _progress_response(p: Progress) -> ProgressResponse:
    return ProgressResponse(
        progress_id=p.progress_id,
        lecture_id=p.lecture_id,
        current_time=p.position_secs,
        completed=p.completed,
        completed_at=p.completed_at,
        last_watched=p.last_watched,
    )


def _continue_watching_item(p: Progress) -> ContinueWatchingItem:
    course = p.lecture.section.course
    return ContinueWatchingItem(
        lecture_id=p.lecture_id,
        lecture_title=p.lecture.title,
        current_time=p.position_secs,
        last_watched=p.last_watched,
        course=CourseSummary.model_validate(course),
    )


async def save_progress(
    db: AsyncSession, user_id: UUID, body: SaveProgressRequest,
) -> ProgressResponse:
    try:
        progress = await service.save_progress(
            db, user_id, body.lecture_id,
            current_time=body.current_time,
            completed=body.completed,
        )
        return _progress_response(progress)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def mark_lecture_complete(
    db: AsyncSession, user_id: UUID, lecture_id: UUID,
) -> ProgressResponse:
    try:
        progress = await service.mark_lecture_complete(db, user_id, lecture_id)
        return _progress_response(progress)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def get_course_progress(
    db: AsyncSession, user_id: UUID, course_id: UUID,
) -> CourseProgressResponse:
    try:
        result = await service.get_course_progress(db, user_id, course_id)
        return CourseProgressResponse.model_validate(result)
    except Exception as exc:
        raise _handle_domain_error(exc) from exc


async def get_continue_watching(
    db: AsyncSession, user_id: UUID,
) -> list[ContinueWatchingItem]:
    try:
        rows = await service.get_continue_watching(db, user_id)
        return [_continue_watching_item(p) for p in rows]
    except Exception as exc:
        raise _handle_domain_error(exc) from exc
