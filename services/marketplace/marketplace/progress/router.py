"""Progress router. HTTP layer only.

All endpoints require a bearer token. Writes are gated on enrollment in the
lecture's course.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.user import CurrentUser

from marketplace.database import get_db
from marketplace.dependencies import get_current_user
from marketplace.progress import controller
from marketplace.progress.schemas import (
    ContinueWatchingItem,
    CourseProgressResponse,
    ProgressResponse,
    SaveProgressRequest,
)

router = APIRouter(prefix="/progress", tags=["Progress"])


@router.post(
    "/save",
    response_model=ProgressResponse,
    summary="Save playback position",
    description="Creates or updates the caller's progress row for a lecture. "
    "Omitting `completed` keeps the current completion state.",
)
async def save_progress(
    body: SaveProgressRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ProgressResponse:
    return await controller.save_progress(db, current_user.id, body)


@router.patch(
    "/lectures/{lecture_id}/complete",
    response_model=ProgressResponse,
    summary="Mark a lecture complete",
)
async def mark_lecture_complete(
    lecture_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ProgressResponse:
    return await controller.mark_lecture_complete(db, current_user.id, lecture_id)


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Per-lecture progress for a course",
    description="Sections and lectures in curriculum order with completion and "
    "position, plus the completed percentage (rounded down).",
)
async def get_course_progress(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> CourseProgressResponse:
    return await controller.get_course_progress(db, current_user.id, course_id)


@router.get(
    "/continue-watching",
    response_model=list[ContinueWatchingItem],
    summary="Recently watched, unfinished lectures",
    description="Up to five in-progress lectures, most recently watched first.",
)
async def get_continue_watching(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> list[ContinueWatchingItem]:
    return await controller.get_continue_watching(db, current_user.id)
