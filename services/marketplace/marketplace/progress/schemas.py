"""Progress Pydantic V2 schemas (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from shared.models import CamelRequest, CamelResponse


class SaveProgressRequest(CamelRequest):
    lecture_id: UUID
    current_time: float = Field(ge=0, allow_inf_nan=False, description="Playback position in seconds.")
    completed: bool | None = Field(
        default=None,
        description="Omit to keep the current completion state.",
    )


class ProgressResponse(CamelResponse):
    progress_id: UUID
    lecture_id: UUID
    current_time: float
    completed: bool
    completed_at: datetime | None = None
    last_watched: datetime


class LectureProgressResponse(CamelResponse):
    lecture_id: UUID
    title: str
    completed: bool
    current_time: float
    last_watched: datetime | None = None


class SectionProgressResponse(CamelResponse):
    section_id: UUID
    title: str
    lectures: list[LectureProgressResponse]


class CourseProgressResponse(CamelResponse):
    course_id: UUID
    total_lectures: int
    completed_lectures: int
    progress_percentage: int
    sections: list[SectionProgressResponse]


class CourseSummary(CamelResponse):
    course_id: UUID
    title: str
    slug: str
    thumbnail_url: str | None = None


class ContinueWatchingItem(CamelResponse):
    lecture_id: UUID
    lecture_title: str
    current_time: float
    last_watched: datetime
    course: CourseSummary
