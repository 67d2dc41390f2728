import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.database.postgres import Base


class Progress(Base):
    __tablename__ = "progress"

    progress_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    lecture_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("lectures.lecture_id", ondelete="CASCADE"),
        nullable=False,
    )
    # Last playback position in seconds
    position_secs: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_watched: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    lecture = relationship("Lecture", lazy="select")

    __table_args__ = (
        UniqueConstraint("user_id", "lecture_id", name="uq_progress_user_lecture"),
        Index("ix_progress_user_last_watched", "user_id", "last_watched"),
        Index("ix_progress_lecture_id", "lecture_id"),
    )
