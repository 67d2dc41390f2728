import enum

from sqlalchemy import Enum as SAEnum

from shared.constants import Role


class CourseStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


# SQLAlchemy Enum instances (reuse across models to avoid duplicate type creation).
# values_callable stores the enum values, matching the migration's type labels.
course_status_enum = SAEnum(
    CourseStatus,
    name="course_status",
    values_callable=lambda e: [m.value for m in e],
)
user_role_enum = SAEnum(
    Role,
    name="user_role",
    values_callable=lambda e: [m.value for m in e],
)
