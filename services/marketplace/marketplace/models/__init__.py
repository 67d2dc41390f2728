# Import all models so Alembic can discover them via Base.metadata
from .course import Course
from .course_section import CourseSection
from .enrollment import Enrollment
from .lecture import Lecture
from .progress import Progress
from .user import User

__all__ = [
    "Course",
    "CourseSection",
    "Enrollment",
    "Lecture",
    "Progress",
    "User",
]
