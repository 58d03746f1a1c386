"""Database models for enrollments and student progress.

Cassandra table definitions for:
- Enrollments: one row per (course, student), the uniqueness authority
- Enrollments by student: lookup for "my courses"
- Student progress: one row per (student, course, content)

Progress is partitioned by ``(student_id, course_id)`` so the whole progress
of a student in a course is a single partition read.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from coursetrack.core.timeutils import ensure_utc_aware, utcnow


# A content item counts as completed from this percentage on
COMPLETION_THRESHOLD = Decimal(95)


class ProgressState(str, Enum):
    """Per-content progress state."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def is_completed_percentage(progress_percentage: Decimal) -> bool:
    return progress_percentage >= COMPLETION_THRESHOLD


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments (
    course_id UUID,
    student_id UUID,
    enrolled_at TIMESTAMP,
    progress_percentage DECIMAL,
    completed_at TIMESTAMP,
    PRIMARY KEY (course_id, student_id)
)
"""

ENROLLMENTS_BY_STUDENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_student (
    student_id UUID,
    course_id UUID,
    enrolled_at TIMESTAMP,
    PRIMARY KEY (student_id, course_id)
)
"""

STUDENT_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.student_progress (
    student_id UUID,
    course_id UUID,
    content_id UUID,
    progress_percentage DECIMAL,
    last_position INT,
    total_time_watched INT,
    is_completed BOOLEAN,
    completed_at TIMESTAMP,
    last_accessed TIMESTAMP,
    PRIMARY KEY ((student_id, course_id), content_id)
)
"""

PROGRESS_TABLES_CQL = [
    ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_STUDENT_TABLE_CQL,
    STUDENT_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Enrollment:
    """Course enrollment of a student.

    Attributes:
        course_id: Course UUID
        student_id: Student UUID
        enrolled_at: Enrollment timestamp
        progress_percentage: Legacy column, always 0; course progress is
            aggregated from the progress records on read
        completed_at: Course completion timestamp, unused for now
    """

    def __init__(
        self,
        course_id: UUID,
        student_id: UUID,
        enrolled_at: datetime | None = None,
        progress_percentage: Decimal = Decimal(0),
        completed_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.student_id = student_id
        self.enrolled_at = ensure_utc_aware(enrolled_at) or utcnow()
        self.progress_percentage = progress_percentage
        self.completed_at = ensure_utc_aware(completed_at)

    @classmethod
    def from_row(cls, row: Any) -> "Enrollment":
        """Create Enrollment instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            student_id=row.student_id,
            enrolled_at=row.enrolled_at,
            progress_percentage=getattr(row, "progress_percentage", None)
            or Decimal(0),
            completed_at=getattr(row, "completed_at", None),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "student_id": self.student_id,
            "enrolled_at": self.enrolled_at,
            "progress_percentage": self.progress_percentage,
            "completed_at": self.completed_at,
        }

    def __repr__(self) -> str:
        return f"<Enrollment student={self.student_id} course={self.course_id}>"


class ProgressRecord:
    """Progress of one student on one content item.

    ``is_completed`` always mirrors ``progress_percentage >= 95``.
    ``completed_at`` is the first time the record became completed and is
    never cleared afterwards.

    Attributes:
        student_id: Student UUID
        course_id: Course UUID (partition key with student_id)
        content_id: Content item UUID
        progress_percentage: 0-100
        last_position: Resume position in seconds
        total_time_watched: Seconds watched in total
        is_completed: Derived completion flag
        completed_at: First completion timestamp
        last_accessed: Last update timestamp
    """

    def __init__(
        self,
        student_id: UUID,
        course_id: UUID,
        content_id: UUID,
        progress_percentage: Decimal = Decimal(0),
        last_position: int = 0,
        total_time_watched: int = 0,
        is_completed: bool = False,
        completed_at: datetime | None = None,
        last_accessed: datetime | None = None,
    ):
        self.student_id = student_id
        self.course_id = course_id
        self.content_id = content_id
        self.progress_percentage = progress_percentage
        self.last_position = last_position
        self.total_time_watched = total_time_watched
        self.is_completed = is_completed
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_accessed = ensure_utc_aware(last_accessed) or utcnow()

    @property
    def state(self) -> ProgressState:
        if self.is_completed:
            return ProgressState.COMPLETED
        return ProgressState.IN_PROGRESS

    @classmethod
    def from_row(cls, row: Any) -> "ProgressRecord":
        """Create ProgressRecord instance from Cassandra row."""
        return cls(
            student_id=row.student_id,
            course_id=row.course_id,
            content_id=row.content_id,
            progress_percentage=row.progress_percentage or Decimal(0),
            last_position=row.last_position or 0,
            total_time_watched=row.total_time_watched or 0,
            is_completed=bool(row.is_completed),
            completed_at=row.completed_at,
            last_accessed=row.last_accessed,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "student_id": self.student_id,
            "course_id": self.course_id,
            "content_id": self.content_id,
            "progress_percentage": self.progress_percentage,
            "last_position": self.last_position,
            "total_time_watched": self.total_time_watched,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at,
            "last_accessed": self.last_accessed,
        }

    def __repr__(self) -> str:
        return (
            f"<ProgressRecord student={self.student_id} content={self.content_id} "
            f"{self.progress_percentage}%>"
        )
