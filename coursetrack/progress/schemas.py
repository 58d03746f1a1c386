"""Pydantic schemas for enrollments and progress tracking.

Bounds on incoming progress values are enforced here; the tracker stores
whatever passes validation.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import Enrollment, ProgressRecord, ProgressState


# ==============================================================================
# Enrollment Schemas
# ==============================================================================


class EnrollRequest(BaseModel):
    """Request to enroll in a course."""

    course_id: UUID = Field(..., description="Course UUID to enroll in")


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    model_config = ConfigDict(from_attributes=True)

    course_id: UUID
    student_id: UUID
    enrolled_at: datetime
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: Enrollment) -> "EnrollmentResponse":
        return cls(
            course_id=entity.course_id,
            student_id=entity.student_id,
            enrolled_at=entity.enrolled_at,
            completed_at=entity.completed_at,
        )


class EnrollmentStatusResponse(BaseModel):
    course_id: UUID
    is_enrolled: bool


class StudentEnrollmentSummary(BaseModel):
    """A course the student is enrolled in, with its current progress."""

    course_id: UUID
    course_title: str
    course_description: str | None = None
    duration: str | None = None
    enrolled_at: datetime
    progress_percentage: int = 0
    total_content: int = 0
    completed_content: int = 0


class StudentEnrollmentListResponse(BaseModel):
    items: list[StudentEnrollmentSummary]
    total: int


# ==============================================================================
# Progress Schemas
# ==============================================================================


class ProgressUpdateRequest(BaseModel):
    """Progress sent by the player or document viewer."""

    progress_percentage: Decimal = Field(
        ..., ge=0, le=100, description="0-100 percentage"
    )
    last_position: int = Field(0, ge=0, description="Resume position in seconds")
    total_time_watched: int = Field(0, ge=0, description="Seconds watched in total")


class ProgressRecordResponse(BaseModel):
    """Stored progress of one content item."""

    content_id: UUID
    course_id: UUID
    progress_percentage: Decimal
    last_position: int
    total_time_watched: int
    is_completed: bool
    completed_at: datetime | None = None
    last_accessed: datetime | None = None

    @classmethod
    def from_entity(cls, entity: ProgressRecord) -> "ProgressRecordResponse":
        return cls(
            content_id=entity.content_id,
            course_id=entity.course_id,
            progress_percentage=entity.progress_percentage,
            last_position=entity.last_position,
            total_time_watched=entity.total_time_watched,
            is_completed=entity.is_completed,
            completed_at=entity.completed_at,
            last_accessed=entity.last_accessed,
        )


class CourseProgressResponse(BaseModel):
    """Aggregate progress of a student in one course."""

    course_id: UUID
    total_content: int = Field(0, description="Published content items")
    completed_content: int = 0
    average_progress: int = Field(0, description="Mean percentage, 0 when missing")
    overall_progress: int = Field(0, description="Completed share, 0-100")


class ContentProgressItem(BaseModel):
    """Progress of one content item joined with the item itself."""

    content_id: UUID
    title: str
    content_type: str
    order_index: int = 0
    duration: int | None = None
    video_duration: int | None = None
    state: ProgressState = ProgressState.NOT_STARTED
    progress_percentage: Decimal = Decimal(0)
    last_position: int = 0
    total_time_watched: int = 0
    is_completed: bool = False
    completed_at: datetime | None = None
    last_accessed: datetime | None = None


class ContentProgressListResponse(BaseModel):
    course_id: UUID
    items: list[ContentProgressItem]


class StudentCourseProgress(BaseModel):
    """One row of a student's progress across courses."""

    course_id: UUID
    course_title: str
    total_content: int = 0
    completed_content: int = 0
    progress_percentage: int = 0


class StudentOverallProgressResponse(BaseModel):
    items: list[StudentCourseProgress]
    total: int


class ProgressUpdateResponse(BaseModel):
    """Updated record plus the recomputed course aggregate."""

    progress: ProgressRecordResponse
    course_progress: CourseProgressResponse
