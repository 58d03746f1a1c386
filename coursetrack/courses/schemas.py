"""Pydantic schemas for courses and content items."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from coursetrack.courses.models import ContentType


def _strip_required(value: str, field: str) -> str:
    value = value.strip()
    if not value:
        msg = f"{field} is required"
        raise ValueError(msg)
    return value


# ==============================================================================
# Course Schemas
# ==============================================================================


class CreateCourseRequest(BaseModel):
    """Course creation request."""

    title: str = Field(..., max_length=200, description="Course title")
    description: str = Field(..., max_length=5000, description="Course description")
    duration: str | None = Field(None, max_length=100, description="e.g. '6 weeks'")
    is_published: bool = Field(False, description="List in the public catalogue")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _strip_required(v, "Title")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str) -> str:
        return _strip_required(v, "Description")


class UpdateCourseRequest(BaseModel):
    """Partial course update."""

    title: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=5000)
    duration: str | None = Field(None, max_length=100)
    is_published: bool | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        return None if v is None else _strip_required(v, "Title")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: str | None) -> str | None:
        return None if v is None else _strip_required(v, "Description")


class CourseResponse(BaseModel):
    """Course response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    duration: str | None = None
    teacher_id: UUID
    is_published: bool
    created_at: datetime
    updated_at: datetime | None = None
    student_count: int = 0


class CourseListResponse(BaseModel):
    """Course list response."""

    items: list[CourseResponse]
    total: int


# ==============================================================================
# Content Schemas
# ==============================================================================


class CreateContentRequest(BaseModel):
    """Content item creation request."""

    title: str = Field(..., max_length=255)
    description: str | None = Field(None, max_length=1000)
    content_type: ContentType
    video_url: str | None = Field(None, max_length=1000)
    video_public_id: str | None = Field(None, max_length=255)
    video_duration: int | None = Field(None, ge=0, description="Seconds")
    document_url: str | None = Field(None, max_length=1000)
    duration: int | None = Field(None, ge=0, description="Minutes")
    order_index: int = Field(0, ge=0)
    is_published: bool = True

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _strip_required(v, "Title")


class UpdateContentRequest(BaseModel):
    """Partial content update."""

    title: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=1000)
    order_index: int | None = Field(None, ge=0)
    is_published: bool | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        return None if v is None else _strip_required(v, "Title")


class ContentResponse(BaseModel):
    """Content item response."""

    model_config = ConfigDict(from_attributes=True)

    content_id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    content_type: ContentType
    video_url: str | None = None
    video_public_id: str | None = None
    video_duration: int | None = None
    document_url: str | None = None
    duration: int | None = None
    order_index: int
    is_published: bool
    created_at: datetime
    updated_at: datetime | None = None


class ContentStatsResponse(BaseModel):
    """Published content of a course counted by type."""

    total_content: int = 0
    video_count: int = 0
    document_count: int = 0
    quiz_count: int = 0
    total_video_duration: int = Field(0, description="Seconds")


class CourseDetailResponse(BaseModel):
    """Course with its visible content and the caller's enrollment flag."""

    course: CourseResponse
    content: list[ContentResponse]
    is_enrolled: bool = False


class RosterEntry(BaseModel):
    """Enrolled student as seen by the course owner."""

    student_id: UUID
    name: str | None = None
    email: str | None = None
    enrolled_at: datetime


class RosterResponse(BaseModel):
    items: list[RosterEntry]
    total: int
