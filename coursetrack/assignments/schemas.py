"""Pydantic schemas for assignments, submissions and grades."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .models import Assignment, AssignmentType, Submission


# ==============================================================================
# Assignment Schemas
# ==============================================================================


class CreateAssignmentRequest(BaseModel):
    """Assignment creation request."""

    title: str = Field(..., max_length=200)
    description: str | None = Field(None, max_length=5000)
    due_date: datetime | None = None
    max_points: int = Field(..., ge=1, description="Highest possible grade")
    assignment_type: AssignmentType = AssignmentType.ASSIGNMENT

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 5:
            raise ValueError("Title must be at least 5 characters long")
        return v


class AssignmentResponse(BaseModel):
    id: UUID
    course_id: UUID
    title: str
    description: str | None = None
    due_date: datetime | None = None
    max_points: int
    assignment_type: AssignmentType
    created_at: datetime

    @classmethod
    def from_assignment(cls, assignment: Assignment) -> "AssignmentResponse":
        return cls(
            id=assignment.assignment_id,
            course_id=assignment.course_id,
            title=assignment.title,
            description=assignment.description,
            due_date=assignment.due_date,
            max_points=assignment.max_points,
            assignment_type=assignment.assignment_type,
            created_at=assignment.created_at,
        )


class AssignmentListResponse(BaseModel):
    items: list[AssignmentResponse]
    total: int


# ==============================================================================
# Submission Schemas
# ==============================================================================


class SubmitAssignmentRequest(BaseModel):
    """Submission request. Files are uploaded elsewhere and passed by URL."""

    submission_text: str | None = Field(None, max_length=20000)
    file_url: str | None = Field(None, max_length=1000)

    @field_validator("submission_text")
    @classmethod
    def validate_text(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if len(v) < 10:
            raise ValueError("Submission text must be at least 10 characters long")
        return v


class GradeSubmissionRequest(BaseModel):
    grade: Decimal = Field(..., ge=0)
    feedback: str | None = Field(None, max_length=1000)


class SubmissionResponse(BaseModel):
    """Submission with its grade, if any."""

    id: UUID
    assignment_id: UUID
    student_id: UUID
    submission_text: str | None = None
    file_url: str | None = None
    submitted_at: datetime
    grade: Decimal | None = None
    feedback: str | None = None
    graded_at: datetime | None = None
    graded_by: UUID | None = None

    @classmethod
    def from_submission(cls, submission: Submission, **extra) -> "SubmissionResponse":
        return cls(
            id=submission.submission_id,
            assignment_id=submission.assignment_id,
            student_id=submission.student_id,
            submission_text=submission.submission_text,
            file_url=submission.file_url,
            submitted_at=submission.submitted_at,
            grade=submission.grade,
            feedback=submission.feedback,
            graded_at=submission.graded_at,
            graded_by=submission.graded_by,
            **extra,
        )


class AssignmentSubmissionEntry(SubmissionResponse):
    """Submission as the grading teacher sees it."""

    student_name: str | None = None
    student_email: str | None = None


class StudentSubmissionEntry(SubmissionResponse):
    """Submission as its student sees it."""

    assignment_title: str
    max_points: int
    due_date: datetime | None = None
    course_id: UUID
    course_title: str


class AssignmentSubmissionsResponse(BaseModel):
    items: list[AssignmentSubmissionEntry]
    total: int


class StudentSubmissionsResponse(BaseModel):
    items: list[StudentSubmissionEntry]
    total: int


# ==============================================================================
# Grade Schemas
# ==============================================================================


class GradeSummaryResponse(BaseModel):
    """Grades of a student across the assignments of their enrolled courses."""

    total_assignments: int = 0
    submitted_assignments: int = 0
    graded_assignments: int = 0
    average_grade: int = Field(0, description="Mean grade, rounded half up")
    total_possible_points: int = 0
    total_earned_points: Decimal = Decimal(0)
    overall_percentage: int = Field(
        0, description="Earned over possible points, rounded half up"
    )
