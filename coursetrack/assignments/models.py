"""Database models for assignments and submissions.

Cassandra table definitions for:
- Assignments: one partition per course
- Assignments by id: lookup from an assignment id to its course
- Submissions: one row per (assignment, student), the uniqueness authority
- Submissions by id: lookup used when grading
- Submissions by student: lookup for "my submissions" and grade summaries

``submissions`` is written with ``IF NOT EXISTS`` so a student submits an
assignment at most once.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from coursetrack.core.timeutils import ensure_utc_aware, utcnow


class AssignmentType(str, Enum):
    """Kind of graded work."""

    ASSIGNMENT = "assignment"
    QUIZ = "quiz"
    EXAM = "exam"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

ASSIGNMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assignments (
    course_id UUID,
    assignment_id UUID,
    title TEXT,
    description TEXT,
    due_date TIMESTAMP,
    max_points INT,
    assignment_type TEXT,
    created_at TIMESTAMP,
    PRIMARY KEY (course_id, assignment_id)
)
"""

ASSIGNMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.assignments_by_id (
    assignment_id UUID PRIMARY KEY,
    course_id UUID
)
"""

SUBMISSIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.submissions (
    assignment_id UUID,
    student_id UUID,
    submission_id UUID,
    submission_text TEXT,
    file_url TEXT,
    submitted_at TIMESTAMP,
    grade DECIMAL,
    feedback TEXT,
    graded_at TIMESTAMP,
    graded_by UUID,
    PRIMARY KEY (assignment_id, student_id)
)
"""

SUBMISSIONS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.submissions_by_id (
    submission_id UUID PRIMARY KEY,
    assignment_id UUID,
    student_id UUID
)
"""

SUBMISSIONS_BY_STUDENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.submissions_by_student (
    student_id UUID,
    assignment_id UUID,
    course_id UUID,
    submission_id UUID,
    PRIMARY KEY (student_id, assignment_id)
)
"""

ASSIGNMENTS_TABLES_CQL = [
    ASSIGNMENTS_TABLE_CQL,
    ASSIGNMENTS_BY_ID_TABLE_CQL,
    SUBMISSIONS_TABLE_CQL,
    SUBMISSIONS_BY_ID_TABLE_CQL,
    SUBMISSIONS_BY_STUDENT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Assignment:
    """Graded work attached to a course.

    Attributes:
        course_id: Owning course
        assignment_id: Unique identifier
        title: Assignment title
        description: Instructions
        due_date: Optional deadline, informational only
        max_points: Highest grade a submission can receive
        assignment_type: assignment, quiz or exam
        created_at: Creation timestamp
    """

    def __init__(
        self,
        course_id: UUID,
        assignment_id: UUID | None = None,
        title: str = "",
        description: str | None = None,
        due_date: datetime | None = None,
        max_points: int = 100,
        assignment_type: str = AssignmentType.ASSIGNMENT.value,
        created_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.assignment_id = assignment_id or uuid4()
        self.title = title.strip()
        self.description = description
        self.due_date = ensure_utc_aware(due_date)
        self.max_points = max_points
        self.assignment_type = assignment_type
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Assignment":
        return cls(
            course_id=row.course_id,
            assignment_id=row.assignment_id,
            title=row.title or "",
            description=row.description,
            due_date=row.due_date,
            max_points=row.max_points or 0,
            assignment_type=row.assignment_type or AssignmentType.ASSIGNMENT.value,
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "assignment_id": self.assignment_id,
            "title": self.title,
            "description": self.description,
            "due_date": self.due_date,
            "max_points": self.max_points,
            "assignment_type": self.assignment_type,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Assignment {self.title} ({self.max_points} pts)>"


class Submission:
    """A student's answer to an assignment, graded later by the teacher."""

    def __init__(
        self,
        assignment_id: UUID,
        student_id: UUID,
        submission_id: UUID | None = None,
        submission_text: str | None = None,
        file_url: str | None = None,
        submitted_at: datetime | None = None,
        grade: Decimal | None = None,
        feedback: str | None = None,
        graded_at: datetime | None = None,
        graded_by: UUID | None = None,
    ):
        self.assignment_id = assignment_id
        self.student_id = student_id
        self.submission_id = submission_id or uuid4()
        self.submission_text = submission_text
        self.file_url = file_url
        self.submitted_at = ensure_utc_aware(submitted_at) or utcnow()
        self.grade = grade
        self.feedback = feedback
        self.graded_at = ensure_utc_aware(graded_at)
        self.graded_by = graded_by

    @property
    def is_graded(self) -> bool:
        return self.grade is not None

    @classmethod
    def from_row(cls, row: Any) -> "Submission":
        return cls(
            assignment_id=row.assignment_id,
            student_id=row.student_id,
            submission_id=row.submission_id,
            submission_text=row.submission_text,
            file_url=row.file_url,
            submitted_at=row.submitted_at,
            grade=row.grade,
            feedback=row.feedback,
            graded_at=row.graded_at,
            graded_by=row.graded_by,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "assignment_id": self.assignment_id,
            "student_id": self.student_id,
            "submission_id": self.submission_id,
            "submission_text": self.submission_text,
            "file_url": self.file_url,
            "submitted_at": self.submitted_at,
            "grade": self.grade,
            "feedback": self.feedback,
            "graded_at": self.graded_at,
            "graded_by": self.graded_by,
        }
