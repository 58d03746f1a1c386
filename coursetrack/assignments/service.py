"""Assignment service layer.

Business logic for:
- Assignment creation and listing per course
- Submissions, at most one per (assignment, student)
- Grading by the course owner, bounded by the assignment's max points
- Grade summaries over a student's enrolled courses
"""

from collections.abc import Iterable
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursetrack.auth.schemas import AuthenticatedCaller
from coursetrack.auth.service import UserService
from coursetrack.core.database import execute
from coursetrack.core.timeutils import utcnow
from coursetrack.courses.models import Course
from coursetrack.courses.service import CourseService
from coursetrack.progress.service import EnrollmentService, round_half_up

from .models import Assignment, Submission
from .schemas import (
    AssignmentSubmissionEntry,
    CreateAssignmentRequest,
    GradeSubmissionRequest,
    GradeSummaryResponse,
    StudentSubmissionEntry,
    SubmitAssignmentRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AssignmentError(Exception):
    """Base assignment error."""

    def __init__(self, message: str, code: str = "assignment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AssignmentNotFoundError(AssignmentError):
    def __init__(self, message: str = "Assignment not found"):
        super().__init__(message, "assignment_not_found")


class SubmissionNotFoundError(AssignmentError):
    def __init__(self, message: str = "Submission not found"):
        super().__init__(message, "submission_not_found")


class AssignmentAccessError(AssignmentError):
    """Caller may not act on this assignment."""

    def __init__(self, message: str = "You do not have access to this assignment"):
        super().__init__(message, "assignment_forbidden")


class AlreadySubmittedError(AssignmentError):
    def __init__(self, message: str = "You have already submitted this assignment"):
        super().__init__(message, "already_submitted")


class InvalidGradeError(AssignmentError):
    def __init__(self, message: str = "Invalid grade"):
        super().__init__(message, "invalid_grade")


# ==============================================================================
# Grade Summary
# ==============================================================================


def summarize_grades(
    work: Iterable[tuple[Assignment, Submission | None]],
) -> GradeSummaryResponse:
    """Aggregate assignments with the student's submission on each.

    Possible points count every assignment, submitted or not; earned points
    and the average count graded submissions only.
    """
    summary = GradeSummaryResponse()
    grades: list[Decimal] = []
    for assignment, submission in work:
        summary.total_assignments += 1
        summary.total_possible_points += assignment.max_points
        if submission is None:
            continue
        summary.submitted_assignments += 1
        if submission.is_graded:
            summary.graded_assignments += 1
            grades.append(Decimal(submission.grade))

    if grades:
        summary.total_earned_points = sum(grades, Decimal(0))
        summary.average_grade = round_half_up(summary.total_earned_points / len(grades))
    if summary.total_possible_points > 0:
        summary.overall_percentage = round_half_up(
            summary.total_earned_points * 100 / summary.total_possible_points
        )
    return summary


# ==============================================================================
# Assignment Service
# ==============================================================================


class AssignmentService:
    """Service for assignments, submissions and grading."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: CourseService,
        user_service: UserService,
        enrollment_service: EnrollmentService,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.user_service = user_service
        self.enrollment_service = enrollment_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        # Assignments
        self._insert_assignment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.assignments
            (course_id, assignment_id, title, description, due_date, max_points,
             assignment_type, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_assignment_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.assignments_by_id (assignment_id, course_id)
            VALUES (?, ?)
        """)
        self._get_assignment_course = self.session.prepare(
            f"SELECT course_id FROM {self.keyspace}.assignments_by_id "
            "WHERE assignment_id = ?"
        )
        self._get_assignment = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.assignments "
            "WHERE course_id = ? AND assignment_id = ?"
        )
        self._get_course_assignments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.assignments WHERE course_id = ?"
        )

        # Submissions
        self._insert_submission = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.submissions
            (assignment_id, student_id, submission_id, submission_text, file_url,
             submitted_at)
            VALUES (?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._insert_submission_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.submissions_by_id
            (submission_id, assignment_id, student_id)
            VALUES (?, ?, ?)
        """)
        self._insert_submission_by_student = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.submissions_by_student
            (student_id, assignment_id, course_id, submission_id)
            VALUES (?, ?, ?, ?)
        """)
        self._get_submission = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.submissions "
            "WHERE assignment_id = ? AND student_id = ?"
        )
        self._get_submission_key = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.submissions_by_id WHERE submission_id = ?"
        )
        self._get_assignment_submissions = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.submissions WHERE assignment_id = ?"
        )
        self._get_student_submissions = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.submissions_by_student "
            "WHERE student_id = ?"
        )
        self._grade_submission = self.session.prepare(f"""
            UPDATE {self.keyspace}.submissions
            SET grade = ?, feedback = ?, graded_at = ?, graded_by = ?
            WHERE assignment_id = ? AND student_id = ?
        """)

    # ==========================================================================
    # Assignments
    # ==========================================================================

    async def create_assignment(
        self, course_id: UUID, data: CreateAssignmentRequest
    ) -> Assignment:
        """Create an assignment in a course the caller was checked to own."""
        assignment = Assignment(
            course_id=course_id,
            title=data.title,
            description=data.description,
            due_date=data.due_date,
            max_points=data.max_points,
            assignment_type=data.assignment_type.value,
        )

        # Lookup first: a lookup without its assignment row reads as not found
        await execute(
            self.session,
            self._insert_assignment_by_id,
            [assignment.assignment_id, assignment.course_id],
            operation="insert_assignment_by_id",
        )
        await execute(
            self.session,
            self._insert_assignment,
            [
                assignment.course_id,
                assignment.assignment_id,
                assignment.title,
                assignment.description,
                assignment.due_date,
                assignment.max_points,
                assignment.assignment_type,
                assignment.created_at,
            ],
            operation="insert_assignment",
        )

        logger.info(
            "assignment_created",
            assignment_id=str(assignment.assignment_id),
            course_id=str(course_id),
        )
        return assignment

    async def get_assignment(self, assignment_id: UUID) -> Assignment | None:
        result = await execute(
            self.session,
            self._get_assignment_course,
            [assignment_id],
            operation="get_assignment_course",
        )
        key = result.one()
        if not key:
            return None

        result = await execute(
            self.session,
            self._get_assignment,
            [key.course_id, assignment_id],
            operation="get_assignment",
        )
        row = result.one()
        return Assignment.from_row(row) if row else None

    async def require_assignment(self, assignment_id: UUID) -> Assignment:
        assignment = await self.get_assignment(assignment_id)
        if not assignment:
            raise AssignmentNotFoundError
        return assignment

    async def list_course_assignments(self, course_id: UUID) -> list[Assignment]:
        """Assignments of a course, newest first."""
        rows = await execute(
            self.session,
            self._get_course_assignments,
            [course_id],
            operation="list_course_assignments",
        )
        assignments = [Assignment.from_row(row) for row in rows]
        assignments.sort(key=lambda a: a.created_at, reverse=True)
        return assignments

    async def _owned_course(
        self, assignment: Assignment, caller: AuthenticatedCaller, action: str
    ) -> Course:
        course = await self.course_service.get_course(assignment.course_id)
        if not course:
            raise AssignmentNotFoundError
        if not self.course_service.is_owner(course, caller):
            raise AssignmentAccessError(
                f"You do not have permission to {action} for this assignment"
            )
        return course

    # ==========================================================================
    # Submissions
    # ==========================================================================

    async def submit(
        self,
        assignment_id: UUID,
        student_id: UUID,
        data: SubmitAssignmentRequest,
    ) -> Submission:
        """Submit an assignment once.

        When a submission already exists its lookup rows are rewritten before
        the conflict is reported, so a retry after a failed lookup write
        repairs them.

        Raises:
            AssignmentNotFoundError: If the assignment does not exist
            AssignmentAccessError: If the student is not enrolled in its course
            AlreadySubmittedError: If the student already submitted it
        """
        assignment = await self.require_assignment(assignment_id)
        if not await self.enrollment_service.is_enrolled(
            student_id, assignment.course_id
        ):
            raise AssignmentAccessError(
                "You must be enrolled in this course to submit assignments"
            )

        submission = Submission(
            assignment_id=assignment_id,
            student_id=student_id,
            submission_text=data.submission_text,
            file_url=data.file_url,
        )
        result = await execute(
            self.session,
            self._insert_submission,
            [
                submission.assignment_id,
                submission.student_id,
                submission.submission_id,
                submission.submission_text,
                submission.file_url,
                submission.submitted_at,
            ],
            operation="insert_submission",
        )
        if not result.was_applied:
            existing = await self.get_submission(assignment_id, student_id)
            if existing:
                await self._index_submission(existing, assignment.course_id)
            raise AlreadySubmittedError

        await self._index_submission(submission, assignment.course_id)

        logger.info(
            "assignment_submitted",
            assignment_id=str(assignment_id),
            student_id=str(student_id),
        )
        return submission

    async def _index_submission(self, submission: Submission, course_id: UUID) -> None:
        await execute(
            self.session,
            self._insert_submission_by_id,
            [submission.submission_id, submission.assignment_id, submission.student_id],
            operation="insert_submission_by_id",
        )
        await execute(
            self.session,
            self._insert_submission_by_student,
            [
                submission.student_id,
                submission.assignment_id,
                course_id,
                submission.submission_id,
            ],
            operation="insert_submission_by_student",
        )

    async def get_submission(
        self, assignment_id: UUID, student_id: UUID
    ) -> Submission | None:
        result = await execute(
            self.session,
            self._get_submission,
            [assignment_id, student_id],
            operation="get_submission",
        )
        row = result.one()
        return Submission.from_row(row) if row else None

    async def get_submission_by_id(self, submission_id: UUID) -> Submission | None:
        result = await execute(
            self.session,
            self._get_submission_key,
            [submission_id],
            operation="get_submission_key",
        )
        key = result.one()
        if not key:
            return None
        return await self.get_submission(key.assignment_id, key.student_id)

    async def list_assignment_submissions(
        self, assignment_id: UUID, caller: AuthenticatedCaller
    ) -> list[AssignmentSubmissionEntry]:
        """Submissions of an assignment with student details, newest first.

        Raises:
            AssignmentNotFoundError: If the assignment does not exist
            AssignmentAccessError: If the caller does not own its course
        """
        assignment = await self.require_assignment(assignment_id)
        await self._owned_course(assignment, caller, "view submissions")

        rows = await execute(
            self.session,
            self._get_assignment_submissions,
            [assignment_id],
            operation="list_assignment_submissions",
        )
        submissions = sorted(
            (Submission.from_row(row) for row in rows),
            key=lambda s: s.submitted_at,
            reverse=True,
        )

        entries = []
        for submission in submissions:
            student = await self.user_service.get_user(submission.student_id)
            entries.append(
                AssignmentSubmissionEntry.from_submission(
                    submission,
                    student_name=student.name if student else None,
                    student_email=student.email if student else None,
                )
            )
        return entries

    async def list_student_submissions(
        self, student_id: UUID
    ) -> list[StudentSubmissionEntry]:
        """A student's submissions with assignment and course details.

        Submissions whose assignment or course is gone are left out.
        """
        rows = await execute(
            self.session,
            self._get_student_submissions,
            [student_id],
            operation="list_student_submissions",
        )

        entries = []
        for row in rows:
            submission = await self.get_submission(row.assignment_id, student_id)
            assignment = await self.get_assignment(row.assignment_id)
            course = (
                await self.course_service.get_course(assignment.course_id)
                if assignment
                else None
            )
            if not (submission and assignment and course):
                logger.debug(
                    "submission_reference_missing",
                    student_id=str(student_id),
                    assignment_id=str(row.assignment_id),
                )
                continue
            entries.append(
                StudentSubmissionEntry.from_submission(
                    submission,
                    assignment_title=assignment.title,
                    max_points=assignment.max_points,
                    due_date=assignment.due_date,
                    course_id=course.id,
                    course_title=course.title,
                )
            )

        entries.sort(key=lambda e: e.submitted_at, reverse=True)
        return entries

    # ==========================================================================
    # Grading
    # ==========================================================================

    async def grade_submission(
        self,
        submission_id: UUID,
        caller: AuthenticatedCaller,
        data: GradeSubmissionRequest,
    ) -> Submission:
        """Grade a submission; regrading overwrites the previous grade.

        Raises:
            SubmissionNotFoundError: If the submission does not exist
            AssignmentAccessError: If the caller does not own the course
            InvalidGradeError: If the grade exceeds the assignment's max points
        """
        submission = await self.get_submission_by_id(submission_id)
        if not submission:
            raise SubmissionNotFoundError
        assignment = await self.get_assignment(submission.assignment_id)
        if not assignment:
            raise SubmissionNotFoundError
        await self._owned_course(assignment, caller, "grade submissions")

        if data.grade > assignment.max_points:
            raise InvalidGradeError(
                f"Grade cannot exceed maximum points ({assignment.max_points})"
            )

        submission.grade = data.grade
        submission.feedback = data.feedback
        submission.graded_at = utcnow()
        submission.graded_by = caller.id
        await execute(
            self.session,
            self._grade_submission,
            [
                submission.grade,
                submission.feedback,
                submission.graded_at,
                submission.graded_by,
                submission.assignment_id,
                submission.student_id,
            ],
            operation="grade_submission",
        )

        logger.info(
            "submission_graded",
            submission_id=str(submission_id),
            assignment_id=str(assignment.assignment_id),
            grade=str(data.grade),
        )
        return submission

    async def get_student_grades(self, student_id: UUID) -> GradeSummaryResponse:
        """Grade summary over every assignment of the student's courses."""
        work = []
        for enrollment in await self.enrollment_service.list_student_enrollments(
            student_id
        ):
            for assignment in await self.list_course_assignments(enrollment.course_id):
                work.append(
                    (
                        assignment,
                        await self.get_submission(
                            assignment.assignment_id, student_id
                        ),
                    )
                )
        return summarize_grades(work)
