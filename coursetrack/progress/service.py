"""Enrollment and progress service layer.

Business logic for:
- Course enrollment with storage-enforced uniqueness
- Per-content progress updates with derived completion
- Course progress aggregation, computed on read
"""

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursetrack.auth.models import User
from coursetrack.auth.service import UserService
from coursetrack.core.database import execute
from coursetrack.core.timeutils import utcnow
from coursetrack.courses.models import ContentItem, Course
from coursetrack.courses.service import ContentService, CourseService

from .models import (
    Enrollment,
    ProgressRecord,
    ProgressState,
    is_completed_percentage,
)
from .schemas import (
    ContentProgressItem,
    CourseProgressResponse,
    ProgressUpdateRequest,
    StudentCourseProgress,
    StudentEnrollmentSummary,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotEnrolledError(ProgressError):
    """Student not enrolled in course."""

    def __init__(self, message: str = "Not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class AlreadyEnrolledError(ProgressError):
    """Student already enrolled."""

    def __init__(self, message: str = "Already enrolled in this course"):
        super().__init__(message, "already_enrolled")


# ==============================================================================
# Aggregation
# ==============================================================================


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves away from zero (12.5 -> 13)."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def aggregate_course_progress(
    course_id: UUID,
    content_items: Iterable[ContentItem],
    records: Iterable[ProgressRecord],
) -> CourseProgressResponse:
    """Left-join published content with a student's progress records.

    An item without a record counts as 0% and not completed. Records of
    unpublished or deleted items are ignored.
    """
    published = [item for item in content_items if item.is_published]
    total = len(published)
    if total == 0:
        return CourseProgressResponse(course_id=course_id)

    by_content = {record.content_id: record for record in records}
    completed = 0
    percentage_sum = Decimal(0)
    for item in published:
        record = by_content.get(item.content_id)
        if record is None:
            continue
        percentage_sum += Decimal(record.progress_percentage)
        if record.is_completed:
            completed += 1

    return CourseProgressResponse(
        course_id=course_id,
        total_content=total,
        completed_content=completed,
        average_progress=round_half_up(percentage_sum / total),
        overall_progress=round_half_up(Decimal(100 * completed) / total),
    )


# ==============================================================================
# Enrollment Service
# ==============================================================================


class EnrollmentService:
    """Service for course enrollments.

    ``enrollments`` is written with ``IF NOT EXISTS``; the lightweight
    transaction is what guarantees one row per (course, student) when two
    enroll requests race.
    """

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: CourseService,
        user_service: UserService,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.user_service = user_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_enrollment = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments "
            "WHERE course_id = ? AND student_id = ?"
        )
        self._insert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (course_id, student_id, enrolled_at, progress_percentage, completed_at)
            VALUES (?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._insert_enrollment_by_student = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_student
            (student_id, course_id, enrolled_at)
            VALUES (?, ?, ?)
        """)
        self._get_student_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments_by_student "
            "WHERE student_id = ?"
        )
        self._get_course_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE course_id = ?"
        )
        self._count_course_enrollments = self.session.prepare(
            f"SELECT COUNT(*) AS student_count FROM {self.keyspace}.enrollments "
            "WHERE course_id = ?"
        )

    async def enroll(self, student_id: UUID, course_id: UUID) -> Enrollment:
        """Enroll a student in a course.

        ``enrollments`` is the source of truth. When the enrollment already
        exists the ``enrollments_by_student`` row is rewritten before the
        conflict is reported, so a retry after a failed second write repairs
        the student's list instead of leaving it without the course.

        Raises:
            CourseNotFoundError: If the course does not exist
            AlreadyEnrolledError: If the student is already enrolled, including
                when a concurrent request wins the conditional insert
        """
        await self.course_service.require_course(course_id)

        existing = await self.get_enrollment(student_id, course_id)
        if existing:
            await self._index_for_student(existing)
            raise AlreadyEnrolledError

        enrollment = Enrollment(course_id=course_id, student_id=student_id)
        result = await execute(
            self.session,
            self._insert_enrollment,
            [
                enrollment.course_id,
                enrollment.student_id,
                enrollment.enrolled_at,
                enrollment.progress_percentage,
                enrollment.completed_at,
            ],
            operation="insert_enrollment",
        )
        if not result.was_applied:
            logger.warning(
                "enrollment_conflict",
                student_id=str(student_id),
                course_id=str(course_id),
            )
            winner = await self.get_enrollment(student_id, course_id)
            if winner:
                await self._index_for_student(winner)
            raise AlreadyEnrolledError

        await self._index_for_student(enrollment)

        logger.info(
            "student_enrolled",
            student_id=str(student_id),
            course_id=str(course_id),
        )
        return enrollment

    async def _index_for_student(self, enrollment: Enrollment) -> None:
        """Upsert the per-student lookup row of an enrollment."""
        await execute(
            self.session,
            self._insert_enrollment_by_student,
            [enrollment.student_id, enrollment.course_id, enrollment.enrolled_at],
            operation="insert_enrollment_by_student",
        )

    async def get_enrollment(
        self, student_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        result = await execute(
            self.session,
            self._get_enrollment,
            [course_id, student_id],
            operation="get_enrollment",
        )
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def is_enrolled(self, student_id: UUID, course_id: UUID) -> bool:
        """Access gate for content, progress updates and progress reads."""
        return await self.get_enrollment(student_id, course_id) is not None

    async def list_student_enrollments(self, student_id: UUID) -> list[Enrollment]:
        """Enrollments of a student, newest first."""
        rows = await execute(
            self.session,
            self._get_student_enrollments,
            [student_id],
            operation="list_student_enrollments",
        )
        enrollments = [Enrollment.from_row(row) for row in rows]
        enrollments.sort(key=lambda e: e.enrolled_at, reverse=True)
        return enrollments

    async def list_course_enrollments(
        self, course_id: UUID
    ) -> list[tuple[Enrollment, User | None]]:
        """Roster of a course with each student's user record, newest first."""
        rows = await execute(
            self.session,
            self._get_course_enrollments,
            [course_id],
            operation="list_course_enrollments",
        )
        enrollments = sorted(
            (Enrollment.from_row(row) for row in rows),
            key=lambda e: e.enrolled_at,
            reverse=True,
        )
        return [
            (enrollment, await self.user_service.get_user(enrollment.student_id))
            for enrollment in enrollments
        ]

    async def count_enrollments(self, course_id: UUID) -> int:
        result = await execute(
            self.session,
            self._count_course_enrollments,
            [course_id],
            operation="count_enrollments",
        )
        row = result.one()
        return int(row.student_count) if row else 0


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for per-content progress records.

    No bounds or monotonicity checks happen here; request validation covers
    the bounds and a shrinking ``total_time_watched`` is stored as sent.
    """

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        content_service: ContentService,
    ):
        self.session = session
        self.keyspace = keyspace
        self.content_service = content_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_progress = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.student_progress "
            "WHERE student_id = ? AND course_id = ? AND content_id = ?"
        )
        self._get_course_progress = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.student_progress "
            "WHERE student_id = ? AND course_id = ?"
        )
        self._upsert_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.student_progress
            (student_id, course_id, content_id, progress_percentage,
             last_position, total_time_watched, is_completed, completed_at,
             last_accessed)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

    async def get_progress(
        self, student_id: UUID, course_id: UUID, content_id: UUID
    ) -> ProgressRecord | None:
        result = await execute(
            self.session,
            self._get_progress,
            [student_id, course_id, content_id],
            operation="get_progress",
        )
        row = result.one()
        return ProgressRecord.from_row(row) if row else None

    async def list_course_records(
        self, student_id: UUID, course_id: UUID
    ) -> list[ProgressRecord]:
        """All progress records of a student in a course (one partition)."""
        rows = await execute(
            self.session,
            self._get_course_progress,
            [student_id, course_id],
            operation="list_course_records",
        )
        return [ProgressRecord.from_row(row) for row in rows]

    async def update_progress(
        self,
        student_id: UUID,
        course_id: UUID,
        content_id: UUID,
        update: ProgressUpdateRequest,
    ) -> ProgressRecord:
        """Create or overwrite the progress record of a content item.

        ``is_completed`` is recomputed from the percentage on every update.
        ``completed_at`` is stamped on the first transition into completed
        and kept from then on, even if the percentage later drops.
        """
        now = utcnow()
        completed = is_completed_percentage(update.progress_percentage)
        existing = await self.get_progress(student_id, course_id, content_id)

        if existing:
            completed_at = existing.completed_at
            if completed and completed_at is None:
                completed_at = now
        else:
            completed_at = now if completed else None

        record = ProgressRecord(
            student_id=student_id,
            course_id=course_id,
            content_id=content_id,
            progress_percentage=update.progress_percentage,
            last_position=update.last_position,
            total_time_watched=update.total_time_watched,
            is_completed=completed,
            completed_at=completed_at,
            last_accessed=now,
        )

        await execute(
            self.session,
            self._upsert_progress,
            [
                record.student_id,
                record.course_id,
                record.content_id,
                record.progress_percentage,
                record.last_position,
                record.total_time_watched,
                record.is_completed,
                record.completed_at,
                record.last_accessed,
            ],
            operation="upsert_progress",
        )

        if completed and (existing is None or existing.completed_at is None):
            logger.info(
                "content_completed",
                student_id=str(student_id),
                course_id=str(course_id),
                content_id=str(content_id),
            )
        else:
            logger.debug(
                "progress_updated",
                student_id=str(student_id),
                content_id=str(content_id),
                progress=str(update.progress_percentage),
            )
        return record

    async def list_progress(
        self, student_id: UUID, course_id: UUID
    ) -> list[ContentProgressItem]:
        """Published content of a course with the student's progress on each."""
        items = await self.content_service.list_content(course_id, published_only=True)
        records = {
            record.content_id: record
            for record in await self.list_course_records(student_id, course_id)
        }

        result = []
        for item in items:
            entry = ContentProgressItem(
                content_id=item.content_id,
                title=item.title,
                content_type=item.content_type,
                order_index=item.order_index,
                duration=item.duration,
                video_duration=item.video_duration,
            )
            record = records.get(item.content_id)
            if record:
                entry.state = record.state
                entry.progress_percentage = record.progress_percentage
                entry.last_position = record.last_position
                entry.total_time_watched = record.total_time_watched
                entry.is_completed = record.is_completed
                entry.completed_at = record.completed_at
                entry.last_accessed = record.last_accessed
            else:
                entry.state = ProgressState.NOT_STARTED
            result.append(entry)
        return result


# ==============================================================================
# Course Progress Service
# ==============================================================================


class CourseProgressService:
    """Read-only course progress derived from content and progress records."""

    def __init__(
        self,
        course_service: CourseService,
        content_service: ContentService,
        enrollment_service: EnrollmentService,
        progress_service: ProgressService,
    ):
        self.course_service = course_service
        self.content_service = content_service
        self.enrollment_service = enrollment_service
        self.progress_service = progress_service

    async def get_course_progress(
        self, student_id: UUID, course_id: UUID
    ) -> CourseProgressResponse:
        items = await self.content_service.list_content(course_id, published_only=True)
        records = await self.progress_service.list_course_records(student_id, course_id)
        return aggregate_course_progress(course_id, items, records)

    async def _enrolled_courses(
        self, student_id: UUID
    ) -> list[tuple[Enrollment, Course, CourseProgressResponse]]:
        """Enrollments whose course still exists, with their aggregate."""
        rows = []
        enrollments = await self.enrollment_service.list_student_enrollments(student_id)
        for enrollment in enrollments:
            course = await self.course_service.get_course(enrollment.course_id)
            if course is None:
                logger.debug(
                    "enrollment_course_missing",
                    student_id=str(student_id),
                    course_id=str(enrollment.course_id),
                )
                continue
            progress = await self.get_course_progress(student_id, course.id)
            rows.append((enrollment, course, progress))
        return rows

    async def get_student_overall_progress(
        self, student_id: UUID
    ) -> list[StudentCourseProgress]:
        """One aggregate row per enrolled course."""
        return [
            StudentCourseProgress(
                course_id=course.id,
                course_title=course.title,
                total_content=progress.total_content,
                completed_content=progress.completed_content,
                progress_percentage=progress.overall_progress,
            )
            for _, course, progress in await self._enrolled_courses(student_id)
        ]

    async def get_student_enrollments(
        self, student_id: UUID
    ) -> list[StudentEnrollmentSummary]:
        """Enrolled courses with course details and current progress."""
        return [
            StudentEnrollmentSummary(
                course_id=course.id,
                course_title=course.title,
                course_description=course.description,
                duration=course.duration,
                enrolled_at=enrollment.enrolled_at,
                progress_percentage=progress.overall_progress,
                total_content=progress.total_content,
                completed_content=progress.completed_content,
            )
            for enrollment, course, progress in await self._enrolled_courses(
                student_id
            )
        ]
