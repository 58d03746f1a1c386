"""Course catalogue service layer.

Business logic for:
- Course CRUD owned by teachers
- Content items of a course
- Cascading deletes into enrollments and progress records

Cassandra has no foreign keys, so the cascades are explicit deletes over the
enrollment and progress tables.
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursetrack.auth.schemas import AuthenticatedCaller
from coursetrack.core.database import execute
from coursetrack.core.timeutils import utcnow

from .models import ContentItem, ContentType, Course
from .schemas import (
    ContentStatsResponse,
    CreateContentRequest,
    CreateCourseRequest,
    UpdateContentRequest,
    UpdateCourseRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(Exception):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CourseError):
    """Course not found."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class ContentNotFoundError(CourseError):
    """Content item not found in the course."""

    def __init__(self, message: str = "Content not found"):
        super().__init__(message, "content_not_found")


class InvalidContentError(CourseError):
    """Content data is not acceptable for its type."""

    def __init__(self, message: str = "Invalid content"):
        super().__init__(message, "invalid_content")


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for course management."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        # Course CRUD
        self._get_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._list_courses = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses"
        )
        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, description, duration, teacher_id, is_published,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_course = self.session.prepare(f"""
            UPDATE {self.keyspace}.courses
            SET title = ?, description = ?, duration = ?, is_published = ?,
                updated_at = ?
            WHERE id = ?
        """)
        self._delete_course = self.session.prepare(
            f"DELETE FROM {self.keyspace}.courses WHERE id = ?"
        )

        # Teacher lookup
        self._insert_course_by_teacher = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses_by_teacher
            (teacher_id, created_at, course_id)
            VALUES (?, ?, ?)
        """)
        self._get_courses_by_teacher = self.session.prepare(
            f"SELECT course_id FROM {self.keyspace}.courses_by_teacher "
            "WHERE teacher_id = ? LIMIT ?"
        )
        self._delete_course_by_teacher = self.session.prepare(
            f"DELETE FROM {self.keyspace}.courses_by_teacher "
            "WHERE teacher_id = ? AND created_at = ? AND course_id = ?"
        )

        # Cascade
        self._get_enrolled_students = self.session.prepare(
            f"SELECT student_id FROM {self.keyspace}.enrollments WHERE course_id = ?"
        )
        self._delete_student_progress = self.session.prepare(
            f"DELETE FROM {self.keyspace}.student_progress "
            "WHERE student_id = ? AND course_id = ?"
        )
        self._delete_enrollment_by_student = self.session.prepare(
            f"DELETE FROM {self.keyspace}.enrollments_by_student "
            "WHERE student_id = ? AND course_id = ?"
        )
        self._delete_course_enrollments = self.session.prepare(
            f"DELETE FROM {self.keyspace}.enrollments WHERE course_id = ?"
        )
        self._delete_course_content = self.session.prepare(
            f"DELETE FROM {self.keyspace}.course_content WHERE course_id = ?"
        )

    @staticmethod
    def is_owner(course: Course, caller: AuthenticatedCaller) -> bool:
        """Check whether the caller is the teacher owning the course."""
        return caller.is_teacher and course.teacher_id == caller.id

    async def create_course(self, data: CreateCourseRequest, teacher_id: UUID) -> Course:
        """Create a course owned by ``teacher_id``."""
        course = Course(
            title=data.title,
            description=data.description,
            duration=data.duration,
            teacher_id=teacher_id,
            is_published=data.is_published,
        )

        await execute(
            self.session,
            self._insert_course,
            [
                course.id,
                course.title,
                course.description,
                course.duration,
                course.teacher_id,
                course.is_published,
                course.created_at,
                course.updated_at,
            ],
            operation="insert_course",
        )
        await execute(
            self.session,
            self._insert_course_by_teacher,
            [course.teacher_id, course.created_at, course.id],
            operation="insert_course_by_teacher",
        )

        logger.info(
            "course_created",
            course_id=str(course.id),
            teacher_id=str(teacher_id),
        )
        return course

    async def get_course(self, course_id: UUID) -> Course | None:
        result = await execute(
            self.session, self._get_course, [course_id], operation="get_course"
        )
        row = result.one()
        return Course.from_row(row) if row else None

    async def require_course(self, course_id: UUID) -> Course:
        """Get a course or raise CourseNotFoundError."""
        course = await self.get_course(course_id)
        if not course:
            raise CourseNotFoundError
        return course

    async def list_published_courses(self, limit: int = 50) -> list[Course]:
        """Published courses, newest first."""
        rows = await execute(
            self.session, self._list_courses, operation="list_courses"
        )
        courses = [Course.from_row(row) for row in rows if row.is_published]
        courses.sort(key=lambda c: c.created_at, reverse=True)
        return courses[:limit]

    async def list_teacher_courses(
        self, teacher_id: UUID, limit: int = 50
    ) -> list[Course]:
        """Courses of a teacher, newest first, drafts included."""
        rows = await execute(
            self.session,
            self._get_courses_by_teacher,
            [teacher_id, limit],
            operation="list_teacher_courses",
        )
        courses = []
        for row in rows:
            course = await self.get_course(row.course_id)
            if course:
                courses.append(course)
        return courses

    async def update_course(
        self, course_id: UUID, data: UpdateCourseRequest
    ) -> Course:
        """Apply a partial update.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        course = await self.require_course(course_id)

        if data.title is not None:
            course.title = data.title
        if data.description is not None:
            course.description = data.description
        if data.duration is not None:
            course.duration = data.duration
        if data.is_published is not None:
            course.is_published = data.is_published
        course.updated_at = utcnow()

        await execute(
            self.session,
            self._update_course,
            [
                course.title,
                course.description,
                course.duration,
                course.is_published,
                course.updated_at,
                course.id,
            ],
            operation="update_course",
        )

        logger.info("course_updated", course_id=str(course_id))
        return course

    async def delete_course(self, course_id: UUID) -> None:
        """Delete a course with its content, enrollments and progress.

        Raises:
            CourseNotFoundError: If the course does not exist
        """
        course = await self.require_course(course_id)

        rows = await execute(
            self.session,
            self._get_enrolled_students,
            [course_id],
            operation="get_enrolled_students",
        )
        student_ids = [row.student_id for row in rows]

        for student_id in student_ids:
            await execute(
                self.session,
                self._delete_student_progress,
                [student_id, course_id],
                operation="delete_student_progress",
            )
            await execute(
                self.session,
                self._delete_enrollment_by_student,
                [student_id, course_id],
                operation="delete_enrollment_by_student",
            )

        await execute(
            self.session,
            self._delete_course_enrollments,
            [course_id],
            operation="delete_course_enrollments",
        )
        await execute(
            self.session,
            self._delete_course_content,
            [course_id],
            operation="delete_course_content",
        )
        await execute(
            self.session,
            self._delete_course_by_teacher,
            [course.teacher_id, course.created_at, course_id],
            operation="delete_course_by_teacher",
        )
        await execute(
            self.session, self._delete_course, [course_id], operation="delete_course"
        )

        logger.info(
            "course_deleted",
            course_id=str(course_id),
            enrollments_removed=len(student_ids),
        )


# ==============================================================================
# Content Service
# ==============================================================================


class ContentService:
    """Service for the content items of a course."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._get_content = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_content "
            "WHERE course_id = ? AND content_id = ?"
        )
        self._list_content = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_content WHERE course_id = ?"
        )
        self._insert_content = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_content
            (course_id, content_id, title, description, content_type, video_url,
             video_public_id, video_duration, document_url, duration,
             order_index, is_published, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_content = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_content
            SET title = ?, description = ?, order_index = ?, is_published = ?,
                updated_at = ?
            WHERE course_id = ? AND content_id = ?
        """)
        self._delete_content = self.session.prepare(
            f"DELETE FROM {self.keyspace}.course_content "
            "WHERE course_id = ? AND content_id = ?"
        )

        # Cascade
        self._get_enrolled_students = self.session.prepare(
            f"SELECT student_id FROM {self.keyspace}.enrollments WHERE course_id = ?"
        )
        self._delete_progress_record = self.session.prepare(
            f"DELETE FROM {self.keyspace}.student_progress "
            "WHERE student_id = ? AND course_id = ? AND content_id = ?"
        )

    async def add_content(
        self, course_id: UUID, data: CreateContentRequest
    ) -> ContentItem:
        """Add a content item to a course.

        Raises:
            InvalidContentError: If a video has no video_url
        """
        if data.content_type == ContentType.VIDEO and not data.video_url:
            raise InvalidContentError("Video URL is required for video content")

        item = ContentItem(
            course_id=course_id,
            title=data.title,
            description=data.description,
            content_type=data.content_type.value,
            video_url=data.video_url,
            video_public_id=data.video_public_id,
            video_duration=data.video_duration,
            document_url=data.document_url,
            duration=data.duration,
            order_index=data.order_index,
            is_published=data.is_published,
        )

        await execute(
            self.session,
            self._insert_content,
            [
                item.course_id,
                item.content_id,
                item.title,
                item.description,
                item.content_type,
                item.video_url,
                item.video_public_id,
                item.video_duration,
                item.document_url,
                item.duration,
                item.order_index,
                item.is_published,
                item.created_at,
                item.updated_at,
            ],
            operation="insert_content",
        )

        logger.info(
            "content_added",
            course_id=str(course_id),
            content_id=str(item.content_id),
            content_type=item.content_type,
        )
        return item

    async def get_content(self, course_id: UUID, content_id: UUID) -> ContentItem | None:
        result = await execute(
            self.session,
            self._get_content,
            [course_id, content_id],
            operation="get_content",
        )
        row = result.one()
        return ContentItem.from_row(row) if row else None

    async def list_content(
        self, course_id: UUID, published_only: bool = False
    ) -> list[ContentItem]:
        """Content items of a course in display order."""
        rows = await execute(
            self.session, self._list_content, [course_id], operation="list_content"
        )
        items = [ContentItem.from_row(row) for row in rows]
        if published_only:
            items = [item for item in items if item.is_published]
        items.sort(key=lambda item: item.sort_key)
        return items

    async def update_content(
        self, course_id: UUID, content_id: UUID, data: UpdateContentRequest
    ) -> ContentItem:
        """Apply a partial update.

        Raises:
            InvalidContentError: If no field is set
            ContentNotFoundError: If the item is not part of the course
        """
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise InvalidContentError("No valid fields to update")

        item = await self.get_content(course_id, content_id)
        if not item:
            raise ContentNotFoundError

        for field, value in changes.items():
            setattr(item, field, value)
        item.updated_at = utcnow()

        await execute(
            self.session,
            self._update_content,
            [
                item.title,
                item.description,
                item.order_index,
                item.is_published,
                item.updated_at,
                course_id,
                content_id,
            ],
            operation="update_content",
        )

        logger.info(
            "content_updated",
            course_id=str(course_id),
            content_id=str(content_id),
            fields=sorted(changes),
        )
        return item

    async def delete_content(self, course_id: UUID, content_id: UUID) -> None:
        """Delete a content item and every student's progress on it.

        Raises:
            ContentNotFoundError: If the item is not part of the course
        """
        item = await self.get_content(course_id, content_id)
        if not item:
            raise ContentNotFoundError

        rows = await execute(
            self.session,
            self._get_enrolled_students,
            [course_id],
            operation="get_enrolled_students",
        )
        removed = 0
        for row in rows:
            await execute(
                self.session,
                self._delete_progress_record,
                [row.student_id, course_id, content_id],
                operation="delete_progress_record",
            )
            removed += 1

        await execute(
            self.session,
            self._delete_content,
            [course_id, content_id],
            operation="delete_content",
        )

        logger.info(
            "content_deleted",
            course_id=str(course_id),
            content_id=str(content_id),
            progress_records_removed=removed,
        )

    async def get_content_stats(self, course_id: UUID) -> ContentStatsResponse:
        """Count published items by type and sum video durations."""
        items = await self.list_content(course_id, published_only=True)
        stats = ContentStatsResponse(total_content=len(items))
        for item in items:
            if item.content_type == ContentType.VIDEO.value:
                stats.video_count += 1
                stats.total_video_duration += item.video_duration or 0
            elif item.content_type == ContentType.DOCUMENT.value:
                stats.document_count += 1
            elif item.content_type == ContentType.QUIZ.value:
                stats.quiz_count += 1
        return stats
