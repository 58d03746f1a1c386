"""Database models for the course catalogue.

Cassandra table definitions for:
- Courses: main course table
- Courses by teacher: listing lookup
- Course content: content items partitioned by course

A content item belongs to exactly one course, so ``course_content`` is keyed
by ``(course_id, content_id)`` and a whole course's content is one partition.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from coursetrack.core.timeutils import ensure_utc_aware, utcnow


class ContentType(str, Enum):
    """Content item type."""

    VIDEO = "video"
    DOCUMENT = "document"
    QUIZ = "quiz"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    duration TEXT,
    teacher_id UUID,
    is_published BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

COURSES_BY_TEACHER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses_by_teacher (
    teacher_id UUID,
    created_at TIMESTAMP,
    course_id UUID,
    PRIMARY KEY (teacher_id, created_at, course_id)
) WITH CLUSTERING ORDER BY (created_at DESC, course_id ASC)
"""

COURSE_CONTENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_content (
    course_id UUID,
    content_id UUID,
    title TEXT,
    description TEXT,
    content_type TEXT,
    video_url TEXT,
    video_public_id TEXT,
    video_duration INT,
    document_url TEXT,
    duration INT,
    order_index INT,
    is_published BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY (course_id, content_id)
)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    COURSES_BY_TEACHER_TABLE_CQL,
    COURSE_CONTENT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course entity owned by a single teacher.

    Attributes:
        id: Unique identifier
        title: Course title
        description: Course description
        duration: Free-text duration ("6 weeks")
        teacher_id: Owning teacher
        is_published: Whether the course appears in the public catalogue
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: UUID | None = None,
        title: str = "",
        description: str = "",
        duration: str | None = None,
        teacher_id: UUID | None = None,
        is_published: bool = False,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.description = description.strip()
        self.duration = duration
        self.teacher_id = teacher_id
        self.is_published = is_published
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title or "",
            description=row.description or "",
            duration=row.duration,
            teacher_id=row.teacher_id,
            is_published=bool(row.is_published),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "duration": self.duration,
            "teacher_id": self.teacher_id,
            "is_published": self.is_published,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        state = "published" if self.is_published else "draft"
        return f"<Course {self.title} ({state})>"


class ContentItem:
    """A video, document or quiz inside a course.

    Videos reference externally hosted media (``video_url`` plus the
    provider's ``video_public_id``); ``video_duration`` is in seconds.
    """

    def __init__(
        self,
        course_id: UUID,
        content_id: UUID | None = None,
        title: str = "",
        description: str | None = None,
        content_type: str = ContentType.VIDEO.value,
        video_url: str | None = None,
        video_public_id: str | None = None,
        video_duration: int | None = None,
        document_url: str | None = None,
        duration: int | None = None,
        order_index: int = 0,
        is_published: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.content_id = content_id or uuid4()
        self.title = title.strip()
        self.description = description
        self.content_type = content_type
        self.video_url = video_url
        self.video_public_id = video_public_id
        self.video_duration = video_duration
        self.document_url = document_url
        self.duration = duration
        self.order_index = order_index
        self.is_published = is_published
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def is_video(self) -> bool:
        return self.content_type == ContentType.VIDEO.value

    @property
    def sort_key(self) -> tuple[int, datetime]:
        """Display order: ordering index, then creation time."""
        return (self.order_index, self.created_at)

    @classmethod
    def from_row(cls, row: Any) -> "ContentItem":
        """Create ContentItem instance from Cassandra row."""
        return cls(
            course_id=row.course_id,
            content_id=row.content_id,
            title=row.title or "",
            description=row.description,
            content_type=row.content_type or ContentType.VIDEO.value,
            video_url=row.video_url,
            video_public_id=row.video_public_id,
            video_duration=row.video_duration,
            document_url=row.document_url,
            duration=row.duration,
            order_index=row.order_index or 0,
            is_published=bool(row.is_published),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "content_id": self.content_id,
            "title": self.title,
            "description": self.description,
            "content_type": self.content_type,
            "video_url": self.video_url,
            "video_public_id": self.video_public_id,
            "video_duration": self.video_duration,
            "document_url": self.document_url,
            "duration": self.duration,
            "order_index": self.order_index,
            "is_published": self.is_published,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<ContentItem {self.title} ({self.content_type})>"
