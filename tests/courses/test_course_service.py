"""Tests for CourseService and ContentService."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import Mock
from uuid import uuid4

import pytest
from conftest import executed, result, row

from coursetrack.core.timeutils import utcnow
from coursetrack.courses.models import ContentItem, ContentType, Course
from coursetrack.courses.schemas import (
    CreateContentRequest,
    CreateCourseRequest,
    UpdateContentRequest,
    UpdateCourseRequest,
)
from coursetrack.courses.service import (
    ContentNotFoundError,
    ContentService,
    CourseNotFoundError,
    CourseService,
    InvalidContentError,
)


@pytest.fixture
def course_service(session: Mock) -> CourseService:
    return CourseService(session=session, keyspace="test_keyspace")


@pytest.fixture
def content_service(session: Mock) -> ContentService:
    return ContentService(session=session, keyspace="test_keyspace")


@pytest.fixture
def course(teacher_id) -> Course:
    return Course(
        title="Intro to CQL",
        description="Tables and partitions",
        teacher_id=teacher_id,
        is_published=True,
    )


def content_item(course_id, **kwargs) -> ContentItem:
    kwargs.setdefault("title", "Lesson")
    kwargs.setdefault("content_type", ContentType.DOCUMENT.value)
    return ContentItem(course_id=course_id, **kwargs)


# ==============================================================================
# Courses
# ==============================================================================


class TestCreateCourse:
    @pytest.mark.asyncio
    async def test_writes_course_and_teacher_lookup(
        self, course_service: CourseService, session: Mock, teacher_id
    ) -> None:
        data = CreateCourseRequest(title=" Intro ", description="Basics")

        course = await course_service.create_course(data, teacher_id)

        assert course.title == "Intro"
        assert course.teacher_id == teacher_id
        assert course.is_published is False
        assert executed(session, "INSERT INTO test_keyspace.courses_by_teacher") == [
            [teacher_id, course.created_at, course.id]
        ]

    def test_blank_title_rejected(self) -> None:
        with pytest.raises(ValueError, match="Title is required"):
            CreateCourseRequest(title="   ", description="Basics")


class TestReadCourses:
    @pytest.mark.asyncio
    async def test_require_course_missing(
        self, course_service: CourseService
    ) -> None:
        with pytest.raises(CourseNotFoundError):
            await course_service.require_course(uuid4())

    @pytest.mark.asyncio
    async def test_published_catalogue_newest_first(
        self, course_service: CourseService, session: Mock, teacher_id
    ) -> None:
        now = utcnow()
        old = Course(title="Old", teacher_id=teacher_id, is_published=True,
                     created_at=now - timedelta(days=2))
        new = Course(title="New", teacher_id=teacher_id, is_published=True,
                     created_at=now)
        draft = Course(title="Draft", teacher_id=teacher_id, is_published=False,
                       created_at=now)
        session.aexecute.return_value = result([row(old), row(draft), row(new)])

        courses = await course_service.list_published_courses(limit=10)

        assert [c.title for c in courses] == ["New", "Old"]

    @pytest.mark.asyncio
    async def test_published_catalogue_limit(
        self, course_service: CourseService, session: Mock, teacher_id
    ) -> None:
        rows = [
            row(Course(title=f"C{i}", teacher_id=teacher_id, is_published=True))
            for i in range(5)
        ]
        session.aexecute.return_value = result(rows)

        assert len(await course_service.list_published_courses(limit=2)) == 2

    @pytest.mark.asyncio
    async def test_teacher_courses_skip_dangling_lookups(
        self, course_service: CourseService, session: Mock, course: Course
    ) -> None:
        lookups = [SimpleNamespace(course_id=course.id),
                   SimpleNamespace(course_id=uuid4())]
        session.aexecute.side_effect = [
            result(lookups),
            result([row(course)]),
            result([]),
        ]

        courses = await course_service.list_teacher_courses(course.teacher_id)

        assert [c.id for c in courses] == [course.id]


class TestUpdateCourse:
    @pytest.mark.asyncio
    async def test_partial_update(
        self, course_service: CourseService, session: Mock, course: Course
    ) -> None:
        session.aexecute.return_value = result([row(course)])

        updated = await course_service.update_course(
            course.id, UpdateCourseRequest(is_published=False)
        )

        assert updated.is_published is False
        assert updated.title == "Intro to CQL"
        assert updated.updated_at is not None


class TestDeleteCourse:
    @pytest.mark.asyncio
    async def test_cascades_to_enrollments_and_progress(
        self, course_service: CourseService, session: Mock, course: Course
    ) -> None:
        students = [uuid4(), uuid4()]
        session.aexecute.side_effect = [
            result([row(course)]),
            result([SimpleNamespace(student_id=s) for s in students]),
        ] + [result([])] * 8

        await course_service.delete_course(course.id)

        assert executed(session, "DELETE FROM test_keyspace.student_progress") == [
            [s, course.id] for s in students
        ]
        assert executed(
            session, "DELETE FROM test_keyspace.enrollments_by_student"
        ) == [[s, course.id] for s in students]
        assert executed(session, "DELETE FROM test_keyspace.enrollments WHERE") == [
            [course.id]
        ]
        assert executed(session, "DELETE FROM test_keyspace.course_content") == [
            [course.id]
        ]
        assert executed(session, "DELETE FROM test_keyspace.courses_by_teacher") == [
            [course.teacher_id, course.created_at, course.id]
        ]
        assert executed(session, "DELETE FROM test_keyspace.courses WHERE") == [
            [course.id]
        ]

    @pytest.mark.asyncio
    async def test_missing_course(self, course_service: CourseService) -> None:
        with pytest.raises(CourseNotFoundError):
            await course_service.delete_course(uuid4())


# ==============================================================================
# Content
# ==============================================================================


class TestAddContent:
    @pytest.mark.asyncio
    async def test_video_requires_url(self, content_service: ContentService) -> None:
        data = CreateContentRequest(title="Clip", content_type=ContentType.VIDEO)

        with pytest.raises(InvalidContentError, match="Video URL"):
            await content_service.add_content(uuid4(), data)

    @pytest.mark.asyncio
    async def test_document_without_url(
        self, content_service: ContentService, session: Mock
    ) -> None:
        course_id = uuid4()
        data = CreateContentRequest(
            title="Notes", content_type=ContentType.DOCUMENT, order_index=2
        )

        item = await content_service.add_content(course_id, data)

        assert item.course_id == course_id
        assert item.content_type == "document"
        assert item.is_published is True
        assert len(executed(session, "INSERT INTO test_keyspace.course_content")) == 1


class TestListContent:
    @pytest.mark.asyncio
    async def test_ordered_by_index_then_creation(
        self, content_service: ContentService, session: Mock
    ) -> None:
        course_id = uuid4()
        now = utcnow()
        second = content_item(course_id, title="B", order_index=1, created_at=now)
        first = content_item(course_id, title="A", order_index=1,
                             created_at=now - timedelta(minutes=1))
        zeroth = content_item(course_id, title="Z", order_index=0, created_at=now)
        session.aexecute.return_value = result([row(second), row(first), row(zeroth)])

        items = await content_service.list_content(course_id)

        assert [i.title for i in items] == ["Z", "A", "B"]

    @pytest.mark.asyncio
    async def test_published_only(
        self, content_service: ContentService, session: Mock
    ) -> None:
        course_id = uuid4()
        session.aexecute.return_value = result(
            [
                row(content_item(course_id, title="Live")),
                row(content_item(course_id, title="Hidden", is_published=False)),
            ]
        )

        items = await content_service.list_content(course_id, published_only=True)

        assert [i.title for i in items] == ["Live"]


class TestUpdateContent:
    @pytest.mark.asyncio
    async def test_empty_update_rejected_before_lookup(
        self, content_service: ContentService, session: Mock
    ) -> None:
        with pytest.raises(InvalidContentError, match="No valid fields"):
            await content_service.update_content(
                uuid4(), uuid4(), UpdateContentRequest()
            )
        session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_item(self, content_service: ContentService) -> None:
        with pytest.raises(ContentNotFoundError):
            await content_service.update_content(
                uuid4(), uuid4(), UpdateContentRequest(title="New")
            )

    @pytest.mark.asyncio
    async def test_applies_set_fields(
        self, content_service: ContentService, session: Mock
    ) -> None:
        item = content_item(uuid4(), title="Old", order_index=3)
        session.aexecute.return_value = result([row(item)])

        updated = await content_service.update_content(
            item.course_id, item.content_id, UpdateContentRequest(is_published=False)
        )

        assert updated.is_published is False
        assert updated.title == "Old"
        assert updated.order_index == 3


class TestDeleteContent:
    @pytest.mark.asyncio
    async def test_removes_progress_of_every_enrolled_student(
        self, content_service: ContentService, session: Mock
    ) -> None:
        item = content_item(uuid4())
        students = [uuid4(), uuid4(), uuid4()]
        session.aexecute.side_effect = [
            result([row(item)]),
            result([SimpleNamespace(student_id=s) for s in students]),
        ] + [result([])] * 4

        await content_service.delete_content(item.course_id, item.content_id)

        assert executed(session, "DELETE FROM test_keyspace.student_progress") == [
            [s, item.course_id, item.content_id] for s in students
        ]
        assert executed(session, "DELETE FROM test_keyspace.course_content") == [
            [item.course_id, item.content_id]
        ]

    @pytest.mark.asyncio
    async def test_missing_item(self, content_service: ContentService) -> None:
        with pytest.raises(ContentNotFoundError):
            await content_service.delete_content(uuid4(), uuid4())


@pytest.mark.asyncio
async def test_content_stats(content_service: ContentService, session: Mock) -> None:
    course_id = uuid4()
    session.aexecute.return_value = result(
        [
            row(content_item(course_id, content_type="video", video_url="u",
                             video_duration=120)),
            row(content_item(course_id, content_type="video", video_url="u",
                             video_duration=None)),
            row(content_item(course_id, content_type="document")),
            row(content_item(course_id, content_type="quiz")),
            row(content_item(course_id, content_type="video", video_url="u",
                             video_duration=600, is_published=False)),
        ]
    )

    stats = await content_service.get_content_stats(course_id)

    assert stats.total_content == 4
    assert stats.video_count == 2
    assert stats.document_count == 1
    assert stats.quiz_count == 1
    assert stats.total_video_duration == 120
