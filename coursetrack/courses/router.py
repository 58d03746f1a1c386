"""Course catalogue API endpoints.

Provides routes for:
- Courses: CRUD, catalogue and roster
- Content items: CRUD and statistics
"""

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Query, status

from coursetrack.auth.dependencies import CurrentUser, OptionalUser, TeacherUser
from coursetrack.auth.schemas import AuthenticatedCaller
from coursetrack.config.settings import get_settings
from coursetrack.core.database import StorageError
from coursetrack.progress.dependencies import EnrollmentServiceDep
from coursetrack.progress.service import EnrollmentService

from .dependencies import (
    ContentServiceDep,
    CourseServiceDep,
    OwnedCourse,
    handle_course_error,
)
from .models import ContentItem, Course
from .schemas import (
    ContentResponse,
    ContentStatsResponse,
    CourseDetailResponse,
    CourseListResponse,
    CourseResponse,
    CreateContentRequest,
    CreateCourseRequest,
    RosterEntry,
    RosterResponse,
    UpdateContentRequest,
    UpdateCourseRequest,
)
from .service import CourseError


logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/courses", tags=["courses"])

Limit = Annotated[int | None, Query(ge=1, le=200)]


def to_course_response(course: Course, student_count: int = 0) -> CourseResponse:
    return CourseResponse(**course.to_dict(), student_count=student_count)


def to_content_response(item: ContentItem) -> ContentResponse:
    return ContentResponse(**item.to_dict())


async def _enrolled_or_false(
    enrollment_service: EnrollmentService,
    caller: AuthenticatedCaller | None,
    course_id: UUID,
) -> bool:
    """Enrollment flag for display; a storage failure shows as not enrolled."""
    if caller is None or not caller.is_student:
        return False
    try:
        return await enrollment_service.is_enrolled(caller.id, course_id)
    except StorageError as e:
        logger.warning(
            "enrollment_lookup_degraded",
            course_id=str(course_id),
            operation=e.operation,
        )
        return False


# ==============================================================================
# Courses
# ==============================================================================


@router.post(
    "",
    response_model=CourseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create course",
)
async def create_course(
    data: CreateCourseRequest,
    course_service: CourseServiceDep,
    caller: TeacherUser,
) -> CourseResponse:
    """Create a course owned by the calling teacher."""
    course = await course_service.create_course(data, caller.id)
    return to_course_response(course)


@router.get(
    "",
    response_model=CourseListResponse,
    summary="List published courses",
)
async def list_published_courses(
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
    limit: Limit = None,
) -> CourseListResponse:
    """Public catalogue with the number of enrolled students per course."""
    courses = await course_service.list_published_courses(
        limit or get_settings().course_list_default_limit
    )
    items = [
        to_course_response(c, await enrollment_service.count_enrollments(c.id))
        for c in courses
    ]
    return CourseListResponse(items=items, total=len(items))


@router.get(
    "/my",
    response_model=CourseListResponse,
    summary="List my courses",
)
async def list_my_courses(
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
    caller: TeacherUser,
    limit: Limit = None,
) -> CourseListResponse:
    courses = await course_service.list_teacher_courses(
        caller.id, limit or get_settings().course_list_default_limit
    )
    items = [
        to_course_response(c, await enrollment_service.count_enrollments(c.id))
        for c in courses
    ]
    return CourseListResponse(items=items, total=len(items))


@router.get(
    "/{course_id}",
    response_model=CourseDetailResponse,
    summary="Course details",
)
async def get_course_detail(
    course_id: UUID,
    course_service: CourseServiceDep,
    content_service: ContentServiceDep,
    enrollment_service: EnrollmentServiceDep,
    caller: OptionalUser,
) -> CourseDetailResponse:
    """Course with its content.

    Drafts are visible to their owner only. The owner sees unpublished
    content items too.
    """
    course = await course_service.get_course(course_id)
    is_owner = course is not None and caller is not None and course_service.is_owner(
        course, caller
    )
    if course is None or (not course.is_published and not is_owner):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Course not found"
        )

    content = await content_service.list_content(course_id, published_only=not is_owner)
    return CourseDetailResponse(
        course=to_course_response(
            course, await enrollment_service.count_enrollments(course_id)
        ),
        content=[to_content_response(item) for item in content],
        is_enrolled=await _enrolled_or_false(enrollment_service, caller, course_id),
    )


@router.patch(
    "/{course_id}",
    response_model=CourseResponse,
    summary="Update course",
)
async def update_course(
    data: UpdateCourseRequest,
    course: OwnedCourse,
    course_service: CourseServiceDep,
) -> CourseResponse:
    try:
        updated = await course_service.update_course(course.id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return to_course_response(updated)


@router.delete(
    "/{course_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete course",
)
async def delete_course(
    course: OwnedCourse,
    course_service: CourseServiceDep,
) -> None:
    """Delete the course with its content, enrollments and progress."""
    try:
        await course_service.delete_course(course.id)
    except CourseError as e:
        raise handle_course_error(e) from e


@router.get(
    "/{course_id}/enrollments",
    response_model=RosterResponse,
    summary="Enrolled students",
)
async def list_course_enrollments(
    course: OwnedCourse,
    enrollment_service: EnrollmentServiceDep,
) -> RosterResponse:
    roster = await enrollment_service.list_course_enrollments(course.id)
    items = [
        RosterEntry(
            student_id=enrollment.student_id,
            name=user.name if user else None,
            email=user.email if user else None,
            enrolled_at=enrollment.enrolled_at,
        )
        for enrollment, user in roster
    ]
    return RosterResponse(items=items, total=len(items))


# ==============================================================================
# Content
# ==============================================================================


@router.post(
    "/{course_id}/content",
    response_model=ContentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add content",
)
async def add_content(
    data: CreateContentRequest,
    course: OwnedCourse,
    content_service: ContentServiceDep,
) -> ContentResponse:
    try:
        item = await content_service.add_content(course.id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return to_content_response(item)


@router.get(
    "/{course_id}/content",
    response_model=list[ContentResponse],
    summary="List course content",
)
async def list_content(
    course_id: UUID,
    course_service: CourseServiceDep,
    content_service: ContentServiceDep,
    enrollment_service: EnrollmentServiceDep,
    caller: CurrentUser,
) -> list[ContentResponse]:
    """Owner sees every item, enrolled students the published ones."""
    course = await course_service.get_course(course_id)
    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Course not found"
        )

    if course_service.is_owner(course, caller):
        items = await content_service.list_content(course_id)
    elif caller.is_student and await enrollment_service.is_enrolled(
        caller.id, course_id
    ):
        items = await content_service.list_content(course_id, published_only=True)
    else:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Enroll in this course to access its content",
        )
    return [to_content_response(item) for item in items]


@router.get(
    "/{course_id}/content/stats",
    response_model=ContentStatsResponse,
    summary="Content statistics",
)
async def get_content_stats(
    course: OwnedCourse,
    content_service: ContentServiceDep,
) -> ContentStatsResponse:
    return await content_service.get_content_stats(course.id)


@router.patch(
    "/{course_id}/content/{content_id}",
    response_model=ContentResponse,
    summary="Update content",
)
async def update_content(
    content_id: UUID,
    data: UpdateContentRequest,
    course: OwnedCourse,
    content_service: ContentServiceDep,
) -> ContentResponse:
    try:
        item = await content_service.update_content(course.id, content_id, data)
    except CourseError as e:
        raise handle_course_error(e) from e
    return to_content_response(item)


@router.delete(
    "/{course_id}/content/{content_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete content",
)
async def delete_content(
    content_id: UUID,
    course: OwnedCourse,
    content_service: ContentServiceDep,
) -> None:
    """Delete a content item and all progress recorded on it."""
    try:
        await content_service.delete_content(course.id, content_id)
    except CourseError as e:
        raise handle_course_error(e) from e
