"""Enrollment and progress API endpoints.

Provides routes for:
- Enrolling in a course and checking enrollment
- Progress updates per content item
- Course and cross-course progress queries
"""

from uuid import UUID

from fastapi import APIRouter, status

from coursetrack.auth.dependencies import StudentUser
from coursetrack.courses.dependencies import ContentServiceDep, handle_course_error
from coursetrack.courses.service import ContentNotFoundError, CourseError

from .dependencies import (
    CourseProgressServiceDep,
    EnrolledStudent,
    EnrollmentServiceDep,
    ProgressServiceDep,
    handle_progress_error,
)
from .schemas import (
    ContentProgressListResponse,
    CourseProgressResponse,
    EnrollmentResponse,
    EnrollmentStatusResponse,
    EnrollRequest,
    ProgressRecordResponse,
    ProgressUpdateRequest,
    ProgressUpdateResponse,
    StudentEnrollmentListResponse,
    StudentOverallProgressResponse,
)
from .service import ProgressError


router = APIRouter(prefix="/v1/progress", tags=["progress"])
enrollments_router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])


# ==============================================================================
# Enrollment Endpoints
# ==============================================================================


@enrollments_router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in course",
)
async def enroll(
    data: EnrollRequest,
    enrollment_service: EnrollmentServiceDep,
    caller: StudentUser,
) -> EnrollmentResponse:
    """Enroll the calling student. A second enrollment is rejected with 409."""
    try:
        enrollment = await enrollment_service.enroll(caller.id, data.course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
    except ProgressError as e:
        raise handle_progress_error(e) from e
    return EnrollmentResponse.from_entity(enrollment)


@enrollments_router.get(
    "/my",
    response_model=StudentEnrollmentListResponse,
    summary="My enrollments",
)
async def my_enrollments(
    course_progress_service: CourseProgressServiceDep,
    caller: StudentUser,
) -> StudentEnrollmentListResponse:
    items = await course_progress_service.get_student_enrollments(caller.id)
    return StudentEnrollmentListResponse(items=items, total=len(items))


@enrollments_router.get(
    "/{course_id}/status",
    response_model=EnrollmentStatusResponse,
    summary="Enrollment status",
)
async def enrollment_status(
    course_id: UUID,
    enrollment_service: EnrollmentServiceDep,
    caller: StudentUser,
) -> EnrollmentStatusResponse:
    return EnrollmentStatusResponse(
        course_id=course_id,
        is_enrolled=await enrollment_service.is_enrolled(caller.id, course_id),
    )


# ==============================================================================
# Progress Endpoints
# ==============================================================================


@router.put(
    "/courses/{course_id}/content/{content_id}",
    response_model=ProgressUpdateResponse,
    summary="Update content progress",
)
async def update_progress(
    course_id: UUID,
    content_id: UUID,
    data: ProgressUpdateRequest,
    progress_service: ProgressServiceDep,
    course_progress_service: CourseProgressServiceDep,
    content_service: ContentServiceDep,
    caller: EnrolledStudent,
) -> ProgressUpdateResponse:
    """Record progress on a content item.

    Returns the stored record and the recomputed course progress.
    """
    item = await content_service.get_content(course_id, content_id)
    if not item or not item.is_published:
        raise handle_course_error(ContentNotFoundError())

    record = await progress_service.update_progress(
        caller.id, course_id, content_id, data
    )
    course_progress = await course_progress_service.get_course_progress(
        caller.id, course_id
    )
    return ProgressUpdateResponse(
        progress=ProgressRecordResponse.from_entity(record),
        course_progress=course_progress,
    )


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Course progress",
)
async def get_course_progress(
    course_id: UUID,
    course_progress_service: CourseProgressServiceDep,
    caller: EnrolledStudent,
) -> CourseProgressResponse:
    return await course_progress_service.get_course_progress(caller.id, course_id)


@router.get(
    "/courses/{course_id}/content",
    response_model=ContentProgressListResponse,
    summary="Progress per content item",
)
async def list_content_progress(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    caller: EnrolledStudent,
) -> ContentProgressListResponse:
    items = await progress_service.list_progress(caller.id, course_id)
    return ContentProgressListResponse(course_id=course_id, items=items)


@router.get(
    "/my",
    response_model=StudentOverallProgressResponse,
    summary="Progress across my courses",
)
async def my_progress(
    course_progress_service: CourseProgressServiceDep,
    caller: StudentUser,
) -> StudentOverallProgressResponse:
    items = await course_progress_service.get_student_overall_progress(caller.id)
    return StudentOverallProgressResponse(items=items, total=len(items))
