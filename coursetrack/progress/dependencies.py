"""FastAPI dependencies for enrollments and progress tracking.

Provides dependency injection for:
- Enrollment, progress and course progress services
- The enrollment gate in front of progress endpoints
- Course participation (owner or enrolled student) for course features
- Error handlers
"""

from collections.abc import Callable
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status

from coursetrack.auth.dependencies import CurrentUser, StudentUser
from coursetrack.auth.schemas import AuthenticatedCaller
from coursetrack.courses.dependencies import CourseServiceDep
from coursetrack.courses.models import Course
from coursetrack.courses.service import CourseService

from .service import (
    CourseProgressService,
    EnrollmentService,
    NotEnrolledError,
    ProgressError,
    ProgressService,
)


# ==============================================================================
# Service Getters (set by main.py)
# ==============================================================================

_enrollment_service_getter: Callable[[], EnrollmentService] | None = None
_progress_service_getter: Callable[[], ProgressService] | None = None
_course_progress_service_getter: Callable[[], CourseProgressService] | None = None


def set_enrollment_service_getter(getter: Callable[[], EnrollmentService]) -> None:
    global _enrollment_service_getter  # noqa: PLW0603 - Required for DI pattern
    _enrollment_service_getter = getter


def set_progress_service_getter(getter: Callable[[], ProgressService]) -> None:
    global _progress_service_getter  # noqa: PLW0603 - Required for DI pattern
    _progress_service_getter = getter


def set_course_progress_service_getter(
    getter: Callable[[], CourseProgressService],
) -> None:
    global _course_progress_service_getter  # noqa: PLW0603 - Required for DI pattern
    _course_progress_service_getter = getter


def get_enrollment_service() -> EnrollmentService:
    if _enrollment_service_getter is None:
        raise RuntimeError("EnrollmentService not configured")
    return _enrollment_service_getter()


def get_progress_service() -> ProgressService:
    if _progress_service_getter is None:
        raise RuntimeError("ProgressService not configured")
    return _progress_service_getter()


def get_course_progress_service() -> CourseProgressService:
    if _course_progress_service_getter is None:
        raise RuntimeError("CourseProgressService not configured")
    return _course_progress_service_getter()


EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]
ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]
CourseProgressServiceDep = Annotated[
    CourseProgressService, Depends(get_course_progress_service)
]


# ==============================================================================
# Enrollment Gate
# ==============================================================================


async def require_enrollment(
    course_id: UUID,
    caller: StudentUser,
    enrollment_service: EnrollmentServiceDep,
) -> AuthenticatedCaller:
    """Admit only students enrolled in ``course_id``.

    Raises:
        HTTPException(403): If the caller is not enrolled
    """
    if not await enrollment_service.is_enrolled(caller.id, course_id):
        raise handle_progress_error(NotEnrolledError())
    return caller


EnrolledStudent = Annotated[AuthenticatedCaller, Depends(require_enrollment)]


# ==============================================================================
# Course Participation
# ==============================================================================


async def ensure_course_participant(
    course: Course,
    caller: AuthenticatedCaller,
    course_service: CourseService,
    enrollment_service: EnrollmentService,
    detail: str,
) -> None:
    """Admit the course owner and students enrolled in the course.

    Raises:
        HTTPException(403): With ``detail`` for everyone else
    """
    if course_service.is_owner(course, caller):
        return
    if caller.is_student and await enrollment_service.is_enrolled(
        caller.id, course.id
    ):
        return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def require_course_participant(detail: str):
    """Dependency factory loading ``course_id`` for its owner or enrolled students.

    Usage:
        @router.get("/courses/{course_id}/posts")
        async def list_posts(
            course: Annotated[Course, Depends(require_course_participant("..."))],
        ):
            ...
    """

    async def participant_checker(
        course_id: UUID,
        caller: CurrentUser,
        course_service: CourseServiceDep,
        enrollment_service: EnrollmentServiceDep,
    ) -> Course:
        course = await course_service.get_course(course_id)
        if not course:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Course not found"
            )
        await ensure_course_participant(
            course, caller, course_service, enrollment_service, detail
        )
        return course

    return participant_checker


# ==============================================================================
# Error Handlers
# ==============================================================================


def handle_progress_error(error: ProgressError) -> HTTPException:
    """Convert progress errors to HTTP exceptions."""
    status_map = {
        "not_enrolled": status.HTTP_403_FORBIDDEN,
        "already_enrolled": status.HTTP_409_CONFLICT,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
