"""FastAPI dependencies for the course catalogue.

Provides dependency injection for:
- Service instances
- Course ownership verification
"""

from collections.abc import Callable
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status

from coursetrack.auth.dependencies import TeacherUser
from coursetrack.courses.models import Course
from coursetrack.courses.service import ContentService, CourseError, CourseService


# ==============================================================================
# Service Getters (set by main.py)
# ==============================================================================

_course_service_getter: Callable[[], CourseService] | None = None
_content_service_getter: Callable[[], ContentService] | None = None


def set_course_service_getter(getter: Callable[[], CourseService]) -> None:
    global _course_service_getter  # noqa: PLW0603 - Required for DI pattern
    _course_service_getter = getter


def set_content_service_getter(getter: Callable[[], ContentService]) -> None:
    global _content_service_getter  # noqa: PLW0603 - Required for DI pattern
    _content_service_getter = getter


def get_course_service() -> CourseService:
    if _course_service_getter is None:
        raise RuntimeError("CourseService not configured")
    return _course_service_getter()


def get_content_service() -> ContentService:
    if _content_service_getter is None:
        raise RuntimeError("ContentService not configured")
    return _content_service_getter()


CourseServiceDep = Annotated[CourseService, Depends(get_course_service)]
ContentServiceDep = Annotated[ContentService, Depends(get_content_service)]


# ==============================================================================
# Ownership Verification
# ==============================================================================


async def verify_course_owner(
    course_id: UUID,
    course_service: CourseServiceDep,
    caller: TeacherUser,
) -> Course:
    """Load a course the calling teacher owns.

    Raises:
        HTTPException(404): If the course does not exist
        HTTPException(403): If another teacher owns it
    """
    course = await course_service.get_course(course_id)
    if not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Course not found",
        )
    if not course_service.is_owner(course, caller):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the course owner can perform this action",
        )
    return course


OwnedCourse = Annotated[Course, Depends(verify_course_owner)]


# ==============================================================================
# Error Handlers
# ==============================================================================


def handle_course_error(error: CourseError) -> HTTPException:
    """Convert course errors to HTTPException."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "content_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_content": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
