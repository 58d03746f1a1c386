"""FastAPI dependencies for assignments."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from coursetrack.courses.models import Course
from coursetrack.progress.dependencies import require_course_participant

from .service import AssignmentError, AssignmentService


_assignment_service_getter: Callable[[], AssignmentService] | None = None


def set_assignment_service_getter(getter: Callable[[], AssignmentService]) -> None:
    global _assignment_service_getter  # noqa: PLW0603 - Required for DI pattern
    _assignment_service_getter = getter


def get_assignment_service() -> AssignmentService:
    if _assignment_service_getter is None:
        raise RuntimeError("AssignmentService not configured")
    return _assignment_service_getter()


AssignmentServiceDep = Annotated[AssignmentService, Depends(get_assignment_service)]

AssignmentCourse = Annotated[
    Course,
    Depends(
        require_course_participant("Enroll in this course to access its assignments")
    ),
]


def handle_assignment_error(error: AssignmentError) -> HTTPException:
    """Convert assignment errors to HTTPException."""
    status_map = {
        "assignment_not_found": status.HTTP_404_NOT_FOUND,
        "submission_not_found": status.HTTP_404_NOT_FOUND,
        "assignment_forbidden": status.HTTP_403_FORBIDDEN,
        "already_submitted": status.HTTP_409_CONFLICT,
        "invalid_grade": status.HTTP_400_BAD_REQUEST,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
