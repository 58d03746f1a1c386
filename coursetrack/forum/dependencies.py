"""FastAPI dependencies for the course forum.

Provides dependency injection for:
- ForumService instances
- Course and post access for course participants
"""

from collections.abc import Callable
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status

from coursetrack.auth.dependencies import CurrentUser
from coursetrack.courses.dependencies import CourseServiceDep
from coursetrack.courses.models import Course
from coursetrack.progress.dependencies import (
    EnrollmentServiceDep,
    ensure_course_participant,
    require_course_participant,
)

from .models import ForumPost
from .service import ForumService


FORUM_ACCESS_DETAIL = (
    "You must be enrolled in this course to participate in discussions"
)


# ==============================================================================
# Service Getter (set by main.py)
# ==============================================================================

_forum_service_getter: Callable[[], ForumService] | None = None


def set_forum_service_getter(getter: Callable[[], ForumService]) -> None:
    global _forum_service_getter  # noqa: PLW0603 - Required for DI pattern
    _forum_service_getter = getter


def get_forum_service() -> ForumService:
    if _forum_service_getter is None:
        raise RuntimeError("ForumService not configured")
    return _forum_service_getter()


ForumServiceDep = Annotated[ForumService, Depends(get_forum_service)]


# ==============================================================================
# Access
# ==============================================================================

ForumCourse = Annotated[
    Course, Depends(require_course_participant(FORUM_ACCESS_DETAIL))
]


async def get_accessible_post(
    post_id: UUID,
    caller: CurrentUser,
    forum_service: ForumServiceDep,
    course_service: CourseServiceDep,
    enrollment_service: EnrollmentServiceDep,
) -> ForumPost:
    """Load a post whose course the caller participates in.

    Raises:
        HTTPException(404): If the post or its course does not exist
        HTTPException(403): If the caller is not a course participant
    """
    post = await forum_service.get_post(post_id)
    course = await course_service.get_course(post.course_id) if post else None
    if not post or not course:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Post not found"
        )
    await ensure_course_participant(
        course, caller, course_service, enrollment_service, FORUM_ACCESS_DETAIL
    )
    return post


AccessiblePost = Annotated[ForumPost, Depends(get_accessible_post)]
