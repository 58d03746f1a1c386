"""Course forum API endpoints.

Provides routes for:
- Posts: create and list per course, open a thread
- Replies: answer a post
"""

from fastapi import APIRouter, Query, status

from coursetrack.auth.dependencies import CurrentUser

from .dependencies import AccessiblePost, ForumCourse, ForumServiceDep
from .schemas import (
    CreatePostRequest,
    CreateReplyRequest,
    PostDetailResponse,
    PostListResponse,
    PostResponse,
    ReplyResponse,
)
from .service import to_post_response, to_reply_response


router = APIRouter(prefix="/v1/forum", tags=["forum"])


@router.post(
    "/courses/{course_id}/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create forum post",
)
async def create_post(
    data: CreatePostRequest,
    course: ForumCourse,
    caller: CurrentUser,
    forum_service: ForumServiceDep,
) -> PostResponse:
    """Open a thread. A student's post notifies the course teacher."""
    post = await forum_service.create_post(course, caller, data)
    return to_post_response(post)


@router.get(
    "/courses/{course_id}/posts",
    response_model=PostListResponse,
    summary="List forum posts",
)
async def list_posts(
    course: ForumCourse,
    forum_service: ForumServiceDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> PostListResponse:
    items, has_more = await forum_service.list_posts(course.id, page, limit)
    return PostListResponse(items=items, page=page, limit=limit, has_more=has_more)


@router.get(
    "/posts/{post_id}",
    response_model=PostDetailResponse,
    summary="Forum thread",
)
async def get_post(
    post: AccessiblePost,
    forum_service: ForumServiceDep,
) -> PostDetailResponse:
    return await forum_service.get_post_detail(post)


@router.post(
    "/posts/{post_id}/replies",
    response_model=ReplyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply to a post",
)
async def create_reply(
    data: CreateReplyRequest,
    post: AccessiblePost,
    caller: CurrentUser,
    forum_service: ForumServiceDep,
) -> ReplyResponse:
    reply = await forum_service.create_reply(post, caller, data)
    return to_reply_response(reply)
