"""Pydantic schemas for forum posts and replies."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .models import PostType


def _strip_min(value: str, field: str, min_length: int) -> str:
    value = value.strip()
    if len(value) < min_length:
        msg = f"{field} must be at least {min_length} characters long"
        raise ValueError(msg)
    return value


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreatePostRequest(BaseModel):
    """Forum post creation request."""

    title: str = Field(..., max_length=200)
    content: str = Field(..., max_length=10000)
    post_type: PostType = PostType.DISCUSSION

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _strip_min(v, "Title", 5)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _strip_min(v, "Content", 10)


class CreateReplyRequest(BaseModel):
    content: str = Field(..., max_length=10000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        return _strip_min(v, "Content", 5)


# ==============================================================================
# Response Schemas
# ==============================================================================


class ReplyResponse(BaseModel):
    """Reply with its author's display name and role."""

    id: UUID
    post_id: UUID
    user_id: UUID
    content: str
    created_at: datetime
    author_name: str | None = None
    author_role: str | None = None


class PostResponse(BaseModel):
    """Post with author details and its number of replies."""

    id: UUID
    course_id: UUID
    user_id: UUID
    title: str
    content: str
    post_type: PostType
    created_at: datetime
    author_name: str | None = None
    author_role: str | None = None
    reply_count: int = 0


class PostDetailResponse(PostResponse):
    """Post with its replies, oldest first."""

    replies: list[ReplyResponse] = Field(default_factory=list)


class PostListResponse(BaseModel):
    """One page of a course's posts, newest first."""

    items: list[PostResponse]
    page: int
    limit: int
    has_more: bool
