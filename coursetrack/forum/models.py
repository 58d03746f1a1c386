"""Database models for the course forum.

Cassandra table definitions for:
- Forum posts: one partition per course, newest first
- Forum posts by id: lookup from a post id to its course partition
- Forum replies: one partition per post, oldest first

Only course participants (the owner and enrolled students) read or write
the forum; that rule lives in the API dependencies, not in storage.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from coursetrack.core.timeutils import ensure_utc_aware, utcnow


class PostType(str, Enum):
    """Forum post category."""

    DISCUSSION = "discussion"
    QUESTION = "question"
    ANNOUNCEMENT = "announcement"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

FORUM_POSTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.forum_posts (
    course_id UUID,
    created_at TIMESTAMP,
    post_id UUID,
    user_id UUID,
    title TEXT,
    content TEXT,
    post_type TEXT,
    PRIMARY KEY ((course_id), created_at, post_id)
) WITH CLUSTERING ORDER BY (created_at DESC, post_id ASC)
"""

# Post id -> clustering key of the post in forum_posts
FORUM_POSTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.forum_posts_by_id (
    post_id UUID PRIMARY KEY,
    course_id UUID,
    created_at TIMESTAMP
)
"""

FORUM_REPLIES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.forum_replies (
    post_id UUID,
    created_at TIMESTAMP,
    reply_id UUID,
    user_id UUID,
    content TEXT,
    PRIMARY KEY ((post_id), created_at, reply_id)
) WITH CLUSTERING ORDER BY (created_at ASC, reply_id ASC)
"""

FORUM_TABLES_CQL = [
    FORUM_POSTS_TABLE_CQL,
    FORUM_POSTS_BY_ID_TABLE_CQL,
    FORUM_REPLIES_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class ForumPost:
    """A post opening a thread in a course forum."""

    def __init__(
        self,
        course_id: UUID,
        user_id: UUID,
        post_id: UUID | None = None,
        title: str = "",
        content: str = "",
        post_type: str = PostType.DISCUSSION.value,
        created_at: datetime | None = None,
    ):
        self.course_id = course_id
        self.user_id = user_id
        self.post_id = post_id or uuid4()
        self.title = title.strip()
        self.content = content.strip()
        self.post_type = post_type
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "ForumPost":
        return cls(
            course_id=row.course_id,
            user_id=row.user_id,
            post_id=row.post_id,
            title=row.title or "",
            content=row.content or "",
            post_type=row.post_type or PostType.DISCUSSION.value,
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "course_id": self.course_id,
            "user_id": self.user_id,
            "post_id": self.post_id,
            "title": self.title,
            "content": self.content,
            "post_type": self.post_type,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<ForumPost {self.title} ({self.post_type})>"


class ForumReply:
    """A reply inside a post's thread."""

    def __init__(
        self,
        post_id: UUID,
        user_id: UUID,
        reply_id: UUID | None = None,
        content: str = "",
        created_at: datetime | None = None,
    ):
        self.post_id = post_id
        self.user_id = user_id
        self.reply_id = reply_id or uuid4()
        self.content = content.strip()
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "ForumReply":
        return cls(
            post_id=row.post_id,
            user_id=row.user_id,
            reply_id=row.reply_id,
            content=row.content or "",
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "post_id": self.post_id,
            "user_id": self.user_id,
            "reply_id": self.reply_id,
            "content": self.content,
            "created_at": self.created_at,
        }
