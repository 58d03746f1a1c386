"""Forum service layer.

Business logic for:
- Creating posts and replies in a course forum
- Paginated post listing with author details and reply counts
- Post threads with their replies
- Telling the course teacher about new student posts
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursetrack.auth.models import User
from coursetrack.auth.schemas import AuthenticatedCaller
from coursetrack.auth.service import UserService
from coursetrack.core.database import StorageError, execute
from coursetrack.courses.models import Course
from coursetrack.notifications.service import NotificationService

from .models import ForumPost, ForumReply
from .schemas import (
    CreatePostRequest,
    CreateReplyRequest,
    PostDetailResponse,
    PostResponse,
    ReplyResponse,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)

NEW_POST_TITLE = "New Forum Post"


class ForumService:
    """Service for course forum posts and replies."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        user_service: UserService,
        notification_service: NotificationService,
    ):
        self.session = session
        self.keyspace = keyspace
        self.user_service = user_service
        self.notification_service = notification_service
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.forum_posts
            (course_id, created_at, post_id, user_id, title, content, post_type)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_post_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.forum_posts_by_id
            (post_id, course_id, created_at)
            VALUES (?, ?, ?)
        """)
        self._get_post_key = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.forum_posts_by_id WHERE post_id = ?"
        )
        self._get_post = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.forum_posts
            WHERE course_id = ? AND created_at = ? AND post_id = ?
        """)
        self._get_course_posts = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.forum_posts WHERE course_id = ? LIMIT ?"
        )
        self._insert_reply = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.forum_replies
            (post_id, created_at, reply_id, user_id, content)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._get_replies = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.forum_replies WHERE post_id = ?"
        )
        self._count_replies = self.session.prepare(
            f"SELECT COUNT(*) AS reply_count FROM {self.keyspace}.forum_replies "
            "WHERE post_id = ?"
        )

    # ==========================================================================
    # Posts
    # ==========================================================================

    async def create_post(
        self,
        course: Course,
        author: AuthenticatedCaller,
        data: CreatePostRequest,
    ) -> ForumPost:
        """Store a post and notify the teacher when a student wrote it.

        The lookup row is written first: if the post row then fails, the
        dangling lookup resolves to "not found" instead of a post that is
        listed but cannot be opened.
        """
        post = ForumPost(
            course_id=course.id,
            user_id=author.id,
            title=data.title,
            content=data.content,
            post_type=data.post_type.value,
        )

        await execute(
            self.session,
            self._insert_post_by_id,
            [post.post_id, post.course_id, post.created_at],
            operation="insert_forum_post_by_id",
        )
        await execute(
            self.session,
            self._insert_post,
            [
                post.course_id,
                post.created_at,
                post.post_id,
                post.user_id,
                post.title,
                post.content,
                post.post_type,
            ],
            operation="insert_forum_post",
        )
        logger.info(
            "forum_post_created",
            post_id=str(post.post_id),
            course_id=str(course.id),
            post_type=post.post_type,
        )

        if course.teacher_id and course.teacher_id != author.id:
            await self._notify_teacher(course, post)
        return post

    async def _notify_teacher(self, course: Course, post: ForumPost) -> None:
        # The post is already stored; a failed notification must not fail it
        try:
            await self.notification_service.notify(
                user_id=course.teacher_id,
                title=NEW_POST_TITLE,
                message=f'A student posted in your course: "{post.title}"',
                related_entity="forum",
                related_entity_id=post.post_id,
            )
        except StorageError as e:
            logger.warning(
                "forum_post_notification_failed",
                post_id=str(post.post_id),
                teacher_id=str(course.teacher_id),
                operation=e.operation,
            )

    async def get_post(self, post_id: UUID) -> ForumPost | None:
        result = await execute(
            self.session, self._get_post_key, [post_id], operation="get_forum_post_key"
        )
        key = result.one()
        if not key:
            return None

        result = await execute(
            self.session,
            self._get_post,
            [key.course_id, key.created_at, post_id],
            operation="get_forum_post",
        )
        row = result.one()
        return ForumPost.from_row(row) if row else None

    async def list_posts(
        self, course_id: UUID, page: int = 1, limit: int = 20
    ) -> tuple[list[PostResponse], bool]:
        """One page of posts, newest first, and whether more pages follow.

        Cassandra has no offset, so the leading pages are read and skipped.
        """
        start = (page - 1) * limit
        rows = await execute(
            self.session,
            self._get_course_posts,
            [course_id, start + limit + 1],
            operation="list_forum_posts",
        )
        posts = [ForumPost.from_row(row) for row in rows]
        has_more = len(posts) > start + limit

        authors: dict[UUID, User | None] = {}
        items = []
        for post in posts[start : start + limit]:
            author = await self._author(post.user_id, authors)
            items.append(
                to_post_response(
                    post, author, reply_count=await self.count_replies(post.post_id)
                )
            )
        return items, has_more

    async def get_post_detail(self, post: ForumPost) -> PostDetailResponse:
        """A post with its replies, oldest first."""
        replies = await self.list_replies(post.post_id)
        authors: dict[UUID, User | None] = {}
        post_author = await self._author(post.user_id, authors)

        reply_items = []
        for reply in replies:
            author = await self._author(reply.user_id, authors)
            reply_items.append(to_reply_response(reply, author))

        return PostDetailResponse(
            **to_post_response(post, post_author, len(replies)).model_dump(),
            replies=reply_items,
        )

    # ==========================================================================
    # Replies
    # ==========================================================================

    async def create_reply(
        self,
        post: ForumPost,
        author: AuthenticatedCaller,
        data: CreateReplyRequest,
    ) -> ForumReply:
        reply = ForumReply(
            post_id=post.post_id, user_id=author.id, content=data.content
        )
        await execute(
            self.session,
            self._insert_reply,
            [reply.post_id, reply.created_at, reply.reply_id, reply.user_id,
             reply.content],
            operation="insert_forum_reply",
        )
        logger.info(
            "forum_reply_created",
            post_id=str(post.post_id),
            reply_id=str(reply.reply_id),
        )
        return reply

    async def list_replies(self, post_id: UUID) -> list[ForumReply]:
        rows = await execute(
            self.session, self._get_replies, [post_id], operation="list_forum_replies"
        )
        return [ForumReply.from_row(row) for row in rows]

    async def count_replies(self, post_id: UUID) -> int:
        result = await execute(
            self.session,
            self._count_replies,
            [post_id],
            operation="count_forum_replies",
        )
        row = result.one()
        return int(row.reply_count) if row else 0

    async def _author(
        self, user_id: UUID, cache: dict[UUID, User | None]
    ) -> User | None:
        if user_id not in cache:
            cache[user_id] = await self.user_service.get_user(user_id)
        return cache[user_id]


# ==============================================================================
# Response Builders
# ==============================================================================


def to_post_response(
    post: ForumPost, author: User | None = None, reply_count: int = 0
) -> PostResponse:
    return PostResponse(
        id=post.post_id,
        course_id=post.course_id,
        user_id=post.user_id,
        title=post.title,
        content=post.content,
        post_type=post.post_type,
        created_at=post.created_at,
        author_name=author.name if author else None,
        author_role=author.role if author else None,
        reply_count=reply_count,
    )


def to_reply_response(reply: ForumReply, author: User | None = None) -> ReplyResponse:
    return ReplyResponse(
        id=reply.reply_id,
        post_id=reply.post_id,
        user_id=reply.user_id,
        content=reply.content,
        created_at=reply.created_at,
        author_name=author.name if author else None,
        author_role=author.role if author else None,
    )
