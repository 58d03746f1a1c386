"""Notification service layer.

Business logic for:
- Creating notifications for other features (forum posts)
- Listing a user's notifications, newest first
- Marking one or all notifications as read
- Counting unread notifications
"""

from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from coursetrack.core.database import execute
from coursetrack.core.timeutils import utcnow

from .models import Notification, NotificationType, create_notification


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class NotificationError(Exception):
    """Base notification error."""

    def __init__(self, message: str, code: str = "notification_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotificationNotFoundError(NotificationError):
    """Notification not found for this user."""

    def __init__(self, message: str = "Notification not found"):
        super().__init__(message, "notification_not_found")


# ==============================================================================
# Notification Service
# ==============================================================================


class NotificationService:
    """Service for notification management."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (user_id, notification_id, type, title, message, related_entity,
             related_entity_id, is_read, read_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_notifications = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.notifications WHERE user_id = ? LIMIT ?"
        )
        self._get_unread_ids = self.session.prepare(f"""
            SELECT notification_id FROM {self.keyspace}.notifications
            WHERE user_id = ? AND is_read = false ALLOW FILTERING
        """)
        self._count_unread = self.session.prepare(f"""
            SELECT COUNT(*) AS unread FROM {self.keyspace}.notifications
            WHERE user_id = ? AND is_read = false ALLOW FILTERING
        """)
        # Conditional so an unknown id is reported instead of upserting a row
        self._mark_read_if_exists = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET is_read = true, read_at = ?
            WHERE user_id = ? AND notification_id = ?
            IF EXISTS
        """)
        self._mark_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET is_read = true, read_at = ?
            WHERE user_id = ? AND notification_id = ?
        """)

    # ==========================================================================
    # Notification Creation
    # ==========================================================================

    async def create_notification(self, notification: Notification) -> Notification:
        await execute(
            self.session,
            self._insert_notification,
            [
                notification.user_id,
                notification.notification_id,
                notification.type.value,
                notification.title,
                notification.message,
                notification.related_entity,
                notification.related_entity_id,
                notification.is_read,
                notification.read_at,
                notification.created_at,
            ],
            operation="insert_notification",
        )
        logger.info(
            "notification_created",
            user_id=str(notification.user_id),
            related_entity=notification.related_entity,
        )
        return notification

    async def notify(
        self,
        user_id: UUID,
        title: str,
        message: str,
        notification_type: NotificationType = NotificationType.INFO,
        related_entity: str | None = None,
        related_entity_id: UUID | None = None,
    ) -> Notification:
        """Build and store a notification for ``user_id``."""
        return await self.create_notification(
            create_notification(
                user_id=user_id,
                title=title,
                message=message,
                notification_type=notification_type,
                related_entity=related_entity,
                related_entity_id=related_entity_id,
            )
        )

    # ==========================================================================
    # Notification Reading
    # ==========================================================================

    async def list_notifications(
        self, user_id: UUID, limit: int = 20
    ) -> list[Notification]:
        """Newest notifications of a user."""
        rows = await execute(
            self.session,
            self._get_notifications,
            [user_id, limit],
            operation="list_notifications",
        )
        return [Notification.from_row(row) for row in rows]

    async def get_unread_count(self, user_id: UUID) -> int:
        result = await execute(
            self.session,
            self._count_unread,
            [user_id],
            operation="count_unread_notifications",
        )
        row = result.one()
        return int(row.unread) if row else 0

    # ==========================================================================
    # Mark as Read
    # ==========================================================================

    async def mark_as_read(self, user_id: UUID, notification_id: UUID) -> None:
        """Mark one of the user's notifications as read.

        Raises:
            NotificationNotFoundError: If the user has no such notification
        """
        result = await execute(
            self.session,
            self._mark_read_if_exists,
            [utcnow(), user_id, notification_id],
            operation="mark_notification_read",
        )
        if not result.was_applied:
            raise NotificationNotFoundError

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark every unread notification of the user as read.

        Returns count of notifications marked as read.
        """
        now = utcnow()
        rows = await execute(
            self.session,
            self._get_unread_ids,
            [user_id],
            operation="list_unread_notifications",
        )

        marked = 0
        for row in rows:
            await execute(
                self.session,
                self._mark_read,
                [now, user_id, row.notification_id],
                operation="mark_notification_read",
            )
            marked += 1

        if marked:
            logger.info("notifications_marked_read", user_id=str(user_id), count=marked)
        return marked
