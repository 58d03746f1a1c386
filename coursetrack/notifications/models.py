"""Database models for notifications.

Cassandra table definitions for:
- Notifications: one partition per recipient

``notification_id`` is a time-based UUID, so the clustering order alone
lists a user's notifications newest first and a single notification is
addressed by ``(user_id, notification_id)``.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from cassandra.util import uuid_from_time

from coursetrack.core.timeutils import ensure_utc_aware, utcnow


class NotificationType(str, Enum):
    """Severity shown next to a notification."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

NOTIFICATIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    user_id UUID,
    notification_id TIMEUUID,
    type TEXT,
    title TEXT,
    message TEXT,
    related_entity TEXT,
    related_entity_id UUID,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id), notification_id)
) WITH CLUSTERING ORDER BY (notification_id DESC)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATIONS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """Notification addressed to one user."""

    notification_id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    related_entity: str | None
    related_entity_id: UUID | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        return cls(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=NotificationType(row.type or NotificationType.INFO.value),
            title=row.title or "",
            message=row.message or "",
            related_entity=row.related_entity,
            related_entity_id=row.related_entity_id,
            is_read=row.is_read or False,
            read_at=ensure_utc_aware(row.read_at),
            created_at=ensure_utc_aware(row.created_at),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "notification_id": self.notification_id,
            "user_id": self.user_id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "related_entity": self.related_entity,
            "related_entity_id": self.related_entity_id,
            "is_read": self.is_read,
            "read_at": self.read_at,
            "created_at": self.created_at,
        }


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_notification(
    user_id: UUID,
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.INFO,
    related_entity: str | None = None,
    related_entity_id: UUID | None = None,
) -> Notification:
    """Create a new unread notification stamped now."""
    now = utcnow()
    return Notification(
        notification_id=uuid_from_time(now),
        user_id=user_id,
        type=notification_type,
        title=title.strip(),
        message=message.strip(),
        related_entity=related_entity,
        related_entity_id=related_entity_id,
        is_read=False,
        read_at=None,
        created_at=now,
    )
