"""Pydantic schemas for notifications."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .models import Notification, NotificationType


class NotificationResponse(BaseModel):
    """Single notification response."""

    id: UUID = Field(description="Notification ID")
    type: NotificationType
    title: str
    message: str
    related_entity: str | None = Field(None, description="e.g. 'forum'")
    related_entity_id: UUID | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.notification_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            related_entity=notification.related_entity,
            related_entity_id=notification.related_entity_id,
            is_read=notification.is_read,
            read_at=notification.read_at,
            created_at=notification.created_at,
        )


class NotificationListResponse(BaseModel):
    """Newest notifications with the unread total."""

    items: list[NotificationResponse]
    unread_count: int = Field(description="Unread notification count")


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadResponse(BaseModel):
    """Result of a mark-as-read operation."""

    marked_count: int = Field(description="Notifications marked by this call")
    unread_count: int = Field(description="Unread notifications left")
