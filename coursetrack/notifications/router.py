"""Notification API routes.

Endpoints for:
- GET /v1/notifications - List the caller's notifications
- GET /v1/notifications/unread-count - Unread count
- POST /v1/notifications/{notification_id}/read - Mark one as read
- POST /v1/notifications/read-all - Mark all as read
"""

from uuid import UUID

from fastapi import APIRouter, Query

from coursetrack.auth.dependencies import CurrentUser

from .dependencies import NotificationServiceDep, handle_notification_error
from .schemas import (
    MarkReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from .service import NotificationError


router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List user notifications",
)
async def list_notifications(
    caller: CurrentUser,
    service: NotificationServiceDep,
    limit: int = Query(default=20, ge=1, le=100, description="Items to return"),
) -> NotificationListResponse:
    """Newest notifications of the caller with the unread count."""
    notifications = await service.list_notifications(caller.id, limit)
    return NotificationListResponse(
        items=[NotificationResponse.from_notification(n) for n in notifications],
        unread_count=await service.get_unread_count(caller.id),
    )


@router.get(
    "/unread-count",
    response_model=UnreadCountResponse,
    summary="Get unread notification count",
)
async def get_unread_count(
    caller: CurrentUser,
    service: NotificationServiceDep,
) -> UnreadCountResponse:
    return UnreadCountResponse(count=await service.get_unread_count(caller.id))


@router.post(
    "/read-all",
    response_model=MarkReadResponse,
    summary="Mark all notifications as read",
)
async def mark_all_read(
    caller: CurrentUser,
    service: NotificationServiceDep,
) -> MarkReadResponse:
    marked_count = await service.mark_all_as_read(caller.id)
    return MarkReadResponse(
        marked_count=marked_count,
        unread_count=await service.get_unread_count(caller.id),
    )


@router.post(
    "/{notification_id}/read",
    response_model=MarkReadResponse,
    summary="Mark a notification as read",
)
async def mark_read(
    notification_id: UUID,
    caller: CurrentUser,
    service: NotificationServiceDep,
) -> MarkReadResponse:
    """Only the recipient can mark a notification; other ids are 404."""
    try:
        await service.mark_as_read(caller.id, notification_id)
    except NotificationError as e:
        raise handle_notification_error(e) from e
    return MarkReadResponse(
        marked_count=1,
        unread_count=await service.get_unread_count(caller.id),
    )
