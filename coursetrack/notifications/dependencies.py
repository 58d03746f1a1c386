"""FastAPI dependencies for notifications."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, status

from .service import NotificationError, NotificationService


# Service getter function (set by main.py)
_notification_service_getter: Callable[[], NotificationService] | None = None


def set_notification_service_getter(
    getter: Callable[[], NotificationService],
) -> None:
    global _notification_service_getter  # noqa: PLW0603 - Required for DI pattern
    _notification_service_getter = getter


def get_notification_service() -> NotificationService:
    if _notification_service_getter is None:
        raise RuntimeError("NotificationService not configured")
    return _notification_service_getter()


NotificationServiceDep = Annotated[
    NotificationService, Depends(get_notification_service)
]


def handle_notification_error(error: NotificationError) -> HTTPException:
    status_map = {
        "notification_not_found": status.HTTP_404_NOT_FOUND,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
