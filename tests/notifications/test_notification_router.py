"""Tests for notification endpoints."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from coursetrack.notifications.models import create_notification
from coursetrack.notifications.service import NotificationNotFoundError


@pytest.fixture
def mock_notification_service(student_id) -> MagicMock:
    service = MagicMock()
    service.list_notifications = AsyncMock(
        return_value=[create_notification(student_id, "New Forum Post", "Hi")]
    )
    service.get_unread_count = AsyncMock(return_value=1)
    service.mark_as_read = AsyncMock(return_value=None)
    service.mark_all_as_read = AsyncMock(return_value=4)
    return service


@pytest.fixture
def notification_client(mock_notification_service: MagicMock) -> TestClient:
    from coursetrack.main import app
    from coursetrack.notifications.dependencies import (
        set_notification_service_getter,
    )

    set_notification_service_getter(lambda: mock_notification_service)
    return TestClient(app)


def test_requires_authentication(notification_client: TestClient) -> None:
    assert notification_client.get("/v1/notifications").status_code == 401


def test_list_notifications(
    notification_client: TestClient,
    mock_notification_service: MagicMock,
    student_headers,
    student_id,
) -> None:
    response = notification_client.get(
        "/v1/notifications?limit=5", headers=student_headers
    )

    assert response.status_code == 200
    data = response.json()
    assert data["unread_count"] == 1
    assert data["items"][0]["title"] == "New Forum Post"
    assert data["items"][0]["is_read"] is False
    mock_notification_service.list_notifications.assert_awaited_once_with(
        student_id, 5
    )


def test_unread_count(notification_client: TestClient, teacher_headers) -> None:
    response = notification_client.get(
        "/v1/notifications/unread-count", headers=teacher_headers
    )

    assert response.status_code == 200
    assert response.json() == {"count": 1}


def test_mark_read(
    notification_client: TestClient,
    mock_notification_service: MagicMock,
    student_headers,
    student_id,
) -> None:
    notification_id = uuid4()

    response = notification_client.post(
        f"/v1/notifications/{notification_id}/read", headers=student_headers
    )

    assert response.status_code == 200
    assert response.json() == {"marked_count": 1, "unread_count": 1}
    mock_notification_service.mark_as_read.assert_awaited_once_with(
        student_id, notification_id
    )


def test_mark_unknown_is_404(
    notification_client: TestClient,
    mock_notification_service: MagicMock,
    student_headers,
) -> None:
    mock_notification_service.mark_as_read.side_effect = NotificationNotFoundError()

    response = notification_client.post(
        f"/v1/notifications/{uuid4()}/read", headers=student_headers
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Notification not found"


def test_mark_all_read(notification_client: TestClient, student_headers) -> None:
    response = notification_client.post(
        "/v1/notifications/read-all", headers=student_headers
    )

    assert response.status_code == 200
    assert response.json()["marked_count"] == 4
