"""Tests for NotificationService."""

from types import SimpleNamespace
from unittest.mock import Mock
from uuid import uuid4

import pytest
from conftest import executed, result, row

from coursetrack.notifications.models import (
    NotificationType,
    create_notification,
)
from coursetrack.notifications.service import (
    NotificationNotFoundError,
    NotificationService,
)


@pytest.fixture
def notification_service(session: Mock) -> NotificationService:
    return NotificationService(session=session, keyspace="test_keyspace")


class TestCreate:
    @pytest.mark.asyncio
    async def test_notify_stores_unread_notification(
        self, notification_service: NotificationService, session: Mock, teacher_id
    ) -> None:
        post_id = uuid4()

        notification = await notification_service.notify(
            user_id=teacher_id,
            title=" New Forum Post ",
            message="A student posted",
            related_entity="forum",
            related_entity_id=post_id,
        )

        assert notification.title == "New Forum Post"
        assert notification.type == NotificationType.INFO
        assert notification.is_read is False
        assert notification.notification_id.version == 1
        values = executed(session, "INSERT INTO test_keyspace.notifications")
        assert values == [
            [
                teacher_id,
                notification.notification_id,
                "info",
                "New Forum Post",
                "A student posted",
                "forum",
                post_id,
                False,
                None,
                notification.created_at,
            ]
        ]


class TestRead:
    @pytest.mark.asyncio
    async def test_list_notifications(
        self, notification_service: NotificationService, session: Mock, student_id
    ) -> None:
        stored = create_notification(student_id, "Hello", "World")
        session.aexecute.return_value = result([row(stored)])

        notifications = await notification_service.list_notifications(student_id, 5)

        assert [n.notification_id for n in notifications] == [stored.notification_id]
        assert executed(session, "FROM test_keyspace.notifications WHERE") == [
            [student_id, 5]
        ]

    @pytest.mark.asyncio
    async def test_unread_count(
        self, notification_service: NotificationService, session: Mock, student_id
    ) -> None:
        session.aexecute.return_value = result([SimpleNamespace(unread=3)])

        assert await notification_service.get_unread_count(student_id) == 3


class TestMarkRead:
    @pytest.mark.asyncio
    async def test_mark_as_read_is_conditional(
        self, notification_service: NotificationService, session: Mock, student_id
    ) -> None:
        notification_id = uuid4()

        await notification_service.mark_as_read(student_id, notification_id)

        values = executed(session, "IF EXISTS")
        assert len(values) == 1
        assert values[0][1:] == [student_id, notification_id]

    @pytest.mark.asyncio
    async def test_other_users_notification_is_not_found(
        self, notification_service: NotificationService, session: Mock, student_id
    ) -> None:
        """The key includes the recipient, so someone else's id matches nothing."""
        session.aexecute.return_value = result([], was_applied=False)

        with pytest.raises(NotificationNotFoundError):
            await notification_service.mark_as_read(student_id, uuid4())

    @pytest.mark.asyncio
    async def test_mark_all_as_read_counts(
        self, notification_service: NotificationService, session: Mock, student_id
    ) -> None:
        unread = [SimpleNamespace(notification_id=uuid4()) for _ in range(2)]
        session.aexecute.side_effect = [result(unread), result([]), result([])]

        marked = await notification_service.mark_all_as_read(student_id)

        assert marked == 2
        updates = executed(session, "UPDATE test_keyspace.notifications")
        assert [u[2] for u in updates] == [n.notification_id for n in unread]

    @pytest.mark.asyncio
    async def test_mark_all_with_nothing_unread(
        self, notification_service: NotificationService, session: Mock, student_id
    ) -> None:
        assert await notification_service.mark_all_as_read(student_id) == 0
        assert executed(session, "UPDATE test_keyspace.notifications") == []
