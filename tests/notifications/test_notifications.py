from __future__ import annotations

from datetime import datetime

import pytest

from src.school_admin.school_admin.core.enums import NotificationType
from src.school_admin.school_admin.core.exceptions import AuthorizationError, NotFoundError
from src.school_admin.school_admin.notifications.hub import NotificationHub
from src.school_admin.school_admin.notifications.model import Notification


def _n(i, app_id=None):
    return Notification(
        notification_id=i,
        type=NotificationType.NEW_APPLICATION,
        created_at=datetime(2026, 3, 1, 9, 0),
        payload={"application_id": app_id} if app_id else {},
    )


def test_hub_keeps_one_subscription_per_session():
    hub = NotificationHub()
    hub.subscribe("s1")
    hub.publish(_n(1))
    hub.subscribe("s1")

    assert hub.subscriber_count() == 1
    assert hub.drain("s1") == []

    hub.publish(_n(2))
    assert [n.notification_id for n in hub.drain("s1")] == [2]
    assert hub.drain("s1") == []

    hub.unsubscribe("s1")
    hub.publish(_n(3))
    assert hub.drain("s1") == []
    assert not hub.is_subscribed("s1")


def test_notify_persists_and_publishes(container, staff_ctx):
    container.hub.subscribe("sess")

    container.notification_service.notify(NotificationType.EDIT_REQUEST, student_id=5, payload={"change_id": 1})

    [pushed] = container.hub.drain("sess")
    assert pushed.student_id == 5
    assert container.notification_service.unread_count(staff_ctx) == 1


def test_list_recent_dedupes_and_mark_read(container, repos, staff_ctx):
    repos.notifications.items.extend([_n(1, app_id=7), _n(2, app_id=7), _n(3, app_id=8)])
    svc = container.notification_service

    listed = svc.list_recent(staff_ctx)
    assert sorted(n.payload["application_id"] for n in listed) == [7, 8]

    svc.mark_read(staff_ctx, 3)
    assert svc.unread_count(staff_ctx) == 2
    with pytest.raises(NotFoundError):
        svc.mark_read(staff_ctx, 99)


def test_public_cannot_read_notifications(container, public_ctx):
    with pytest.raises(AuthorizationError):
        container.notification_service.list_recent(public_ctx)
