"""Application tests for recipient-facing lifecycle commands and inbox queries."""

from datetime import UTC, datetime, timedelta

import pytest
from notifications.errors import NotificationNotFoundError
from notifications.notification.lifecycle import (
    AcknowledgeNotification,
    CancelNotification,
    DeleteNotification,
    MarkAllNotificationsRead,
    MarkNotificationRead,
    NotificationFilter,
    get_notifications,
    get_unread_count,
    get_unread_notifications,
    mark_acknowledged,
    mark_read,
)
from notifications.notification.notification import (
    Notification,
    NotificationChannel,
    NotificationStatus,
    NotificationType,
)
from protean import current_domain
from protean.exceptions import ValidationError

TENANT = "t1"


def _stored(status=NotificationStatus.DELIVERED, user_id="u1", **overrides) -> Notification:
    defaults = {
        "tenant_id": TENANT,
        "user_id": user_id,
        "notification_type": NotificationType.TASK_ASSIGNED.value,
        "channel": NotificationChannel.IN_APP.value,
        "title": "New Task: Calibrate press",
        "message": "You have been assigned a new task",
    }
    defaults.update(overrides)
    n = Notification.create(**defaults)
    if status == NotificationStatus.DELIVERED:
        n.mark_delivered()
    elif status == NotificationStatus.SENT:
        n.mark_sent()
    elif status == NotificationStatus.READ:
        n.mark_delivered()
        n.mark_read()
    elif status == NotificationStatus.FAILED:
        n.mark_failed("boom")
    elif status == NotificationStatus.QUEUED:
        n.queue(datetime.now(UTC) + timedelta(hours=1))
    current_domain.repository_for(Notification).add(n)
    return n


def _get(notification_id) -> Notification:
    return current_domain.repository_for(Notification).get(str(notification_id))


class TestMarkRead:
    def test_mark_read_sets_read_at(self):
        n = _stored()
        current_domain.process(MarkNotificationRead(notification_id=str(n.id), user_id="u1"), asynchronous=False)

        stored = _get(n.id)
        assert stored.status == NotificationStatus.READ.value
        assert stored.read_at is not None

    def test_mark_read_twice_keeps_first_timestamp(self):
        n = _stored()
        first = mark_read(n.id, "u1").read_at
        second = mark_read(n.id, "u1").read_at
        assert first == second
        assert _get(n.id).read_at == first

    def test_other_users_notification_is_not_found(self):
        n = _stored(user_id="u2")
        with pytest.raises(NotificationNotFoundError):
            mark_read(n.id, "u1")
        assert _get(n.id).status == NotificationStatus.DELIVERED.value

    def test_unknown_id_is_not_found(self):
        with pytest.raises(NotificationNotFoundError):
            mark_read("missing", "u1")


class TestAcknowledge:
    def test_acknowledge_via_command(self):
        n = _stored()
        current_domain.process(AcknowledgeNotification(notification_id=str(n.id), user_id="u1"), asynchronous=False)
        assert _get(n.id).status == NotificationStatus.ACKNOWLEDGED.value

    def test_acknowledge_is_idempotent(self):
        n = _stored()
        first = mark_acknowledged(n.id, "u1").acknowledged_at
        assert mark_acknowledged(n.id, "u1").acknowledged_at == first


class TestMarkAllRead:
    def test_marks_only_delivered_in_app_of_user(self):
        mine = [_stored(), _stored()]
        email = _stored(channel=NotificationChannel.EMAIL.value)
        theirs = _stored(user_id="u2")

        count = current_domain.process(MarkAllNotificationsRead(user_id="u1", tenant_id=TENANT), asynchronous=False)

        assert count == 2
        assert all(_get(n.id).status == NotificationStatus.READ.value for n in mine)
        assert _get(email.id).status == NotificationStatus.DELIVERED.value
        assert _get(theirs.id).status == NotificationStatus.DELIVERED.value


class TestDeleteAndCancel:
    def test_delete_removes_record(self):
        n = _stored()
        current_domain.process(DeleteNotification(notification_id=str(n.id), user_id="u1"), asynchronous=False)
        assert current_domain.repository_for(Notification).find_owned(str(n.id), "u1") is None

    def test_delete_of_foreign_record_is_not_found(self):
        n = _stored(user_id="u2")
        with pytest.raises(NotificationNotFoundError):
            current_domain.process(DeleteNotification(notification_id=str(n.id), user_id="u1"), asynchronous=False)

    def test_cancel_queued(self):
        n = _stored(status=NotificationStatus.QUEUED)
        current_domain.process(
            CancelNotification(notification_id=str(n.id), reason="Order withdrawn"), asynchronous=False
        )
        stored = _get(n.id)
        assert stored.status == NotificationStatus.CANCELLED.value
        assert stored.last_error == "Order withdrawn"

    def test_cannot_cancel_delivered(self):
        n = _stored()
        with pytest.raises(ValidationError):
            current_domain.process(CancelNotification(notification_id=str(n.id), reason="Too late"), asynchronous=False)


class TestQueries:
    def test_unread_counts_sent_and_delivered_in_app(self):
        _stored()
        _stored(status=NotificationStatus.SENT)
        _stored(status=NotificationStatus.READ)
        _stored(channel=NotificationChannel.EMAIL.value)
        _stored(user_id="u2")

        assert get_unread_count("u1", TENANT) == 2
        assert len(get_unread_notifications("u1", TENANT)) == 2

    def test_filters_narrow_results(self):
        _stored(priority="high")
        _stored(priority="low")
        _stored(status=NotificationStatus.FAILED, priority="high")

        found = get_notifications(NotificationFilter(tenant_id=TENANT, user_id="u1", priority="high"))
        assert len(found) == 2

        failed = get_notifications(NotificationFilter(tenant_id=TENANT, status=NotificationStatus.FAILED.value))
        assert len(failed) == 1

    def test_unread_only_and_pagination(self):
        for _ in range(5):
            _stored()
        _stored(status=NotificationStatus.READ)

        unread = get_notifications(NotificationFilter(tenant_id=TENANT, unread_only=True))
        assert len(unread) == 5

        page = get_notifications(NotificationFilter(tenant_id=TENANT, limit=2, offset=4))
        assert len(page) == 2

    def test_newest_first(self):
        for _ in range(3):
            _stored()
        found = get_notifications(NotificationFilter(tenant_id=TENANT))
        created = [n.created_at for n in found]
        assert created == sorted(created, reverse=True)

    def test_created_range(self):
        _stored()
        future = datetime.now(UTC) + timedelta(days=1)
        assert get_notifications(NotificationFilter(tenant_id=TENANT, created_from=future)) == []

    def test_other_tenants_are_invisible(self):
        _stored(tenant_id="t2")
        assert get_notifications(NotificationFilter(tenant_id=TENANT)) == []
