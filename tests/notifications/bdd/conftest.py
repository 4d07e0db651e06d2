"""Shared BDD fixtures and step definitions for the Notifications domain."""

import pytest
from notifications.notification.events import (
    NotificationAcknowledged,
    NotificationCancelled,
    NotificationCreated,
    NotificationFailed,
    NotificationRead,
    NotificationRetried,
)
from notifications.notification.notification import (
    Notification,
    NotificationChannel,
    NotificationType,
)
from notifications.preference.store import PreferenceStore
from pytest_bdd import given, parsers, then

_NOTIFICATION_EVENT_CLASSES = {
    "NotificationCreated": NotificationCreated,
    "NotificationRead": NotificationRead,
    "NotificationAcknowledged": NotificationAcknowledged,
    "NotificationCancelled": NotificationCancelled,
    "NotificationFailed": NotificationFailed,
    "NotificationRetried": NotificationRetried,
}


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


def _new_notification(user_id="u-bdd", **overrides):
    defaults = {
        "tenant_id": "t-bdd",
        "user_id": user_id,
        "notification_type": NotificationType.QUALITY_ALERT.value,
        "channel": NotificationChannel.IN_APP.value,
        "title": "Quality Alert: Burrs",
        "message": "Quality issue detected in Bracket (Batch: B-12)",
    }
    defaults.update(overrides)
    n = Notification.create(**defaults)
    n._events.clear()
    return n


# ---------------------------------------------------------------------------
# Given steps: notifications
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a new notification for user "{user_id}"'),
    target_fixture="notification",
)
def new_notification(user_id):
    return Notification.create(
        tenant_id="t-bdd",
        user_id=user_id,
        notification_type=NotificationType.TASK_ASSIGNED.value,
        channel=NotificationChannel.IN_APP.value,
        title="New Task: Calibrate press",
        message="You have been assigned a new task",
    )


@given("a delivered notification", target_fixture="notification")
def delivered_notification():
    n = _new_notification()
    n.mark_delivered()
    n._events.clear()
    return n


@given("a sent notification", target_fixture="notification")
def sent_notification():
    n = _new_notification(channel=NotificationChannel.EMAIL.value)
    n.mark_sent()
    n._events.clear()
    return n


@given(
    parsers.cfparse("a failed notification with {used:d} of {allowed:d} retries used"),
    target_fixture="notification",
)
def failed_notification(used, allowed):
    n = _new_notification(channel=NotificationChannel.EMAIL.value, max_retries=allowed)
    n.mark_failed("SMTP timeout")
    for _ in range(used):
        n.retry()
        n.mark_failed("SMTP timeout")
    n._events.clear()
    return n


# ---------------------------------------------------------------------------
# Given steps: preferences
# ---------------------------------------------------------------------------
@given(parsers.cfparse('user "{user_id}" in tenant "{tenant_id}" has default preferences'))
def user_with_defaults(user_id, tenant_id):
    PreferenceStore().set_defaults(user_id, tenant_id)


# ---------------------------------------------------------------------------
# Then steps: notification status & events
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the notification status is "{status}"'))
def notification_status_is(notification, status):
    assert notification.status == status


@then(parsers.cfparse("a {event_type} event is raised"))
def notification_event_raised(notification, event_type):
    event_cls = _NOTIFICATION_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in notification._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in notification._events]}"


@then("the action fails with a validation error")
def action_fails(error):
    assert error["exc"] is not None
