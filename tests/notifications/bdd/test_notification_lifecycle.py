"""BDD tests for notification lifecycle."""

from protean.exceptions import ValidationError
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/notification_lifecycle.feature")


@when(
    "the notification is marked as read",
    target_fixture="notification",
)
def mark_read(notification):
    notification.mark_read()
    return notification


@when(
    "the notification is marked as read again",
    target_fixture="first_read_at",
)
def mark_read_again(notification):
    first_read_at = notification.read_at
    notification._events.clear()
    notification.mark_read()
    return first_read_at


@when(
    "the notification is acknowledged",
    target_fixture="notification",
)
def acknowledge(notification):
    notification.acknowledge()
    return notification


@when(
    "the notification is retried",
    target_fixture="notification",
)
def retry_notification(notification, error):
    try:
        notification.retry()
    except ValidationError as exc:
        error["exc"] = exc
    return notification


@when(
    parsers.cfparse('the notification is cancelled with reason "{reason}"'),
    target_fixture="notification",
)
def cancel_notification(notification, reason, error):
    try:
        notification.cancel(reason)
    except ValidationError as exc:
        error["exc"] = exc
    return notification


@then("the read time is unchanged")
def read_time_unchanged(notification, first_read_at):
    assert notification.read_at == first_read_at


@then("no new events are raised")
def no_new_events(notification):
    assert notification._events == []


@then(parsers.cfparse("the retry count is {count:d}"))
def retry_count_is(notification, count):
    assert notification.retry_count == count
