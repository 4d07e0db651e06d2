"""Recipient-facing lifecycle: read, acknowledge, delete, cancel and inbox queries.

Every operation that takes a ``user_id`` only touches notifications owned
by that user. A notification that does not exist and one that belongs to
someone else are reported the same way, with NotificationNotFoundError.
"""

from datetime import datetime

import structlog
from notifications.domain import notifications
from notifications.errors import NotificationNotFoundError
from notifications.notification.notification import (
    Notification,
    NotificationChannel,
    NotificationStatus,
)
from notifications.utils.clock import as_aware
from protean.fields import Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

_UNREAD_STATUSES = (NotificationStatus.SENT.value, NotificationStatus.DELIVERED.value)


def _repo():
    return current_domain.repository_for(Notification)


def _owned(notification_id, user_id) -> Notification:
    notification = _repo().find_owned(str(notification_id), str(user_id))
    if notification is None:
        raise NotificationNotFoundError({"notification_id": [f"Notification not found: {notification_id}"]})
    return notification


def _created_key(notification):
    created = notification.created_at
    return created.timestamp() if created is not None else 0.0


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------
def mark_read(notification_id, user_id) -> Notification:
    """Mark as read. Repeating the call leaves ``read_at`` untouched."""
    notification = _owned(notification_id, user_id)
    if notification.mark_read():
        _repo().add(notification)
    return notification


def mark_acknowledged(notification_id, user_id) -> Notification:
    notification = _owned(notification_id, user_id)
    if notification.acknowledge():
        _repo().add(notification)
    return notification


def mark_all_read(user_id, tenant_id) -> int:
    """Mark every delivered in-app notification of the user as read."""
    repo = _repo()
    delivered = repo.find_for_user(
        str(user_id),
        str(tenant_id),
        status=NotificationStatus.DELIVERED.value,
        channel=NotificationChannel.IN_APP.value,
    )
    for notification in delivered:
        notification.mark_read()
        repo.add(notification)

    logger.info("Notifications marked read", user_id=str(user_id), tenant_id=str(tenant_id), count=len(delivered))
    return len(delivered)


def delete_notification(notification_id, user_id) -> None:
    notification = _owned(notification_id, user_id)
    _repo().remove(notification)
    logger.info("Notification deleted", notification_id=str(notification_id), user_id=str(user_id))


def cancel_notification(notification_id, reason) -> Notification:
    """Withdraw a pending or queued notification (operator action, not owner-scoped)."""
    repo = _repo()
    notification = repo.get(str(notification_id))
    notification.cancel(reason)
    repo.add(notification)
    return notification


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
class NotificationFilter(BaseModel):
    tenant_id: str
    user_id: str | None = None
    notification_type: str | None = None
    channel: str | None = None
    status: str | None = None
    priority: str | None = None
    group_id: str | None = None
    unread_only: bool = False
    created_from: datetime | None = None
    created_to: datetime | None = None
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


def _within(value: datetime | None, start: datetime | None, end: datetime | None) -> bool:
    value, start, end = as_aware(value), as_aware(start), as_aware(end)
    if value is None:
        return start is None and end is None
    if start is not None and value < start:
        return False
    if end is not None and value > end:
        return False
    return True


def get_notifications(filters: NotificationFilter) -> list[Notification]:
    """Notifications matching ``filters``, newest first."""
    criteria = {
        key: getattr(filters, key)
        for key in ("user_id", "notification_type", "channel", "status", "priority", "group_id")
        if getattr(filters, key) is not None
    }
    found = _repo().find_for_tenant(filters.tenant_id, **criteria)

    if filters.unread_only:
        found = [n for n in found if n.status in _UNREAD_STATUSES]
    if filters.created_from or filters.created_to:
        found = [n for n in found if _within(n.created_at, filters.created_from, filters.created_to)]

    found.sort(key=_created_key, reverse=True)
    return found[filters.offset : filters.offset + filters.limit]


def get_unread_notifications(user_id, tenant_id, limit: int = 50) -> list[Notification]:
    unread = [
        n
        for n in _repo().find_for_user(str(user_id), str(tenant_id), channel=NotificationChannel.IN_APP.value)
        if n.status in _UNREAD_STATUSES
    ]
    unread.sort(key=_created_key, reverse=True)
    return unread[:limit]


def get_unread_count(user_id, tenant_id) -> int:
    return sum(
        1
        for n in _repo().find_for_user(str(user_id), str(tenant_id), channel=NotificationChannel.IN_APP.value)
        if n.status in _UNREAD_STATUSES
    )


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
@notifications.command(part_of="Notification")
class MarkNotificationRead:
    notification_id: Identifier(required=True)
    user_id: Identifier(required=True)


@notifications.command(part_of="Notification")
class AcknowledgeNotification:
    notification_id: Identifier(required=True)
    user_id: Identifier(required=True)


@notifications.command(part_of="Notification")
class MarkAllNotificationsRead:
    user_id: Identifier(required=True)
    tenant_id: Identifier(required=True)


@notifications.command(part_of="Notification")
class DeleteNotification:
    notification_id: Identifier(required=True)
    user_id: Identifier(required=True)


@notifications.command(part_of="Notification")
class CancelNotification:
    """Request to cancel a pending or queued notification."""

    notification_id: Identifier(required=True)
    reason: String(required=True, max_length=500)


@notifications.command_handler(part_of=Notification)
class NotificationLifecycleHandler:
    @handle(MarkNotificationRead)
    def mark_read(self, command: MarkNotificationRead):
        mark_read(command.notification_id, command.user_id)

    @handle(AcknowledgeNotification)
    def acknowledge(self, command: AcknowledgeNotification):
        mark_acknowledged(command.notification_id, command.user_id)

    @handle(MarkAllNotificationsRead)
    def mark_all_read(self, command: MarkAllNotificationsRead):
        return mark_all_read(command.user_id, command.tenant_id)

    @handle(DeleteNotification)
    def delete(self, command: DeleteNotification):
        delete_notification(command.notification_id, command.user_id)

    @handle(CancelNotification)
    def cancel(self, command: CancelNotification):
        cancel_notification(command.notification_id, command.reason)
