"""Domain events for the Notification aggregate."""

from notifications.domain import notifications
from protean.fields import DateTime, Identifier, Integer, String


@notifications.event(part_of="Notification")
class NotificationCreated:
    """A notification was persisted for a (recipient, channel) pair."""

    __version__ = 1

    notification_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    user_id: Identifier(required=True)
    notification_type: String(required=True)
    channel: String(required=True)
    priority: String(required=True)
    title: String(max_length=500)
    template_id: Identifier()
    scheduled_for: DateTime()
    created_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationQueued:
    """A notification is being held for later dispatch."""

    __version__ = 1

    notification_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    channel: String(required=True)
    scheduled_for: DateTime()
    reason: String()
    queued_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationSent:
    """A notification was handed off to its channel."""

    __version__ = 1

    notification_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    user_id: Identifier(required=True)
    channel: String(required=True)
    sent_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationDelivered:
    """A notification was confirmed delivered to the recipient."""

    __version__ = 1

    notification_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    user_id: Identifier(required=True)
    channel: String(required=True)
    delivered_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationFailed:
    """A notification could not be sent."""

    __version__ = 1

    notification_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    user_id: Identifier(required=True)
    notification_type: String(required=True)
    channel: String(required=True)
    reason: String(required=True, max_length=1000)
    retry_count: Integer(required=True)
    max_retries: Integer(required=True)
    failed_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationRetried:
    """A failed notification was reset to PENDING for another attempt."""

    __version__ = 1

    notification_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    user_id: Identifier(required=True)
    channel: String(required=True)
    retry_count: Integer(required=True)
    retried_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationRead:
    """The recipient opened the notification."""

    __version__ = 1

    notification_id: Identifier(required=True)
    user_id: Identifier(required=True)
    read_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationAcknowledged:
    """The recipient acknowledged the notification."""

    __version__ = 1

    notification_id: Identifier(required=True)
    user_id: Identifier(required=True)
    acknowledged_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationExpired:
    """A notification passed its expiry before it could be dispatched."""

    __version__ = 1

    notification_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    expires_at: DateTime()
    expired_at: DateTime(required=True)


@notifications.event(part_of="Notification")
class NotificationCancelled:
    """A notification was withdrawn before it was sent."""

    __version__ = 1

    notification_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    user_id: Identifier(required=True)
    channel: String(required=True)
    reason: String(required=True, max_length=500)
    cancelled_at: DateTime(required=True)
