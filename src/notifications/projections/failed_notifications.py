"""FailedNotifications — dead-letter view of notifications that could not be sent.

An entry appears when a notification fails and disappears once a retry
puts it back to PENDING or a later attempt succeeds. Entries whose retries
are used up stay, flagged ``exhausted``, until someone looks at them.
"""

from notifications.domain import notifications
from notifications.notification.events import (
    NotificationDelivered,
    NotificationFailed,
    NotificationRetried,
    NotificationSent,
)
from notifications.notification.notification import Notification
from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain


@notifications.projection
class FailedNotifications:
    notification_id: Identifier(identifier=True, required=True)
    tenant_id: Identifier(required=True)
    user_id: Identifier(required=True)
    notification_type: String(required=True)
    channel: String(required=True)
    last_error: String(max_length=1000)
    retry_count: Integer(default=0)
    max_retries: Integer(default=3)
    exhausted: Boolean(default=False)
    failed_at: DateTime()


@notifications.projector(projector_for=FailedNotifications, aggregates=[Notification])
class FailedNotificationsProjector:
    @on(NotificationFailed)
    def on_notification_failed(self, event):
        repo = current_domain.repository_for(FailedNotifications)

        try:
            failed = repo.get(event.notification_id)
            failed.last_error = event.reason
            failed.retry_count = event.retry_count
            failed.max_retries = event.max_retries
            failed.failed_at = event.failed_at
        except ObjectNotFoundError:
            failed = FailedNotifications(
                notification_id=event.notification_id,
                tenant_id=event.tenant_id,
                user_id=event.user_id,
                notification_type=event.notification_type,
                channel=event.channel,
                last_error=event.reason,
                retry_count=event.retry_count,
                max_retries=event.max_retries,
                failed_at=event.failed_at,
            )
        failed.exhausted = event.retry_count >= event.max_retries

        repo.add(failed)

    def _discard(self, notification_id):
        repo = current_domain.repository_for(FailedNotifications)
        try:
            failed = repo.get(notification_id)
        except ObjectNotFoundError:
            return
        repo._dao.delete(failed)

    @on(NotificationRetried)
    def on_notification_retried(self, event):
        """Remove from the failed queue when retried (it goes back to pending)."""
        self._discard(event.notification_id)

    @on(NotificationSent)
    def on_notification_sent(self, event):
        self._discard(event.notification_id)

    @on(NotificationDelivered)
    def on_notification_delivered(self, event):
        self._discard(event.notification_id)


def list_failed(tenant_id, exhausted: bool | None = None, limit: int = 100) -> list[FailedNotifications]:
    """Failed notifications for a tenant, most recent failure first."""
    criteria = {"tenant_id": str(tenant_id)}
    if exhausted is not None:
        criteria["exhausted"] = exhausted
    repo = current_domain.repository_for(FailedNotifications)
    entries = repo._dao.query.filter(**criteria).limit(limit).all().items
    return sorted(
        entries,
        key=lambda e: e.failed_at.timestamp() if e.failed_at else 0.0,
        reverse=True,
    )
