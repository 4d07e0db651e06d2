"""Repository for the NotificationPreference aggregate."""

from notifications.domain import notifications
from notifications.notification.repository import MAX_QUERY_LIMIT
from notifications.preference.preference import NotificationPreference


@notifications.repository(part_of=NotificationPreference)
class NotificationPreferenceRepository:
    def find_one(self, user_id, tenant_id, notification_type, channel) -> NotificationPreference | None:
        """Return the row for the (user, tenant, type, channel) key, if any."""
        return (
            self._dao.query.filter(
                user_id=user_id,
                tenant_id=tenant_id,
                notification_type=notification_type,
                channel=channel,
            )
            .all()
            .first
        )

    def find_for_user(self, user_id, tenant_id=None, **criteria) -> list[NotificationPreference]:
        if tenant_id is not None:
            criteria["tenant_id"] = tenant_id
        return self._dao.query.filter(user_id=user_id, **criteria).limit(MAX_QUERY_LIMIT).all().items
