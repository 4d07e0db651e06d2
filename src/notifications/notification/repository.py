"""Repository for the Notification aggregate."""

from notifications.domain import notifications
from notifications.notification.notification import Notification
from protean.exceptions import ObjectNotFoundError

# Upper bound for unpaged reads; providers apply a small default otherwise.
MAX_QUERY_LIMIT = 10_000


@notifications.repository(part_of=Notification)
class NotificationRepository:
    """Notification queries used by the dispatcher, lifecycle and sweeps.

    Exact-match criteria go to the provider; time comparisons are done by
    the callers in Python so naive and aware datetimes can be normalized.
    """

    def find_owned(self, notification_id: str, user_id: str) -> Notification | None:
        """Return the notification only if it belongs to ``user_id``."""
        try:
            notification = self.get(notification_id)
        except ObjectNotFoundError:
            return None
        if str(notification.user_id) != str(user_id):
            return None
        return notification

    def find_matching(self, limit: int | None = None, **criteria) -> list[Notification]:
        """Return notifications matching exact-value ``criteria``."""
        query = self._dao.query.filter(**criteria).limit(limit or MAX_QUERY_LIMIT)
        return query.all().items

    def find_for_tenant(self, tenant_id: str, limit: int | None = None, **criteria) -> list[Notification]:
        return self.find_matching(limit=limit, tenant_id=tenant_id, **criteria)

    def find_for_user(self, user_id: str, tenant_id: str, limit: int | None = None, **criteria) -> list[Notification]:
        return self.find_matching(limit=limit, user_id=user_id, tenant_id=tenant_id, **criteria)

    def remove(self, notification: Notification) -> None:
        self._dao.delete(notification)
