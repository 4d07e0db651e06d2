"""Repository for the NotificationTemplate aggregate."""

from notifications.domain import notifications
from notifications.notification.repository import MAX_QUERY_LIMIT
from notifications.template.template import NotificationTemplate


@notifications.repository(part_of=NotificationTemplate)
class NotificationTemplateRepository:
    def find_by_code(self, tenant_id, code) -> NotificationTemplate | None:
        return self._dao.query.filter(tenant_id=tenant_id, code=code).all().first

    def find_for_tenant(self, tenant_id, **criteria) -> list[NotificationTemplate]:
        return self._dao.query.filter(tenant_id=tenant_id, **criteria).limit(MAX_QUERY_LIMIT).all().items

    def remove(self, template: NotificationTemplate) -> None:
        self._dao.delete(template)
