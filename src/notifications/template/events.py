"""Domain events for the NotificationTemplate aggregate."""

from notifications.domain import notifications
from protean.fields import DateTime, Identifier, String


@notifications.event(part_of="NotificationTemplate")
class TemplateCreated:
    __version__ = 1

    template_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    code: String(required=True, max_length=100)
    notification_type: String(required=True)
    channel: String(required=True)
    created_at: DateTime(required=True)


@notifications.event(part_of="NotificationTemplate")
class TemplateUpdated:
    __version__ = 1

    template_id: Identifier(required=True)
    tenant_id: Identifier(required=True)
    code: String(required=True, max_length=100)
    updated_by: Identifier()
    updated_at: DateTime(required=True)
